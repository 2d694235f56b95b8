"""
Tests for the ordination scatter plots and stacked composition bar plots.
"""
# ===================================== IMPORTS ====================================== #

import plotly.graph_objects as go
import pytest

from workflow_shotgun import constants
from workflow_shotgun.diversity.beta_diversity import ordinate
from workflow_shotgun.figures.figures import create_colordict, plotly_show_and_save
from workflow_shotgun.figures.ordination import plot_ordination
from workflow_shotgun.figures.taxa_barplot import plot_taxa_barplot
from workflow_shotgun.utils.table_filtering import bucket_low_abundance, melt

# ====================================== TESTS ======================================= #

@pytest.fixture
def composition(relative):
    return bucket_low_abundance(melt(relative.collapse_taxa('Phylum')), 'Phylum')


def test_colordict_pins_fixed_colors():
    colors = create_colordict(['a', '< 1%', 'b'], color_set=['red', 'blue'],
                              fixed={'< 1%': 'grey'})
    assert colors == {'a': 'red', '< 1%': 'grey', 'b': 'blue'}


def test_plot_ordination_writes_html(relative, tmp_path):
    result = ordinate(relative, method='NMDS')
    fig = plot_ordination(
        result, relative.metadata, color_col='Age', symbol_col='Plot',
        output_path=tmp_path / "nmds_braycurtis", save_as=['html']
    )
    assert isinstance(fig, go.Figure)
    assert (tmp_path / "nmds_braycurtis.html").exists()
    assert fig.layout.title.text == 'NMDS (braycurtis)'
    assert 'stress' in fig.layout.annotations[0].text
    assert sum(len(trace.x) for trace in fig.data) == 4


def test_plot_ordination_axis_titles(relative):
    result = ordinate(relative, method='PCoA')
    fig = plot_ordination(result, relative.metadata)
    assert fig.layout.xaxis.title.text.startswith('PCo1 (')
    assert fig.layout.annotations[0].text == 'n = 4'


def test_plot_ordination_unknown_column(relative):
    result = ordinate(relative, method='PCoA')
    with pytest.raises(KeyError):
        plot_ordination(result, relative.metadata, color_col='Season')


def test_taxa_barplot_traces_follow_categories(composition):
    fig = plot_taxa_barplot(
        composition,
        sentinel_labels=['< 1%', constants.DEFAULT_UNASSIGNED_LABEL]
    )
    names = [trace.name for trace in fig.data]
    assert names == [str(c) for c in composition['Category'].cat.categories]
    colors = {trace.name: trace.marker.color for trace in fig.data}
    assert colors['< 1%'] == constants.BUCKET_COLOR
    assert colors['Unassigned'] == constants.UNASSIGNED_COLOR
    assert fig.layout.barmode == 'stack'


def test_taxa_barplot_facets_and_saves(composition, tmp_path):
    fig = plot_taxa_barplot(
        composition, facet_col='Age', title="Phylum composition",
        output_path=tmp_path / "figures" / "phylum_barplot", save_as=['html']
    )
    assert (tmp_path / "figures" / "phylum_barplot.html").exists()
    assert {a.text for a in fig.layout.annotations} == {'Young', 'Old'}


def test_taxa_barplot_unknown_column(composition):
    with pytest.raises(KeyError):
        plot_taxa_barplot(composition, facet_col='Season')


def test_show_and_save_without_path():
    assert plotly_show_and_save(go.Figure(), output_path=None) == []
