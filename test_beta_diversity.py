"""
Tests for Bray-Curtis dissimilarities and the NMDS / PCoA ordinations.
"""
# ===================================== IMPORTS ====================================== #

import numpy as np
import pandas as pd
import pytest

from workflow_shotgun.diversity.beta_diversity import (
    distance_matrix, ordinate, resolve_method, resolve_metric
)
from workflow_shotgun.errors import DegenerateMatrixError
from workflow_shotgun.shotgun_data import assemble

# ====================================== TESTS ======================================= #

def test_bray_curtis_values():
    table = pd.DataFrame(
        [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]], index=['a', 'b', 'c']
    )
    dm = distance_matrix(table, 'bray')
    assert dm.ids == ('a', 'b', 'c')
    assert dm['a', 'b'] == pytest.approx(1.0)
    assert dm['a', 'c'] == pytest.approx(1 / 3)
    np.testing.assert_allclose(dm.data, dm.data.T)
    np.testing.assert_allclose(np.diag(dm.data), 0.0)


def test_metric_and_method_aliases():
    assert resolve_metric('bray') == 'braycurtis'
    assert resolve_metric('Bray-Curtis') == 'braycurtis'
    assert resolve_metric('euclidean') == 'euclidean'
    assert resolve_method('pcoa') == 'PCoA'
    assert resolve_method('nmds') == 'NMDS'
    with pytest.raises(ValueError, match="Invalid ordination method"):
        resolve_method('tsne')


def test_pcoa(relative):
    result = ordinate(relative, method='PCoA')
    assert result.method == 'PCoA'
    assert result.metric == 'braycurtis'
    assert result.coordinates.shape == (4, 2)
    assert list(result.coordinates.index) == ['S1', 'S2', 'S3', 'S4']
    assert list(result.coordinates.columns) == ['PCo1', 'PCo2']
    assert result.stress is None
    assert result.proportion_explained['PCo1'] >= result.proportion_explained['PCo2']
    assert result.axis_labels()[0].startswith('PCo1 (')


def test_nmds(relative):
    result = ordinate(relative, method='nmds', distance='bray')
    assert result.method == 'NMDS'
    assert list(result.coordinates.columns) == ['NMDS1', 'NMDS2']
    assert result.coordinates.shape == (4, 2)
    assert np.isfinite(result.coordinates.to_numpy()).all()
    assert result.stress >= 0
    assert result.axis_labels() == ['NMDS1', 'NMDS2']


def test_nmds_is_reproducible(relative):
    first = ordinate(relative, method='NMDS', random_state=1)
    second = ordinate(relative, method='NMDS', random_state=1)
    pd.testing.assert_frame_equal(first.coordinates, second.coordinates)


def test_raw_counts_are_relativized(data, relative):
    from_counts = ordinate(data, method='PCoA')
    from_relative = ordinate(relative, method='PCoA')
    np.testing.assert_allclose(
        from_counts.distance_matrix.data, from_relative.distance_matrix.data
    )


def test_with_metadata(relative):
    result = ordinate(relative, method='PCoA')
    joined = result.with_metadata(relative.metadata)
    assert list(joined.columns) == ['PCo1', 'PCo2', 'Age', 'Plot', 'Depth']
    assert joined.loc['S3', 'Age'] == 'Old'


def test_zero_sample_is_degenerate(raw_counts, raw_metadata):
    counts = raw_counts.copy()
    counts['S2'] = 0
    data = assemble(counts, raw_metadata)
    with pytest.raises(DegenerateMatrixError, match="S2"):
        ordinate(data)


def test_too_few_samples(relative):
    with pytest.raises(DegenerateMatrixError, match="At least 3 samples"):
        ordinate(relative.subset_samples(['S1', 'S2']))


def test_identical_samples(raw_counts, raw_metadata):
    counts = raw_counts.copy()
    for sample in ('S2', 'S3', 'S4'):
        counts[sample] = counts['S1']
    with pytest.raises(DegenerateMatrixError, match="identical"):
        ordinate(assemble(counts, raw_metadata), method='PCoA')


def test_result_compares_by_identity(relative):
    result = ordinate(relative, method='PCoA')
    assert result == result
    assert result != ordinate(relative, method='PCoA')
    assert {result: 'PCoA'}[result] == 'PCoA'
