# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from pathlib import Path
from typing import List, Optional, Union

# Third Party Imports
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

# Local Imports
from workflow_shotgun import constants
from workflow_shotgun.figures.figures import (
    apply_common_layout, create_colordict, plotly_show_and_save
)

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('workflow_shotgun')

# ==================================== FUNCTIONS ===================================== #

def plot_taxa_barplot(
    long_df: pd.DataFrame,
    category_column: str = constants.DEFAULT_CATEGORY_COLUMN,
    x: str = constants.SAMPLE_COLUMN,
    abundance_column: str = constants.ABUNDANCE_COLUMN,
    facet_col: Optional[str] = None,
    title: Optional[str] = None,
    sentinel_labels: Optional[List[str]] = None,
    output_path: Union[str, Path, None] = None,
    save_as: List[str] = constants.DEFAULT_SAVE_AS,
    show: bool = False,
    verbose: bool = False
) -> go.Figure:
    """
    Stacked bar chart of per-sample composition.

    Segments are stacked in the category order of `category_column` (see
    `table_filtering.order_categories`), so the most abundant category sits at
    the top of every bar.

    Args:
        long_df:          Long table, usually from `bucket_low_abundance`.
        category_column:  Column whose values become the stacked segments.
        x:                Column for the bars (samples or merged groups).
        abundance_column: Segment heights.
        facet_col:        Optional metadata column to facet on.
        title:            Figure title.
        sentinel_labels:  Labels drawn in fixed greys (bucket, unassigned).
        output_path:      Base path for the saved figure.
        save_as:          Formats to write.
        show:             Display the figure interactively.
        verbose:          Log saved paths at INFO.

    Returns:
        The plotly figure.
    """
    for column in (category_column, x, abundance_column, facet_col):
        if column is not None and column not in long_df.columns:
            raise KeyError(f"Column {column!r} not found. Columns: {list(long_df.columns)}")

    values = long_df[category_column]
    if isinstance(values.dtype, pd.CategoricalDtype):
        order = [str(c) for c in values.cat.categories]
    else:
        order = sorted(values.dropna().astype(str).unique())

    sentinels = sentinel_labels or []
    fixed = {label: color for label, color in zip(
        sentinels, [constants.BUCKET_COLOR, constants.UNASSIGNED_COLOR]
    )}
    colordict = create_colordict(order, fixed=fixed)

    data = long_df.copy()
    data[category_column] = data[category_column].astype(str)
    data[x] = data[x].astype(str)
    category_orders = {category_column: order}
    if isinstance(long_df[x].dtype, pd.CategoricalDtype):
        category_orders[x] = [str(c) for c in long_df[x].cat.categories]

    fig = px.bar(
        data,
        x=x,
        y=abundance_column,
        color=category_column,
        facet_col=facet_col,
        color_discrete_map=colordict,
        category_orders=category_orders,
    )
    fig.update_layout(barmode='stack', legend_traceorder='reversed')
    if facet_col is not None:
        fig.update_xaxes(matches=None)
        fig.for_each_annotation(lambda a: a.update(text=a.text.split("=")[-1]))

    fig = apply_common_layout(fig, x, f"{abundance_column} (%)", title=title)
    logger.debug(f"Stacked bar plot: {data[x].nunique()} bars, {len(order)} categories")

    plotly_show_and_save(fig, show, output_path, save_as, verbose=verbose)
    return fig
