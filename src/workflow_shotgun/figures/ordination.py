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
from workflow_shotgun.diversity.beta_diversity import OrdinationResult
from workflow_shotgun.figures.figures import (
    apply_common_layout, create_colordict, plotly_show_and_save
)

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('workflow_shotgun')

# ==================================== FUNCTIONS ===================================== #

def _category_order(data: pd.DataFrame, column: str) -> List:
    values = data[column]
    if isinstance(values.dtype, pd.CategoricalDtype):
        return list(values.cat.categories)
    return sorted(values.dropna().unique(), key=str)


def plot_ordination(
    result: OrdinationResult,
    metadata: pd.DataFrame,
    color_col: Optional[str] = None,
    symbol_col: Optional[str] = None,
    output_path: Union[str, Path, None] = None,
    save_as: List[str] = constants.DEFAULT_SAVE_AS,
    show: bool = False,
    verbose: bool = False
) -> go.Figure:
    """
    Scatter plot of the first two ordination axes.

    Args:
        result:      Ordination to plot.
        metadata:    Sample metadata; joined on the sample identifiers.
        color_col:   Metadata column used for point colors.
        symbol_col:  Metadata column used for point shapes.
        output_path: Base path for the saved figure (no extension needed).
        save_as:     Formats to write.
        show:        Display the figure interactively.
        verbose:     Log saved paths at INFO.

    Returns:
        The plotly figure.
    """
    for col in (color_col, symbol_col):
        if col is not None and col not in metadata.columns:
            raise KeyError(f"Metadata has no column {col!r}")
    if result.coordinates.shape[1] < 2:
        raise ValueError(f"{result.method} result has fewer than two axes")

    data = result.with_metadata(metadata)
    data.index.name = constants.SAMPLE_COLUMN
    data = data.reset_index()
    x_col, y_col = result.coordinates.columns[:2]
    x_title, y_title = result.axis_labels()[:2]

    category_orders, colordict = {}, None
    for col in (color_col, symbol_col):
        if col is not None:
            category_orders[col] = _category_order(data, col)
    if color_col is not None:
        colordict = create_colordict(category_orders[color_col])
        data[color_col] = data[color_col].astype(str)
        category_orders[color_col] = [str(c) for c in category_orders[color_col]]

    fig = px.scatter(
        data,
        x=x_col,
        y=y_col,
        color=color_col,
        symbol=symbol_col,
        color_discrete_map=colordict,
        category_orders=category_orders,
        hover_data=[constants.SAMPLE_COLUMN],
        opacity=0.85,
    )
    fig.update_traces(marker={'size': 14, 'line': {'width': 1, 'color': 'black'}})

    annotation = f"n = {data.shape[0]}"
    if result.stress is not None:
        annotation += f", stress = {result.stress:.3f}"
    fig.add_annotation(
        text=annotation,
        xref="paper", yref="paper",
        x=0.99, y=0.01,
        xanchor="right", yanchor="bottom",
        showarrow=False,
        font=dict(size=16, color="black"),
        bgcolor="rgba(255,255,255,0.4)",
    )
    fig = apply_common_layout(
        fig, x_title, y_title, title=f"{result.method} ({result.metric})"
    )

    plotly_show_and_save(fig, show, output_path, save_as, verbose=verbose)
    return fig
