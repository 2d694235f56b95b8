# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

# Third Party Imports
import colorcet as cc
import plotly.graph_objects as go
import plotly.io as pio

# Local Imports
from workflow_shotgun import constants

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('workflow_shotgun')

# ================================= GLOBAL VARIABLES ================================= #

largecolorset = list(
  cc.glasbey + cc.glasbey_light + cc.glasbey_warm + cc.glasbey_cool + cc.glasbey_dark
)

# Framed axes without grid lines, shared by every figure
_AXIS_STYLE = {
  'showgrid': False,
  'zeroline': False,
  'showline': True,
  'linewidth': 2,
  'linecolor': 'black',
  'automargin': True,
  'mirror': True
}

pio.templates["shotgun"] = go.layout.Template(
  layout={
    'title': {
      'font': {
        'family': 'HelveticaNeue-CondensedBold, Helvetica, Sans-serif',
        'size': 28,
        'color': '#000'
      }
    },
    'font': {'family': 'Helvetica Neue, Helvetica, Sans-serif', 'size': 18, 'color': '#000'},
    'legend': {'font': {'size': 14}, 'itemsizing': 'constant'},
    'paper_bgcolor': 'rgba(0, 0, 0, 0)',
    'plot_bgcolor': '#fff',
    'colorway': largecolorset,
    'bargap': 0.15,
    'xaxis': _AXIS_STYLE,
    'yaxis': _AXIS_STYLE
  }
)

# ==================================== FUNCTIONS ===================================== #

def plotly_show_and_save(
    fig: go.Figure,
    show: bool = False,
    output_path: Union[str, Path, None] = None,
    save_as: List[str] = constants.DEFAULT_SAVE_AS,
    scale: int = 3,
    verbose: bool = False,
    **write_kwargs
) -> List[Path]:
    """
    Save a Plotly figure to PNG and/or HTML formats and optionally display it.

    Args:
        fig:            Plotly Figure object to be saved/displayed.
        show:           Whether to display the figure (default: False).
        output_path:    Base output path for files. Actual files will have format-
                        specific extensions appended (.png, .html). Directory will
                        be created if needed.
        save_as:        List of formats to save ('png', 'svg', 'pdf', 'html').
        scale:          DPI‑like scale factor for raster outputs.
        verbose:        If True, logs success messages; errors are always logged.
        **write_kwargs: Extra args forwarded to `fig.write_image` / `fig.write_html`.

    Returns:
        Paths of the files written.

    Notes:
        - Static formats require kaleido; export failures are logged, not raised.
    """
    written: List[Path] = []
    if output_path:
        output_path = Path(output_path).expanduser().resolve()
        output_path.parent.mkdir(parents=True, exist_ok=True)

        log_ok = (lambda msg: logger.info(msg)) if verbose else (lambda msg: logger.debug(msg))

        static_exts = {"png", "jpg", "jpeg", "pdf", "svg", "eps"}
        stem = str(output_path)
        for ext in list(static_exts) + ['html']:
            stem = stem.removesuffix(f'.{ext}')

        for ext in sorted(static_exts.intersection(save_as)):
            target = Path(f"{stem}.{ext}")
            try:
                fig.write_image(str(target), format=ext, scale=scale, **write_kwargs)
                written.append(target)
                log_ok(f"Saved figure to '{target}'.")
            except Exception as e:
                logger.error(
                    f"Failed to save figure: {str(e)}. "
                    "Make sure the export engine is installed "
                    "(e.g. `pip install -U kaleido`)."
                )

        if 'html' in save_as:
            target = Path(f"{stem}.html")
            try:
                fig.write_html(str(target), **write_kwargs)
                written.append(target)
                log_ok(f"Saved figure to '{target}'.")
            except OSError as e:
                logger.error(f"Failed to save figure: {str(e)}")

    if show:
        fig.show()
    return written


def create_colordict(
    categories: Iterable,
    color_set: List[str] = largecolorset,
    fixed: Optional[Dict[str, str]] = None
) -> Dict[str, str]:
    """
    Create consistent color mapping for categories.

    Args:
        categories: Category labels, in display order.
        color_set:  List of colors to cycle through.
        fixed:      Colors pinned to specific labels (e.g. sentinel buckets); these
                    do not consume a slot of `color_set`.

    Returns:
        Dictionary mapping categories (as strings) to colors.
    """
    fixed = fixed or {}
    colordict, i = {}, 0
    for category in categories:
        key = str(category)
        if key in colordict:
            continue
        if key in fixed:
            colordict[key] = fixed[key]
        else:
            colordict[key] = color_set[i % len(color_set)]
            i += 1
    return colordict


def apply_common_layout(
    fig: go.Figure,
    x_title: str,
    y_title: str,
    title: Optional[str] = None,
    height: int = constants.DEFAULT_HEIGHT,
    width: int = constants.DEFAULT_WIDTH
) -> go.Figure:
    """Apply the package template, size and axis titles."""
    layout_updates = {
        'template': 'shotgun',
        'height': height,
        'width': width,
        'plot_bgcolor': '#fff',
    }
    if title:
        layout_updates.update({'title_text': title, 'title_x': 0.5})

    fig.update_layout(xaxis_title=x_title, yaxis_title=y_title, **layout_updates)
    return fig
