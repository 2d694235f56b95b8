# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Optional

# Third-Party Imports
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from workflow_shotgun import constants
from workflow_shotgun.shotgun_data import ShotgunData
from workflow_shotgun.utils.taxonomy_utils import is_missing

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("workflow_shotgun")

# ================================= LONG-FORM TABLES ================================= #

def melt(
    data: ShotgunData,
    rank: Optional[str] = None,
    missing: str = constants.DEFAULT_MISSING_POLICY
) -> pd.DataFrame:
    """Flatten a container to one row per (sample, taxon).

    Columns are `Sample`, `OTU`, `Abundance`, the seven rank columns and every
    metadata column (renamed `sample_<name>` if it clashes with the others).
    Rows are sorted by decreasing abundance.

    Args:
        data:    Container to flatten.
        rank:    Collapse taxa to this rank first (see `ShotgunData.collapse_taxa`).
        missing: Missing-label policy used when collapsing.
    """
    if rank is not None:
        data = data.collapse_taxa(rank, missing=missing)
    long_df = (
        data.counts
        .rename_axis(constants.TAXON_COLUMN)
        .reset_index()
        .melt(
            id_vars=constants.TAXON_COLUMN,
            var_name=constants.SAMPLE_COLUMN,
            value_name=constants.ABUNDANCE_COLUMN
        )
    )
    long_df = long_df[[constants.SAMPLE_COLUMN, constants.TAXON_COLUMN,
                       constants.ABUNDANCE_COLUMN]]
    long_df = long_df.merge(
        data.taxonomy, left_on=constants.TAXON_COLUMN, right_index=True, how='left'
    )

    reserved = set(long_df.columns)
    metadata = data.metadata.rename(
        columns={c: f"sample_{c}" for c in data.metadata.columns if c in reserved}
    )
    long_df = long_df.merge(
        metadata, left_on=constants.SAMPLE_COLUMN, right_index=True, how='left'
    )
    return (long_df
            .sort_values(constants.ABUNDANCE_COLUMN, ascending=False, kind='mergesort')
            .reset_index(drop=True))

# =============================== LOW-ABUNDANCE BUCKETS ============================== #

def bucket_label(threshold: float) -> str:
    return f"< {threshold:g}%"


def order_categories(
    long_df: pd.DataFrame,
    column: str,
    abundance_column: str = constants.ABUNDANCE_COLUMN,
    by: str = 'mean',
    ascending: bool = True
) -> pd.DataFrame:
    """Make `column` an ordered categorical sorted by mean or total abundance.

    Ties are broken by label so the order is deterministic.
    """
    if by not in ('mean', 'sum'):
        raise ValueError(f"Invalid ordering statistic: {by!r}. Expected 'mean' or 'sum'")
    values = long_df[column].astype(object)
    stats = long_df[abundance_column].groupby(values, sort=False).agg(by)
    sign = 1 if ascending else -1
    order = sorted(stats.index, key=lambda c: (sign * stats[c], str(c)))

    out = long_df.copy()
    out[column] = pd.Categorical(values, categories=order, ordered=True)
    return out


def bucket_low_abundance(
    long_df: pd.DataFrame,
    label_column: str,
    threshold: float = constants.DEFAULT_ABUNDANCE_THRESHOLD,
    abundance_column: str = constants.ABUNDANCE_COLUMN,
    output_column: str = constants.DEFAULT_CATEGORY_COLUMN,
    unassigned_label: str = constants.DEFAULT_UNASSIGNED_LABEL,
    low_label: Optional[str] = None,
    order_by: str = 'mean'
) -> pd.DataFrame:
    """Relabel rare and unlabelled rows for stacked bar plots.

    Rows with an abundance strictly below `threshold` get the bucket label
    ('< 1%' for the default threshold); of the remaining rows, those without a
    label get `unassigned_label`; everything else keeps its label.

    Args:
        long_df:          Long table, e.g. from `melt` on relative abundances.
        label_column:     Column holding the labels (usually a rank name).
        threshold:        Cut-off, in the units of `abundance_column`.
        abundance_column: Column holding the abundances.
        output_column:    Name of the new categorical column.
        unassigned_label: Label for rows whose label is missing.
        low_label:        Bucket label; derived from `threshold` when omitted.
        order_by:         'mean' or 'sum' for the ascending category order.

    Returns:
        Copy of `long_df` with the ordered categorical `output_column`.
    """
    for column in (label_column, abundance_column):
        if column not in long_df.columns:
            raise KeyError(f"Column {column!r} not found. Columns: {list(long_df.columns)}")
    low_label = low_label or bucket_label(threshold)

    labels = long_df[label_column].astype(object)
    unlabelled = labels.map(is_missing).astype(bool)
    low = long_df[abundance_column] < threshold

    category = labels.where(~unlabelled, unassigned_label).where(~low, low_label)
    out = long_df.copy()
    out[output_column] = category
    logger.debug(
        f"Bucketed {int(low.sum())} of {len(out)} rows below {threshold:g} "
        f"and {int((unlabelled & ~low).sum())} unlabelled rows"
    )
    return order_categories(out, output_column, abundance_column, by=order_by)
