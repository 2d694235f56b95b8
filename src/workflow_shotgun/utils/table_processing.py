# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Any, List, Optional, Tuple

# Third-Party Imports
import pandas as pd
from biom import Table

# ================================== LOCAL IMPORTS =================================== #

from workflow_shotgun import constants
from workflow_shotgun.errors import EmptySampleError, MalformedInputError, format_keys
from workflow_shotgun.utils.taxonomy_utils import lineage_prefix, rank_index

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("workflow_shotgun")

# ================================ TABLE CONVERSION ================================== #

def to_biom(counts: pd.DataFrame) -> Table:
    """Convert a features × samples DataFrame to a BIOM Table.

    Identifiers are stringified for BIOM; `from_biom` restores the originals.
    """
    return Table(
        data=counts.values.astype(float),
        observation_ids=[str(i) for i in counts.index],
        sample_ids=[str(s) for s in counts.columns],
        type="OTU table"
    )


def from_biom(table: Table, columns: pd.Index, index: Optional[pd.Index] = None) -> pd.DataFrame:
    """Convert a BIOM Table back to a features × samples DataFrame labelled with
    the original (non-string) sample identifiers."""
    df = table.to_dataframe(dense=True)
    df.columns = columns
    if index is not None:
        df.index = index
    return df


def _restore_dtype(df: pd.DataFrame, like: pd.DataFrame) -> pd.DataFrame:
    """Summing integer counts through BIOM yields floats; cast them back."""
    if len(like.columns) and all(pd.api.types.is_integer_dtype(t) for t in like.dtypes):
        return df.round().astype('int64')
    return df

# ========================== TABLE NORMALIZATION & TRANSFORM ========================= #

def relativize(counts: pd.DataFrame) -> pd.DataFrame:
    """Rescale every sample (column) to percentages of its total reads.

    Args:
        counts: Features × samples count table.

    Returns:
        New table whose columns each sum to 100.

    Raises:
        EmptySampleError: If any sample has zero total counts.
    """
    totals = counts.sum(axis=0)
    empty = totals.index[totals == 0]
    if len(empty):
        raise EmptySampleError(empty)
    if counts.empty:
        return counts.astype(float)

    normed = to_biom(counts).norm(axis='sample', inplace=False)
    relative = from_biom(normed, counts.columns, counts.index) * constants.PERCENT_SCALE
    logger.debug(f"Relativized {counts.shape[1]} samples")
    return relative


def check_group_column(metadata: pd.DataFrame, column: str) -> pd.Series:
    """Return the grouping column, raising for samples without a value."""
    if column not in metadata.columns:
        raise KeyError(f"Metadata has no column {column!r}")
    groups = metadata[column]
    missing = groups.index[groups.isna()]
    if len(missing):
        raise MalformedInputError(
            f"Samples have no value for '{column}': {format_keys(missing)}"
        )
    return groups


def sum_by_group(
    counts: pd.DataFrame,
    groups: pd.Series,
    order: Optional[List[Any]] = None
) -> pd.DataFrame:
    """Sum sample columns that share a group value.

    This is a sum, not a mean: dividing by the replicate count is a separate,
    explicit step (`divide_by_group_size`).

    Args:
        counts: Features × samples table.
        groups: Group value per sample, indexed by sample identifier.
        order:  Output column order; first appearance when omitted.

    Returns:
        Features × groups table of summed values.
    """
    groups = groups.reindex(counts.columns).astype(object)
    summed = counts.T.groupby(groups, sort=False).sum().T
    if order is not None:
        summed = summed[list(order)]
    summed.columns.name = None
    logger.debug(f"Summed {counts.shape[1]} samples into {summed.shape[1]} groups")
    return summed


def replicate_counts(
    groups: pd.Series,
    order: Optional[List[Any]] = None
) -> pd.Series:
    """Number of samples in each group."""
    sizes = groups.astype(object).value_counts(sort=False)
    if order is not None:
        sizes = sizes.reindex(list(order))
    sizes.name = constants.REPLICATE_COLUMN
    return sizes


def divide_by_group_size(merged: pd.DataFrame, sizes: pd.Series) -> pd.DataFrame:
    """Turn per-group sums into arithmetic means."""
    sizes = sizes.reindex(merged.columns)
    if sizes.isna().any() or (sizes <= 0).any():
        raise ValueError(
            f"Missing or non-positive replicate counts for groups: "
            f"{format_keys(sizes.index[sizes.isna() | (sizes <= 0)])}"
        )
    return merged.div(sizes.astype(float), axis=1)

# ================================ TAXONOMIC COLLAPSE ================================ #

def _unclassified_key(resolved: set, rank: str) -> str:
    """Row key for the merged missing-label taxa that no labelled lineage uses.

    'Unclassified' can itself be a classifier's Domain label; in that case the
    bucket is renamed so real taxa never pool with unresolved ones.
    """
    key = constants.UNCLASSIFIED_KEY
    n = 1
    while key in resolved:
        suffix = f" {n}" if n > 1 else ""
        key = f"{constants.UNCLASSIFIED_KEY} (no {rank} label{suffix})"
        n += 1
    if key != constants.UNCLASSIFIED_KEY:
        logger.warning(
            f"'{constants.UNCLASSIFIED_KEY}' is a {rank}-level lineage in this table; "
            f"taxa without a {rank} label are collected under '{key}'"
        )
    return key


def collapse_taxa(
    counts: pd.DataFrame,
    taxonomy: pd.DataFrame,
    rank: str,
    missing: str = constants.DEFAULT_MISSING_POLICY,
    delimiter: str = constants.DEFAULT_TAXONOMY_DELIMITER
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Collapse taxa sharing a lineage from Domain down to `rank`.

    Args:
        counts:    Features × samples table.
        taxonomy:  Features × ranks table with the same index.
        rank:      Target rank (inclusive).
        missing:   What to do with taxa that have a missing label at or above
                   `rank`:
                   - 'merge':  pool all of them into one 'Unclassified' row, even
                               when their known labels differ.
                   - 'prefix': treat missing as a label, so only identical
                               lineage prefixes are pooled.
                   - 'drop':   remove them (the reads are lost).
        delimiter: Separator used for the collapsed row identifiers.

    Returns:
        (collapsed counts, collapsed taxonomy). Labels below `rank` are blanked.

    Raises:
        ValueError: For an invalid rank or policy.
    """
    if missing not in constants.MISSING_POLICIES:
        raise ValueError(
            f"Invalid missing-value policy: {missing!r}. "
            f"Expected one of {list(constants.MISSING_POLICIES)}"
        )
    i = rank_index(rank)
    above = constants.TAXONOMIC_RANKS[:i + 1]
    unresolved = taxonomy[above].isna().any(axis=1)

    if missing == 'drop' and unresolved.any():
        lost = float(counts.loc[unresolved].to_numpy().sum())
        logger.warning(
            f"Dropping {unresolved.sum()} taxa ({lost:g} reads) with no "
            f"{above[-1]}-level lineage"
        )
        counts, taxonomy = counts.loc[~unresolved], taxonomy.loc[~unresolved]
        unresolved = unresolved.loc[~unresolved]

    keys = lineage_prefix(taxonomy, rank, delimiter)
    if missing == 'merge' and unresolved.any():
        bucket = _unclassified_key(set(keys[~unresolved]), above[-1])
        keys = keys.where(~unresolved, bucket)
        n_lineages = len(taxonomy.loc[unresolved, above].fillna('').drop_duplicates())
        if n_lineages > 1:
            logger.warning(
                f"Merged {unresolved.sum()} taxa from {n_lineages} distinct partial "
                f"lineages into '{bucket}' at rank {above[-1]}"
            )

    labels = taxonomy[above].where(taxonomy[above].notna(), None)
    labels = labels.assign(**{r: None for r in constants.TAXONOMIC_RANKS[i + 1:]})
    labels = labels.loc[:, constants.TAXONOMIC_RANKS].astype(object)
    if missing == 'merge':
        labels.loc[unresolved] = None
    labels.index = keys.values
    labels = labels[~labels.index.duplicated(keep='first')]
    order = labels.index

    if counts.empty:
        collapsed = pd.DataFrame(0, index=order, columns=counts.columns, dtype='int64')
    else:
        id_map = dict(zip(map(str, counts.index), keys))
        table = to_biom(counts).collapse(
            lambda id_, _: id_map[id_],
            norm=False,
            axis='observation',
            include_collapsed_metadata=False
        )
        collapsed = from_biom(table, counts.columns).reindex(order)
        collapsed = _restore_dtype(collapsed, counts)

    collapsed.index.name = counts.index.name
    labels.index.name = counts.index.name
    logger.info(f"Collapsed {len(counts)} taxa to {len(collapsed)} at rank {above[-1]}")
    return collapsed, labels
