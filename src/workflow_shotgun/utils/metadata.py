# ===================================== IMPORTS ====================================== #

# Standard Imports
import logging
from typing import Any, Dict, List

# Third Party Imports
import pandas as pd

# Local Imports
from workflow_shotgun.errors import MalformedInputError, format_keys

logger = logging.getLogger("workflow_shotgun")

# ==================================================================================== #

def set_factor_levels(
    metadata: pd.DataFrame,
    factor_levels: Dict[str, List[Any]]
) -> pd.DataFrame:
    """Constrain metadata factors to explicit ordered category lists.

    Args:
        metadata:      Metadata DataFrame (not modified).
        factor_levels: {column: [levels in display order]}.

    Returns:
        Copy of the metadata with each named column as an ordered Categorical.

    Raises:
        MalformedInputError: If a column is absent, or holds values outside its
                             level list.
    """
    df = metadata.copy()
    for column, levels in factor_levels.items():
        if column not in df.columns:
            raise MalformedInputError(
                f"Cannot set levels for unknown metadata column {column!r}. "
                f"Columns: {list(df.columns)}"
            )
        values = df[column]
        # Numeric columns are matched against levels written as strings in YAML
        if not pd.api.types.is_numeric_dtype(values) or any(isinstance(l, str) for l in levels):
            values = values.where(values.isna(), values.astype(str))
            levels = [str(l) for l in levels]
        unknown = sorted(set(values.dropna()) - set(levels), key=str)
        if unknown:
            raise MalformedInputError(
                f"Column {column!r} has values outside its levels {levels}: "
                f"{format_keys(unknown)}"
            )
        df[column] = pd.Categorical(values, categories=levels, ordered=True)
        logger.debug(f"Releveled '{column}': {levels}")
    return df


def get_group_values(metadata: pd.DataFrame, column: str) -> List[Any]:
    """Distinct values of a grouping column: the declared order for ordered
    categoricals, first appearance otherwise."""
    if column not in metadata.columns:
        raise KeyError(f"Metadata has no column {column!r}")
    values = metadata[column]
    if isinstance(values.dtype, pd.CategoricalDtype):
        present = set(values.dropna())
        return [c for c in values.cat.categories if c in present]
    return values.dropna().drop_duplicates().tolist()


def collapse_metadata(
    metadata: pd.DataFrame,
    column: str,
    groups: List[Any]
) -> pd.DataFrame:
    """One row per group, indexed by group value, keeping the grouping column and
    the columns that are constant within every group."""
    grouped = metadata.groupby(column, observed=True, sort=False)
    constant = [
        c for c in metadata.columns
        if c != column and (grouped[c].nunique(dropna=False) <= 1).all()
    ]
    index = pd.Index(list(groups), name=metadata.index.name)
    if constant:
        collapsed = grouped[constant].first().reindex(groups)
        collapsed.index = index
    else:
        collapsed = pd.DataFrame(index=index)

    values = pd.Series(list(groups), index=index)
    if isinstance(metadata[column].dtype, pd.CategoricalDtype):
        values = values.astype(metadata[column].dtype)
    collapsed.insert(0, column, values)
    dropped = [c for c in metadata.columns if c != column and c not in constant]
    if dropped:
        logger.debug(f"Dropped metadata columns varying within '{column}': {dropped}")
    return collapsed
