# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Iterable, List, Optional

# Third-Party Imports
import pandas as pd

# Local Imports
from workflow_shotgun import constants
from workflow_shotgun.errors import TaxonomyFormatError, format_keys

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('workflow_shotgun')

# ==================================== FUNCTIONS ===================================== #

def is_missing(label) -> bool:
    """True for the missing-value marker (None/NaN) and the textual NA tokens."""
    if label is None or label is pd.NA:
        return True
    if isinstance(label, float) and pd.isna(label):
        return True
    return isinstance(label, str) and label.strip() in constants.MISSING_TOKENS


def rank_index(rank: str, ranks: List[str] = constants.TAXONOMIC_RANKS) -> int:
    """
    Position of a rank name in the fixed hierarchy.

    Args:
        rank:  Rank name, case-insensitive (e.g. 'genus', 'Genus').
        ranks: Ordered rank names.

    Returns:
        Zero-based index of the rank (Domain = 0).

    Raises:
        ValueError: For unknown rank names.
    """
    levels = {r.lower(): i for i, r in enumerate(ranks)}
    try:
        return levels[str(rank).lower()]
    except KeyError:
        raise ValueError(
            f"Invalid rank: {rank!r}. Expected one of {ranks}"
        ) from None


def canonical_rank(rank: str) -> str:
    return constants.TAXONOMIC_RANKS[rank_index(rank)]


def split_taxonomy(
    taxonomy: str,
    delimiter: str = constants.DEFAULT_TAXONOMY_DELIMITER,
    n_ranks: int = len(constants.TAXONOMIC_RANKS)
) -> List[Optional[str]]:
    """
    Split one lineage string into exactly `n_ranks` labels.

    Labels are stripped of surrounding whitespace. Empty and NA tokens become
    None. Strings with fewer labels than ranks (e.g. 'Unassigned') are padded
    with None.

    Args:
        taxonomy:  Lineage string, e.g. 'Bacteria; Firmicutes; ...'.
        delimiter: Separator between ranks.
        n_ranks:   Number of ranks to produce.

    Returns:
        List of labels, one per rank.

    Raises:
        TaxonomyFormatError: If the string holds more labels than ranks.
    """
    if is_missing(taxonomy):
        return [None] * n_ranks

    sep = delimiter.strip() or delimiter
    parts = [part.strip() for part in str(taxonomy).split(sep)]
    # A trailing delimiter leaves one empty token that carries no rank
    if len(parts) == n_ranks + 1 and parts[-1] == '':
        parts = parts[:-1]
    if len(parts) > n_ranks:
        raise TaxonomyFormatError(
            f"Taxonomy string has {len(parts)} labels, expected at most "
            f"{n_ranks}: {taxonomy!r}"
        )
    labels = [None if is_missing(part) else part for part in parts]
    return labels + [None] * (n_ranks - len(labels))


def join_taxonomy(
    labels: Iterable,
    delimiter: str = constants.DEFAULT_TAXONOMY_DELIMITER,
    na_rep: str = constants.DEFAULT_NA_REP
) -> str:
    """Inverse of `split_taxonomy`: missing labels are written as `na_rep`."""
    return delimiter.join(na_rep if is_missing(l) else str(l) for l in labels)


def split_taxonomy_column(
    taxonomy: pd.Series,
    delimiter: str = constants.DEFAULT_TAXONOMY_DELIMITER,
    ranks: List[str] = constants.TAXONOMIC_RANKS
) -> pd.DataFrame:
    """
    Split a column of lineage strings into one column per rank.

    Args:
        taxonomy:  Series of lineage strings. Its index is kept.
        delimiter: Separator between ranks.
        ranks:     Output column names, in rank order.

    Returns:
        DataFrame with one object column per rank; missing labels are None.

    Raises:
        TaxonomyFormatError: Naming every row that holds too many labels.
    """
    rows, bad = [], []
    for key, value in taxonomy.items():
        try:
            rows.append(split_taxonomy(value, delimiter, len(ranks)))
        except TaxonomyFormatError:
            bad.append(key)
    if bad:
        raise TaxonomyFormatError(
            f"{len(bad)} taxonomy string(s) hold more than {len(ranks)} labels: "
            f"{format_keys(bad)}"
        )

    df = pd.DataFrame(rows, index=taxonomy.index, columns=ranks, dtype=object)
    n_padded = df.isna().any(axis=1).sum()
    logger.debug(
        f"Split {len(df)} taxonomy strings into {len(ranks)} ranks "
        f"({n_padded} with missing labels)"
    )
    return df


def lineage_prefix(
    taxonomy: pd.DataFrame,
    rank: str,
    delimiter: str = constants.DEFAULT_TAXONOMY_DELIMITER,
    na_rep: str = constants.DEFAULT_NA_REP
) -> pd.Series:
    """Joined labels from Domain down to `rank` (inclusive) for every taxon."""
    columns = constants.TAXONOMIC_RANKS[:rank_index(rank) + 1]
    if taxonomy.empty:
        return pd.Series(index=taxonomy.index, dtype=object)
    return taxonomy[columns].apply(
        lambda row: join_taxonomy(row, delimiter, na_rep), axis=1
    )
