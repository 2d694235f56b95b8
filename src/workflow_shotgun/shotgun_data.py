# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

# Third‑Party Imports
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from workflow_shotgun import constants
from workflow_shotgun.errors import KeyMismatchError, MalformedInputError, format_keys
from workflow_shotgun.utils.metadata import (
    collapse_metadata, get_group_values, set_factor_levels
)
from workflow_shotgun.utils.table_processing import (
    check_group_column, collapse_taxa, divide_by_group_size, relativize,
    replicate_counts, sum_by_group
)
from workflow_shotgun.utils.taxonomy_utils import canonical_rank, split_taxonomy_column

# ========================== INITIALISATION & CONFIGURATION ========================== #

logger = logging.getLogger("workflow_shotgun")

Column = Union[int, str]

# ================================== RE-KEYING ======================================= #

def rekey(
    df: pd.DataFrame,
    column: Column = 0,
    duplicates: str = constants.DEFAULT_DUPLICATES
) -> pd.DataFrame:
    """Move an identifier column into the row index.

    Returns a new DataFrame; the input is left untouched.

    Args:
        df:         Table holding the identifier as a data column.
        column:     Name or position of that column.
        duplicates: 'raise' to reject repeated identifiers, 'sum' to add up the
                    numeric columns of rows sharing one.

    Raises:
        MalformedInputError: If the column is absent, holds empty identifiers,
                             or holds duplicates under 'raise'.
    """
    if duplicates not in constants.DUPLICATE_POLICIES:
        raise ValueError(
            f"Invalid duplicates policy: {duplicates!r}. "
            f"Expected one of {list(constants.DUPLICATE_POLICIES)}"
        )
    if isinstance(column, int):
        if not -len(df.columns) <= column < len(df.columns):
            raise MalformedInputError(f"No column at position {column}")
        column = df.columns[column]
    if column not in df.columns:
        raise MalformedInputError(
            f"Identifier column {column!r} not found. Columns: {list(df.columns)}"
        )

    keys = df[column]
    if keys.isna().any() or (keys.astype(str).str.strip() == '').any():
        raise MalformedInputError(
            f"Identifier column {column!r} has empty values at rows "
            f"{format_keys(df.index[keys.isna() | (keys.astype(str).str.strip() == '')])}"
        )

    out = df.set_index(column, drop=True)
    dupes = out.index[out.index.duplicated()].unique()
    if len(dupes):
        if duplicates == 'raise':
            raise MalformedInputError(
                f"Duplicate identifiers in column {column!r}: {format_keys(dupes)}"
            )
        logger.warning(f"Summing {len(dupes)} duplicated identifiers in '{column}'")
        out = out.groupby(level=0, sort=False).sum(numeric_only=True)
        out.index.name = column
    return out


def _check_keys(what: str, left: pd.Index, right: pd.Index, right_name: str) -> None:
    if set(left) != set(right):
        raise KeyMismatchError(
            what, set(left) - set(right), set(right) - set(left),
            left='counts', right=right_name
        )

# ================================ COMPOSITE CONTAINER =============================== #

@dataclass(frozen=True, eq=False)
class ShotgunData:
    """Count, taxonomy and metadata tables sharing one key space.

    Attributes:
        counts:   Taxa × samples read counts (or derived abundances).
        taxonomy: Taxa × ranks labels; same index as `counts`.
        metadata: Samples × factors; index equal to the columns of `counts`.

    Every method returns a new container; the tables passed in are never
    modified.
    """
    counts: pd.DataFrame
    taxonomy: pd.DataFrame
    metadata: pd.DataFrame

    def __post_init__(self):
        if not self.counts.index.is_unique:
            raise MalformedInputError(
                f"Duplicate taxon identifiers: "
                f"{format_keys(self.counts.index[self.counts.index.duplicated()])}"
            )
        if not self.counts.columns.is_unique:
            raise MalformedInputError(
                f"Duplicate sample identifiers: "
                f"{format_keys(self.counts.columns[self.counts.columns.duplicated()])}"
            )
        for name, index in (('taxonomy', self.taxonomy.index), ('metadata', self.metadata.index)):
            if not index.is_unique:
                raise MalformedInputError(
                    f"Duplicate {name} identifiers: {format_keys(index[index.duplicated()])}"
                )
        if list(self.taxonomy.columns) != constants.TAXONOMIC_RANKS:
            raise MalformedInputError(
                f"Taxonomy columns must be {constants.TAXONOMIC_RANKS}, "
                f"got {list(self.taxonomy.columns)}"
            )
        _check_keys("Taxon", self.counts.index, self.taxonomy.index, 'taxonomy')
        _check_keys("Sample", self.counts.columns, self.metadata.index, 'metadata')

        # Align row orders to the count table
        object.__setattr__(self, 'taxonomy', self.taxonomy.reindex(self.counts.index))
        object.__setattr__(self, 'metadata', self.metadata.reindex(self.counts.columns))

    # ---------------------------------------------------------------- accessors
    @property
    def taxa_names(self) -> List[str]:
        return list(self.counts.index)

    @property
    def sample_names(self) -> List[Any]:
        return list(self.counts.columns)

    @property
    def n_taxa(self) -> int:
        return self.counts.shape[0]

    @property
    def n_samples(self) -> int:
        return self.counts.shape[1]

    def sample_sums(self) -> pd.Series:
        return self.counts.sum(axis=0)

    def total(self) -> float:
        return float(self.counts.to_numpy().sum())

    def __repr__(self) -> str:
        return (f"ShotgunData({self.n_taxa} taxa × {self.n_samples} samples, "
                f"{self.metadata.shape[1]} sample variables)")

    # ------------------------------------------------------------ derived views
    def with_counts(
        self,
        counts: pd.DataFrame,
        taxonomy: Optional[pd.DataFrame] = None,
        metadata: Optional[pd.DataFrame] = None
    ) -> 'ShotgunData':
        return ShotgunData(
            counts=counts,
            taxonomy=self.taxonomy if taxonomy is None else taxonomy,
            metadata=self.metadata if metadata is None else metadata
        )

    def relative_abundance(self) -> 'ShotgunData':
        """Counts rescaled to percent of each sample's total reads."""
        return self.with_counts(relativize(self.counts))

    def sum_samples_by(self, factor: str) -> 'ShotgunData':
        """Pool samples sharing a metadata value by SUMMING their columns.

        The result is not a mean: call `mean_samples_by` (or divide by the
        `n_replicates` metadata column) for that.
        """
        groups = check_group_column(self.metadata, factor)
        order = get_group_values(self.metadata, factor)
        summed = sum_by_group(self.counts, groups, order)
        metadata = collapse_metadata(self.metadata, factor, order)
        metadata[constants.REPLICATE_COLUMN] = replicate_counts(groups, order).values
        logger.info(f"Summed {self.n_samples} samples into {len(order)} '{factor}' groups")
        return self.with_counts(summed, metadata=metadata)

    def mean_samples_by(self, factor: str) -> 'ShotgunData':
        """Arithmetic mean of the samples sharing a metadata value."""
        summed = self.sum_samples_by(factor)
        sizes = summed.metadata[constants.REPLICATE_COLUMN]
        return summed.with_counts(divide_by_group_size(summed.counts, sizes))

    def collapse_taxa(
        self,
        rank: str,
        missing: str = constants.DEFAULT_MISSING_POLICY
    ) -> 'ShotgunData':
        """Aggregate taxa to `rank`; see `table_processing.collapse_taxa`."""
        counts, taxonomy = collapse_taxa(self.counts, self.taxonomy, rank, missing)
        return self.with_counts(counts, taxonomy=taxonomy)

    # -------------------------------------------------------------- subsetting
    def subset_samples(
        self,
        keep: Union[pd.Series, List[Any], Callable[[pd.DataFrame], pd.Series], str]
    ) -> 'ShotgunData':
        """Keep a subset of samples.

        `keep` may be a boolean Series over the metadata, a list of sample
        identifiers, a callable returning such a Series, or a `DataFrame.query`
        expression.
        """
        if isinstance(keep, str):
            samples = self.metadata.query(keep).index
        elif callable(keep):
            samples = self.metadata.index[keep(self.metadata)]
        elif isinstance(keep, pd.Series) and keep.dtype == bool:
            samples = keep.index[keep]
        else:
            samples = pd.Index(keep)
        unknown = set(samples) - set(self.sample_names)
        if unknown:
            raise KeyError(f"Unknown samples: {format_keys(unknown)}")
        samples = [s for s in self.sample_names if s in set(samples)]
        return self.with_counts(self.counts[samples], metadata=self.metadata.loc[samples])

    def prune_taxa(self) -> 'ShotgunData':
        """Drop taxa with no counts in any sample."""
        keep = self.counts.sum(axis=1) > 0
        if not keep.all():
            logger.debug(f"Pruned {int((~keep).sum())} empty taxa")
        return self.with_counts(self.counts.loc[keep], taxonomy=self.taxonomy.loc[keep])

    def set_factor_levels(self, factor_levels: Dict[str, List[Any]]) -> 'ShotgunData':
        return self.with_counts(
            self.counts, metadata=set_factor_levels(self.metadata, factor_levels)
        )

    def patch_taxonomy(self, taxon: str, rank: str, value: Optional[str]) -> 'ShotgunData':
        """Overwrite one taxonomy cell, e.g. to fix a mislabeled lineage."""
        if taxon not in self.taxonomy.index:
            raise KeyError(f"Unknown taxon: {taxon!r}")
        rank = canonical_rank(rank)
        taxonomy = self.taxonomy.copy()
        logger.info(f"Patched {rank} of {taxon!r}: {taxonomy.at[taxon, rank]!r} → {value!r}")
        taxonomy.at[taxon, rank] = value
        return self.with_counts(self.counts, taxonomy=taxonomy)

# ==================================== ASSEMBLY ====================================== #

def assemble(
    counts: pd.DataFrame,
    metadata: pd.DataFrame,
    taxon_column: Column = 0,
    sample_column: Column = 0,
    delimiter: str = constants.DEFAULT_TAXONOMY_DELIMITER,
    duplicates: str = constants.DEFAULT_DUPLICATES
) -> ShotgunData:
    """Build the container from the two loaded tables.

    Args:
        counts:        Combined table: a taxonomy-string column plus one count
                       column per sample.
        metadata:      Metadata table with a sample identifier column.
        taxon_column:  Name or position of the taxonomy-string column.
        sample_column: Name or position of the sample identifier column.
        delimiter:     Separator between ranks in the taxonomy strings.
        duplicates:    Policy for repeated taxonomy strings ('raise' or 'sum').

    Returns:
        ShotgunData with counts and taxonomy keyed by the taxonomy string and
        metadata keyed by sample.

    Raises:
        MalformedInputError, TaxonomyFormatError, KeyMismatchError
    """
    count_table = rekey(counts, taxon_column, duplicates)
    taxonomy = split_taxonomy_column(count_table.index.to_series(), delimiter)
    taxonomy.index.name = count_table.index.name
    sample_table = rekey(metadata, sample_column)

    data = ShotgunData(counts=count_table, taxonomy=taxonomy, metadata=sample_table)
    logger.info(f"Assembled {data!r}")
    return data
