# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import csv
import io
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

# Third-Party Imports
import numpy as np
import pandas as pd

# Local Imports
from workflow_shotgun import constants
from workflow_shotgun.errors import MalformedInputError, format_keys
from workflow_shotgun.utils.metadata import set_factor_levels

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('workflow_shotgun')

KeyColumn = Union[int, str]

# ================================= HELPER FUNCTIONS ================================= #

def _read_text(path: Path) -> str:
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    with open(path, 'r', encoding='utf-8', newline='') as fh:
        return fh.read()


def _check_field_counts(text: str, sep: str, path: Path) -> None:
    """Every non-blank line must have as many fields as the header."""
    lines = [(n, line) for n, line in enumerate(text.splitlines(), start=1)
             if line.strip()]
    if not lines:
        raise MalformedInputError(f"Input file is empty: {path}")

    n_fields = len(lines[0][1].split(sep))
    ragged = [f"line {n}: {len(line.split(sep))} fields"
              for n, line in lines[1:] if len(line.split(sep)) != n_fields]
    if ragged:
        raise MalformedInputError(
            f"Inconsistent column counts in {path} (header has {n_fields} fields): "
            f"{format_keys(ragged, limit=5)}"
        )


def _is_number(token: str) -> bool:
    try:
        float(token)
    except (TypeError, ValueError):
        return False
    return True


def _looks_like_data(name: str) -> bool:
    """A number or a lineage string is a data value, not a column name."""
    return _is_number(name) or constants.DEFAULT_TAXONOMY_DELIMITER.strip() in name


def _resolve_column(df: pd.DataFrame, column: KeyColumn) -> str:
    if isinstance(column, int):
        if not -len(df.columns) <= column < len(df.columns):
            raise MalformedInputError(
                f"Key column position {column} is out of range for "
                f"{len(df.columns)} columns"
            )
        return df.columns[column]
    if column not in df.columns:
        raise MalformedInputError(
            f"Key column {column!r} not found. Columns: {list(df.columns)}"
        )
    return column


def _to_numeric(tokens: pd.Series) -> pd.Series:
    """Missing tokens become NaN; anything else unparseable also becomes NaN."""
    tokens = tokens.str.strip()
    tokens = tokens.where(~tokens.isin(constants.MISSING_TOKENS))
    return pd.to_numeric(tokens, errors='coerce')


def _non_numeric_keys(
    tokens: pd.Series,
    converted: pd.Series,
    keys: pd.Series
) -> List[str]:
    present = ~tokens.str.strip().isin(constants.MISSING_TOKENS)
    return keys[converted.isna() & present].tolist()

# ==================================== FUNCTIONS ===================================== #

def load_tsv(
    path: Union[str, Path],
    key_column: KeyColumn = 0,
    numeric: Optional[Union[str, List[str]]] = None,
    sep: str = constants.DEFAULT_SEP
) -> pd.DataFrame:
    """
    Load a delimited table with a header row, preserving column order.

    Args:
        path:       Path to the delimited file.
        key_column: Name or position of the identifier column. It is always
                    kept as a string column.
        numeric:    'all' to require every non-key column to be numeric, a list
                    of column names to require, or None to auto-detect (a column
                    is numeric when every non-missing token parses).
        sep:        Field delimiter.

    Returns:
        DataFrame with the identifier column first, as in the file.

    Raises:
        FileNotFoundError:   If the file does not exist.
        MalformedInputError: For an empty file, a missing header row, ragged
                             rows or non-numeric tokens in a numeric column.
    """
    path = Path(path)
    text = _read_text(path)
    _check_field_counts(text, sep, path)

    df = pd.read_csv(
        io.StringIO(text), sep=sep, dtype=str, keep_default_na=False,
        quoting=csv.QUOTE_NONE, skip_blank_lines=True
    )
    key = _resolve_column(df, key_column)

    value_columns = [c for c in df.columns if c != key]
    # Numeric sample names are fine; the key header must look like data too
    if (value_columns and all(_is_number(c) for c in value_columns)
            and _looks_like_data(key)):
        raise MalformedInputError(
            f"Header row appears to be missing in {path}: key column name "
            f"{key!r} and column names {format_keys(value_columns, limit=5)} "
            f"look like data"
        )

    if numeric == 'all':
        required = value_columns
    elif numeric is None:
        required = []
    else:
        required = [_resolve_column(df, c) for c in numeric]
        if key in required:
            raise MalformedInputError(f"Key column {key!r} cannot be numeric")

    errors: Dict[str, List[str]] = {}
    for column in value_columns:
        tokens = df[column]
        converted = _to_numeric(tokens)
        bad = _non_numeric_keys(tokens, converted, df[key])
        if column in required:
            if bad:
                errors[column] = bad
            df[column] = converted
        elif not bad and converted.notna().any():
            df[column] = converted
        else:
            df[column] = tokens.where(
                ~tokens.str.strip().isin(constants.MISSING_TOKENS)
            )

    if errors:
        details = "; ".join(f"{col}: {format_keys(keys, limit=5)}"
                            for col, keys in errors.items())
        raise MalformedInputError(
            f"Non-numeric values in numeric columns of {path} ({details})"
        )

    logger.debug(f"Loaded {path.name}: {df.shape[0]} rows × {df.shape[1]} columns")
    return df


def import_counts_tsv(
    path: Union[str, Path],
    taxon_column: KeyColumn = 0,
    sep: str = constants.DEFAULT_SEP
) -> pd.DataFrame:
    """
    Load the combined taxonomy + counts table.

    The taxon column holds the lineage string; every other column is one sample
    of non-negative integer read counts. The taxon column is left as a data
    column; re-keying is the assembler's job.

    Raises:
        MalformedInputError: For missing, negative or fractional counts, on top
                             of the structural checks of `load_tsv`.
    """
    df = load_tsv(path, key_column=taxon_column, numeric='all', sep=sep)
    key = _resolve_column(df, taxon_column)
    values = df.drop(columns=key)
    if values.shape[1] == 0:
        raise MalformedInputError(f"No sample columns found in {path}")

    checks = {
        'missing': values.isna(),
        'negative': values < 0,
        'non-integer': values.notna() & (values != np.floor(values)),
    }
    for problem, mask in checks.items():
        rows = mask.any(axis=1)
        if rows.any():
            raise MalformedInputError(
                f"{problem.capitalize()} counts in {path} for taxa "
                f"{format_keys(df.loc[rows, key], limit=5)}"
            )

    df[values.columns] = values.astype('int64')
    logger.info(
        f"Loaded counts table: {len(df)} taxa × {values.shape[1]} samples"
    )
    return df


def import_metadata_tsv(
    path: Union[str, Path],
    sample_column: KeyColumn = 0,
    factor_levels: Optional[Dict[str, List]] = None,
    sep: str = constants.DEFAULT_SEP
) -> pd.DataFrame:
    """
    Load the sample metadata table.

    Args:
        path:          Path to metadata TSV file.
        sample_column: Name or position of the sample identifier column.
        factor_levels: Optional {factor: [ordered levels]} applied on load.
        sep:           Field delimiter.

    Returns:
        Metadata DataFrame with the sample column kept as a data column.
    """
    df = load_tsv(path, key_column=sample_column, numeric=None, sep=sep)
    if factor_levels:
        df = set_factor_levels(df, factor_levels)
    logger.info(f"Loaded metadata table: {len(df)} samples × {df.shape[1] - 1} factors")
    return df


def write_tsv(
    df: pd.DataFrame,
    path: Union[str, Path],
    sep: str = constants.DEFAULT_SEP
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, sep=sep, na_rep=constants.DEFAULT_NA_REP)
    logger.debug(f"Wrote {df.shape[0]} × {df.shape[1]} table to '{path}'")
    return path
