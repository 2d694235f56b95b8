# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging

# Third-Party Imports
import numpy as np
import pandas as pd
from skbio.stats.distance import DistanceMatrix

# Local Imports
from workflow_shotgun import constants
from workflow_shotgun.errors import DegenerateMatrixError, format_keys

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('workflow_shotgun')

# =============================== HELPER FUNCTIONS ==================================== #

def validate_table_df(df: pd.DataFrame, **kwargs) -> None:
    validate_input_data(df)
    validate_nonzero_samples(df)
    if 'min_samples' in kwargs:
        validate_min_samples(df, kwargs['min_samples'])


def validate_input_data(df: pd.DataFrame) -> None:
    values = df.to_numpy(dtype=float)
    if np.isnan(values).any():
        raise DegenerateMatrixError("Input data contains NaN values")
    if np.isinf(values).any():
        raise DegenerateMatrixError("Input data contains infinite values")


def validate_nonzero_samples(df: pd.DataFrame) -> None:
    """Every sample (row) must hold some abundance, otherwise Bray-Curtis
    dissimilarities involving it are undefined.

    Args:
        df: Samples × features table.

    Raises:
        DegenerateMatrixError: Naming the all-zero samples.
    """
    empty = df.index[df.sum(axis=1) == 0]
    if len(empty):
        raise DegenerateMatrixError(
            f"Samples with zero total abundance cannot be ordinated: "
            f"{format_keys(empty)}"
        )


def validate_min_samples(
    df: pd.DataFrame,
    min_samples: int = constants.DEFAULT_MIN_SAMPLES
) -> None:
    """Validate that the input contains sufficient samples for ordination.

    Args:
        df :
            Input data as pandas DataFrame with samples as rows and features
            as columns.
        min_samples :
            Minimum required number of samples.

    Raises:
        DegenerateMatrixError: If number of samples is less than required minimum
    """
    if len(df) < min_samples:
        raise DegenerateMatrixError(
            f"At least {min_samples} samples required, got {len(df)}"
        )


def validate_distance_matrix(dm: DistanceMatrix) -> DistanceMatrix:
    """Reject distance matrices that carry no ordination signal.

    Raises:
        DegenerateMatrixError: For NaN entries or all-zero dissimilarities.
    """
    data = dm.data
    if np.isnan(data).any():
        raise DegenerateMatrixError("Distance matrix contains NaN values")
    if data.size > 1 and np.allclose(data, 0.0):
        raise DegenerateMatrixError(
            "Distance matrix is degenerate (all samples are identical)"
        )
    return dm


def create_result_df(
    data: np.ndarray,
    index: pd.Index,
    prefix: str,
    n_components: int
) -> pd.DataFrame:
    """Create standardized result DataFrame with named components.

    Args:
        data :
            Array of component values (n_samples × n_components).
        index :
            Sample identifiers for DataFrame index.
        prefix :
            Column name prefix (e.g., 'NMDS', 'PCo').
        n_components :
            Number of components.

    Returns:
        DataFrame with columns named {prefix}1, {prefix}2, ...
    """
    return pd.DataFrame(
        data[:, :n_components],
        index=index,
        columns=[f"{prefix}{i+1}" for i in range(n_components)]
    )
