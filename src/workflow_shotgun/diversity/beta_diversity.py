# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import inspect
import logging
from dataclasses import dataclass
from typing import Optional

# Third-Party Imports
import numpy as np
import pandas as pd
from skbio.stats.distance import DistanceMatrix
from skbio.stats.ordination import pcoa as PCoA
from sklearn.manifold import MDS
from sklearn.metrics import pairwise_distances

# Local Imports
from workflow_shotgun import constants
from workflow_shotgun.diversity.helpers import (
    create_result_df, validate_distance_matrix, validate_table_df
)
from workflow_shotgun.shotgun_data import ShotgunData
from workflow_shotgun.utils.table_processing import relativize

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('workflow_shotgun')

# ================================== CONSTANTS ======================================= #

SYMMETRIC_METRICS = {'euclidean', 'braycurtis', 'jaccard', 'cityblock', 'canberra'}

# ================================ RESULT CONTAINER ================================== #

@dataclass(frozen=True, eq=False)
class OrdinationResult:
    """Sample coordinates from one ordination run.

    Attributes:
        method:               'NMDS' or 'PCoA'.
        metric:               Dissimilarity used.
        coordinates:          Samples × axes.
        distance_matrix:      The dissimilarities that were ordinated.
        proportion_explained: Per-axis fraction of variance (PCoA only).
        stress:               Final stress (NMDS only).
    """
    method: str
    metric: str
    coordinates: pd.DataFrame
    distance_matrix: DistanceMatrix
    proportion_explained: Optional[pd.Series] = None
    stress: Optional[float] = None

    def axis_labels(self):
        """Axis titles carrying % explained (PCoA) for every coordinate column."""
        if self.proportion_explained is None:
            return list(self.coordinates.columns)
        return [f"{axis} ({100 * self.proportion_explained[axis]:.1f}%)"
                for axis in self.coordinates.columns]

    def with_metadata(self, metadata: pd.DataFrame) -> pd.DataFrame:
        """Coordinates joined to sample metadata, ready for plotting."""
        return self.coordinates.join(metadata, how='left', rsuffix='_meta')

# ==================================== FUNCTIONS ===================================== #

def resolve_metric(metric: str) -> str:
    return constants.METRIC_ALIASES.get(metric.lower(), metric.lower())


def resolve_method(method: str) -> str:
    methods = {m.lower(): m for m in constants.ORDINATION_METHODS}
    try:
        return methods[method.lower()]
    except KeyError:
        raise ValueError(
            f"Invalid ordination method: {method!r}. "
            f"Expected one of {list(constants.ORDINATION_METHODS)}"
        ) from None


def distance_matrix(
    table: pd.DataFrame,
    metric: str = constants.DEFAULT_METRIC
) -> DistanceMatrix:
    """Compute pairwise dissimilarities between samples.

    Args:
        table :
            Samples × features abundance table.
        metric :
            Any metric accepted by `sklearn.metrics.pairwise_distances`
            ('braycurtis' by default; 'bray' is an alias).

    Returns:
        DistanceMatrix over the samples, in table order.

    Raises:
        DegenerateMatrixError: For NaN/infinite input or all-zero samples.
    """
    metric = resolve_metric(metric)
    validate_table_df(table, min_samples=2)

    dist_array = pairwise_distances(table.to_numpy(dtype=float), metric=metric)
    if metric in SYMMETRIC_METRICS:
        dist_array = (dist_array + dist_array.T) / 2
    np.fill_diagonal(dist_array, 0.0)

    return DistanceMatrix(dist_array, ids=[str(i) for i in table.index])


def pcoa(
    dm: DistanceMatrix,
    index: pd.Index,
    n_dimensions: Optional[int] = constants.DEFAULT_N_COMPONENTS,
    metric: str = constants.DEFAULT_METRIC
) -> OrdinationResult:
    """Principal Coordinate Analysis of a distance matrix.

    Args:
        dm:           Dissimilarities between samples.
        index:        Sample identifiers, in the order of `dm`.
        n_dimensions: Axes to keep; capped at n_samples - 1.
        metric:       Name of the dissimilarity behind `dm`, recorded on the result.
    """
    dm = validate_distance_matrix(dm)
    max_dims = dm.shape[0] - 1
    n_dimensions = min(n_dimensions, max_dims) if n_dimensions else max_dims

    # scikit-bio 0.6 renamed `number_of_dimensions` to `dimensions`
    params = inspect.signature(PCoA).parameters
    key = 'dimensions' if 'dimensions' in params else 'number_of_dimensions'
    result = PCoA(dm, method='eigh', **{key: n_dimensions})
    samples = result.samples.iloc[:, :n_dimensions]
    components = [f"PCo{i+1}" for i in range(samples.shape[1])]
    coordinates = pd.DataFrame(samples.to_numpy(), index=index, columns=components)
    explained = pd.Series(
        result.proportion_explained.to_numpy()[:len(components)], index=components
    )
    logger.debug(f"PCoA explained variance: {explained.round(3).to_dict()}")
    return OrdinationResult(
        method='PCoA', metric=metric, coordinates=coordinates, distance_matrix=dm,
        proportion_explained=explained
    )


def _nonmetric_mds(n_components: int, random_state: int, n_init: int, max_iter: int) -> MDS:
    params = inspect.signature(MDS).parameters
    kwargs = dict(
        n_components=n_components, n_init=n_init, max_iter=max_iter,
        random_state=random_state
    )
    # scikit-learn 1.8 moved "precomputed" to `metric` and the flag to `metric_mds`
    if 'metric_mds' in params:
        return MDS(metric='precomputed', metric_mds=False, **kwargs)
    return MDS(metric=False, dissimilarity='precomputed', **kwargs)


def nmds(
    dm: DistanceMatrix,
    index: pd.Index,
    n_components: int = constants.DEFAULT_N_COMPONENTS,
    random_state: int = constants.DEFAULT_RANDOM_STATE,
    n_init: int = constants.DEFAULT_N_INIT,
    max_iter: int = constants.DEFAULT_MAX_ITER,
    metric: str = constants.DEFAULT_METRIC
) -> OrdinationResult:
    """Non-metric multidimensional scaling of a distance matrix.

    Args:
        dm:           Dissimilarities between samples.
        index:        Sample identifiers, in the order of `dm`.
        n_components: Dimension of the embedding (typically 2).
        random_state: Seed for reproducible results.
        n_init:       Number of SMACOF restarts; the best stress wins.
        max_iter:     Iterations per restart.
        metric:       Name of the dissimilarity behind `dm`, recorded on the result.
    """
    dm = validate_distance_matrix(dm)
    n_components = min(n_components, dm.shape[0] - 1)
    model = _nonmetric_mds(n_components, random_state, n_init, max_iter)
    embeddings = model.fit_transform(dm.data)
    coordinates = create_result_df(embeddings, index, "NMDS", n_components)
    logger.debug(f"NMDS stress: {model.stress_:.4f}")
    return OrdinationResult(
        method='NMDS', metric=metric, coordinates=coordinates, distance_matrix=dm,
        stress=float(model.stress_)
    )


def ordinate(
    data: ShotgunData,
    method: str = constants.DEFAULT_ORDINATION,
    distance: str = constants.DEFAULT_METRIC,
    n_components: int = constants.DEFAULT_N_COMPONENTS,
    random_state: int = constants.DEFAULT_RANDOM_STATE
) -> OrdinationResult:
    """Ordinate the samples of a container.

    The sample × taxon matrix is built from the container's relative abundances
    (relativizing an already relative table is a no-op) after dropping taxa
    absent from every sample.

    Args:
        data:         Container, raw or relativized.
        method:       'NMDS' or 'PCoA' (case-insensitive).
        distance:     Dissimilarity metric, Bray-Curtis by default.
        n_components: Number of axes.
        random_state: Seed for NMDS.

    Raises:
        DegenerateMatrixError: If a sample is all-zero, fewer than three samples
                               remain, or every sample is identical.
    """
    method = resolve_method(method)
    metric = resolve_metric(distance)

    table = data.counts.T
    validate_table_df(table, min_samples=constants.DEFAULT_MIN_SAMPLES)
    table = table.loc[:, table.sum(axis=0) > 0]
    table = relativize(table.T).T

    dm = distance_matrix(table, metric)
    if method == 'PCoA':
        result = pcoa(dm, table.index, n_components, metric=metric)
    else:
        result = nmds(dm, table.index, n_components, random_state, metric=metric)
    logger.info(
        f"{method} on {metric} dissimilarities: {table.shape[0]} samples, "
        f"{table.shape[1]} taxa"
    )
    return result
