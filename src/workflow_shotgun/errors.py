# ===================================== IMPORTS ====================================== #

# Standard Library Imports
from typing import Iterable

# ==================================== FUNCTIONS ===================================== #

def format_keys(keys: Iterable, limit: int = 10) -> str:
    """Render a collection of offending keys for an error message, truncated to 
    `limit` entries."""
    keys = [str(k) for k in keys]
    shown = ", ".join(repr(k) for k in keys[:limit])
    if len(keys) > limit:
        shown += f", ... ({len(keys) - limit} more)"
    return f"[{shown}]"

# ==================================== EXCEPTIONS ==================================== #

class ShotgunDataError(Exception):
    """Base class for data-integrity violations raised by the pipeline."""
    pass


class MalformedInputError(ShotgunDataError):
    """Raised when an input table is structurally invalid (no header, ragged rows,
    non-numeric tokens in a numeric column, negative counts)."""
    pass


class TaxonomyFormatError(ShotgunDataError):
    """Raised when a taxonomy string cannot be split into the fixed ranks."""
    pass


class KeyMismatchError(ShotgunDataError):
    """Raised when the taxon or sample keys of the three tables disagree."""

    def __init__(self, what: str, only_left: Iterable, only_right: Iterable,
                 left: str = 'counts', right: str = 'other'):
        self.only_left = sorted(map(str, only_left))
        self.only_right = sorted(map(str, only_right))
        super().__init__(
            f"{what} keys differ: only in {left}: {format_keys(self.only_left)}; "
            f"only in {right}: {format_keys(self.only_right)}"
        )


class EmptySampleError(ShotgunDataError):
    """Raised when a sample with zero total reads is relativized."""

    def __init__(self, samples: Iterable):
        self.samples = list(samples)
        super().__init__(
            f"Cannot compute relative abundance for samples with zero total "
            f"counts: {format_keys(self.samples)}"
        )


class DegenerateMatrixError(ShotgunDataError):
    """Raised when a matrix cannot feed a dissimilarity computation."""
    pass
