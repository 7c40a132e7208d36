"""
errors.py

Exception taxonomy for thumbnail generation.

Everything a caller is expected to handle derives from `ThumbnailError`.
`CompileError` does not; a shipped shader that fails to build propagates to the
caller unchanged.
"""
from typing import List, Optional, Sequence, Tuple


class ThumbnailError(Exception):
    """Base class for recoverable thumbnail failures."""


class ModelIOError(ThumbnailError, OSError):
    """The model file or standard input could not be read."""


class FormatError(ThumbnailError):
    """Unrecognized model or image format."""


class ParseError(ThumbnailError):
    """Malformed geometry records in the model source."""


class EmptyMeshError(ThumbnailError):
    """The model source decoded to zero triangles."""


class RenderError(ThumbnailError):
    """GPU-side allocation or draw submission failed."""


class EncodeError(ThumbnailError):
    """The pixel buffer could not be serialized to an image."""


class ContextError(ThumbnailError):
    """Every rendering-context strategy failed.

    `failures` holds one `(strategy_name, reason)` pair per attempted or
    skipped strategy, in the order they were tried.
    """

    def __init__(self, message: str, failures: Optional[Sequence[Tuple[str, str]]] = None):
        self.failures: List[Tuple[str, str]] = list(failures or [])
        if self.failures:
            detail = '; '.join(f'{name}: {reason}' for name, reason in self.failures)
            message = f'{message} ({detail})'
        super().__init__(message)


class CompileError(RuntimeError):
    """A shipped shader failed to compile or link."""
