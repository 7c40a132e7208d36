"""
utils.py

Small logging helpers shared by the thumbnail modules.

The public helpers:
- `safe_log_exception(msg, exc, **ctx)` : logs exceptions robustly
- `log_matrix(label, matrix)` : dumps a 4x4 matrix at DEBUG level
"""

from typing import Any
import sys
import logging
import numpy as np

logger = logging.getLogger(__name__)


def safe_log_exception(msg: str, exc: BaseException, **ctx: Any) -> None:
    """Log an exception robustly.

    Attempts to call `logger.error` with the traceback attached. If logging
    fails for any reason, falls back to writing a compact message to
    `sys.stderr`. Used at boundaries where nothing may propagate.
    """
    try:
        exc_info = (type(exc), exc, exc.__traceback__)
        if ctx:
            ctx_s = ' | '.join(f"{k}={v!r}" for k, v in ctx.items())
            logger.error('%s | %s | %s', msg, exc, ctx_s, exc_info=exc_info)
        else:
            logger.error('%s | %s', msg, exc, exc_info=exc_info)
    except Exception:
        try:
            sys.stderr.write(f'LOGGING FAILURE: {msg} {exc}\n')
        except Exception:
            pass


def log_matrix(label: str, matrix) -> None:
    """Write `matrix` row by row to the debug log."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    m = np.asarray(matrix, dtype=float)
    logger.debug('%s:', label)
    for row in m:
        logger.debug('\t'.join(f'{v:.3f}' for v in row))
