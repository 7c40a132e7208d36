"""
viewer.py

Preview loop for `--visible`: keeps copying the rendered target to the
window until the user closes it. Window events are pumped by each
`present` call.
"""
from typing import Optional
import logging
import time

from stlthumb.thumbnail.config import RENDERING
from stlthumb.thumbnail.errors import RenderError

logger = logging.getLogger(__name__)


def show_window(context, target, interval: float = RENDERING['present_interval_s'],
                max_frames: Optional[int] = None) -> int:
    """Present `target` every `interval` seconds until the window closes.

    Returns the number of frames presented. `max_frames` bounds the loop
    for callers that cannot close the window interactively.
    """
    if not hasattr(context, 'present'):
        raise RenderError(f'{context.strategy} context has no window to present to')
    logger.info('showing preview window; close it to continue')
    frames = 0
    while not context.is_closing:
        if max_frames is not None and frames >= max_frames:
            break
        time.sleep(interval)
        context.present(target)
        frames += 1
    logger.debug('preview closed after %d frames', frames)
    return frames
