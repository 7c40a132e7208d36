"""
core.py

Top-level operations tying ingestion, context acquisition, rendering and
image output together.

- `render_to_image(config)` -> RGBA8 pixels, optionally after a preview window
- `run(config)` -> renders and writes the encoded image (file or stdout)
- `render_to_buffer(buf_ptr, width, height, model_filename_c)` -> bool, the
  entry point for C-like callers; it never raises.
"""
from typing import Union
import ctypes
import logging
import os
import threading
import time

from stlthumb.io.image_writer import write_image
from stlthumb.thumbnail.config import Config
from stlthumb.thumbnail.context import acquire_context
from stlthumb.thumbnail.environment import apply_driver_overrides
from stlthumb.thumbnail.io import load
from stlthumb.thumbnail.rendering import render_frame
from stlthumb.thumbnail.utils import safe_log_exception
from stlthumb.thumbnail.viewer import show_window

logger = logging.getLogger(__name__)


def render_to_image(config: Config) -> bytes:
    """Load the model, render it once and return the pixels.

    With `config.visible` the rendered frame is shown until the window is
    closed; the returned pixels are the ones rendered before showing.
    """
    mesh = load(config.model_filename, recalc_normals=config.recalc_normals)
    with acquire_context(config.width, config.height, visible=config.visible) as context:
        frame = render_frame(context, mesh, config.material, config.background, config.antialiasing,
                             config.width, config.height)
        if config.visible:
            show_window(context, frame.target)
    return frame.pixels


def run(config: Config) -> int:
    """Render `config.model_filename` and write the image; returns bytes written."""
    logger.info('Model File: %s', config.model_filename)
    logger.info('Thumbnail File: %s', config.img_filename or 'stdout')
    start = time.perf_counter()
    pixels = render_to_image(config)
    written = write_image(pixels, config.width, config.height, config.img_filename, config.format)
    logger.info('finished in %.3f s', time.perf_counter() - start)
    return written


def _decode_filename(model_filename_c) -> str:
    if isinstance(model_filename_c, ctypes.c_char_p):
        model_filename_c = model_filename_c.value
    if model_filename_c is None:
        raise ValueError('model filename is NULL')
    if isinstance(model_filename_c, (bytes, bytearray)):
        return os.fsdecode(bytes(model_filename_c).split(b'\0', 1)[0])
    return str(model_filename_c)


def _resolve_destination(buf_ptr, size: int) -> Union[int, memoryview]:
    """Raw address for pointer-like `buf_ptr`, else a writable byte view of at least `size`."""
    if buf_ptr is None:
        raise ValueError('output buffer is NULL')
    if isinstance(buf_ptr, int):
        address = buf_ptr
    elif isinstance(buf_ptr, ctypes.c_void_p):
        address = buf_ptr.value
    elif isinstance(buf_ptr, ctypes._Pointer):
        address = ctypes.cast(buf_ptr, ctypes.c_void_p).value
    else:
        view = memoryview(buf_ptr).cast('B')
        if view.readonly:
            raise ValueError('output buffer is read-only')
        if view.nbytes < size:
            raise ValueError(f'output buffer holds {view.nbytes} bytes, need {size}')
        return view
    if not address:
        raise ValueError('output buffer is NULL')
    return address


def _render_into(buf_ptr, width: int, height: int, model_filename_c) -> None:
    apply_driver_overrides()
    config = Config(model_filename=_decode_filename(model_filename_c), width=width, height=height)
    size = config.width * config.height * 4
    destination = _resolve_destination(buf_ptr, size)
    pixels = render_to_image(config)
    if isinstance(destination, memoryview):
        destination[:size] = pixels
    else:
        ctypes.memmove(destination, pixels, size)


def render_to_buffer(buf_ptr, width: int, height: int, model_filename_c) -> bool:
    """Render `model_filename_c` into a caller-owned `width*height*4` RGBA8 buffer.

    `buf_ptr` is a writable buffer-protocol object, an integer address or a
    ctypes pointer. Work happens on a dedicated thread that is joined before
    returning. Returns False (after logging) on any failure.
    """
    outcome = {'ok': False}

    def worker():
        try:
            _render_into(buf_ptr, width, height, model_filename_c)
            outcome['ok'] = True
        except Exception as exc:
            safe_log_exception('render_to_buffer failed', exc,
                               model=model_filename_c, width=width, height=height)

    thread = threading.Thread(target=worker, name='stlthumb-render')
    thread.start()
    thread.join()
    return outcome['ok']


RENDER_TO_BUFFER_FUNCTYPE = ctypes.CFUNCTYPE(ctypes.c_bool, ctypes.c_void_p, ctypes.c_uint32,
                                             ctypes.c_uint32, ctypes.c_char_p)
c_render_to_buffer = RENDER_TO_BUFFER_FUNCTYPE(render_to_buffer)
