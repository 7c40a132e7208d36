"""
context.py

Rendering-context acquisition for thumbnails.

A `RenderContext` is the one capability object the render pipeline talks to:
it allocates buffers, textures and render targets, builds shader programs,
submits draw calls and reads framebuffers back. There are exactly two
variants, `HeadlessContext` and `WindowedContext`, both wrapping a
`moderngl.Context`. A context lives for one render call and releases every
GPU object it handed out when it is released.

`acquire_context` walks an ordered list of named `Strategy` records until one
produces a context:

    visible window  ->  single attempt, failure raises ContextError
    headless        ->  surfaceless (EGL) -> pbuffer (platform default)
                        -> software (EGL + Mesa llvmpipe) -> hidden window

Strategies that need a display server are skipped when the display probe
reports none, which sends the cascade straight to the software rasterizer.
"""
from contextlib import contextmanager
from dataclasses import dataclass
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple
import logging
import os

import moderngl
import moderngl_window
import numpy as np

from stlthumb.thumbnail.config import RENDERING
from stlthumb.thumbnail.environment import display_available
from stlthumb.thumbnail.errors import CompileError, ContextError, RenderError

logger = logging.getLogger(__name__)

GL_REQUIRE = RENDERING['gl_version'][0] * 100 + RENDERING['gl_version'][1] * 10

_SOFTWARE_ENVIRONMENT = {
    'LIBGL_ALWAYS_SOFTWARE': '1',
    'GALLIUM_DRIVER': 'llvmpipe',
}


class RenderContext:
    """Capability interface shared by the headless and windowed variants."""

    kind = 'abstract'

    def __init__(self, ctx: moderngl.Context, size: Tuple[int, int], strategy: str):
        self.ctx = ctx
        self.size = (int(size[0]), int(size[1]))
        self.strategy = strategy
        self._resources: List[object] = []
        self._released = False

    # -- allocation ---------------------------------------------------------

    def _track(self, obj):
        self._resources.append(obj)
        return obj

    def allocate_buffer(self, data) -> moderngl.Buffer:
        """Upload `data` (array-like or bytes) into a new vertex buffer."""
        if not isinstance(data, (bytes, bytearray)):
            data = np.ascontiguousarray(data, dtype='f4').tobytes()
        try:
            return self._track(self.ctx.buffer(data))
        except moderngl.Error as exc:
            raise RenderError(f'buffer allocation failed: {exc}') from exc

    def allocate_target(self, size: Optional[Tuple[int, int]] = None) -> moderngl.Framebuffer:
        """RGBA8 color texture plus depth buffer, bundled as a framebuffer."""
        size = self.size if size is None else (int(size[0]), int(size[1]))
        try:
            color = self._track(self.ctx.texture(size, 4))
            depth = self._track(self.ctx.depth_renderbuffer(size))
            return self._track(self.ctx.framebuffer(color_attachments=[color], depth_attachment=depth))
        except moderngl.Error as exc:
            raise RenderError(f'render target allocation failed ({size[0]}x{size[1]}): {exc}') from exc

    def final_target(self) -> moderngl.Framebuffer:
        """Target that holds the finished image and is read back."""
        return self.allocate_target()

    def build_program(self, vertex_shader: str, fragment_shader: str) -> moderngl.Program:
        try:
            return self._track(self.ctx.program(vertex_shader=vertex_shader, fragment_shader=fragment_shader))
        except moderngl.Error as exc:
            logger.error('%s', exc)
            raise CompileError(f'shader program failed to build: {exc}') from exc

    def vertex_array(self, program: moderngl.Program, content: Sequence[tuple]) -> moderngl.VertexArray:
        try:
            return self._track(self.ctx.vertex_array(program, list(content)))
        except moderngl.Error as exc:
            raise RenderError(f'vertex array setup failed: {exc}') from exc

    # -- drawing ------------------------------------------------------------

    def clear(self, target: moderngl.Framebuffer, color) -> None:
        """Reset `target` color to `color` (RGBA) and depth to the far plane."""
        target.use()
        target.clear(*color, depth=1.0)

    def submit(self, vao: moderngl.VertexArray, target: moderngl.Framebuffer, mode: int = moderngl.TRIANGLES,
               depth_test: bool = True, cull_back_faces: bool = True) -> None:
        """Draw `vao` into `target`.

        Back-face culling treats counter-clockwise triangles as front facing,
        so clockwise-wound triangles are dropped.
        """
        flags = moderngl.NOTHING
        if depth_test:
            flags |= moderngl.DEPTH_TEST
        if cull_back_faces:
            flags |= moderngl.CULL_FACE
        target.use()
        self.ctx.enable_only(flags)
        self.ctx.front_face = 'ccw'
        self.ctx.cull_face = 'back'
        try:
            vao.render(mode=mode)
        except moderngl.Error as exc:
            raise RenderError(f'draw submission failed: {exc}') from exc

    def read_pixels(self, target: moderngl.Framebuffer) -> bytes:
        """RGBA8 contents of `target`, top row first."""
        width, height = target.size
        raw = target.read(components=4, alignment=1)
        rows = np.frombuffer(raw, dtype=np.uint8).reshape(height, width, 4)
        return np.ascontiguousarray(rows[::-1]).tobytes()

    # -- diagnostics / lifetime ----------------------------------------------

    def describe(self) -> dict:
        info = dict(self.ctx.info)
        memory = next((v for k, v in info.items() if 'MEMORY' in k.upper()), None)
        return {
            'strategy': self.strategy,
            'kind': self.kind,
            'version_code': self.ctx.version_code,
            'version': info.get('GL_VERSION'),
            'vendor': info.get('GL_VENDOR'),
            'renderer': info.get('GL_RENDERER'),
            'free_video_memory': memory,
        }

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        for obj in reversed(self._resources):
            obj.release()
        self._resources.clear()
        self._release_context()

    def _release_context(self) -> None:
        self.ctx.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()


class HeadlessContext(RenderContext):
    """Context without any presentation surface.

    With `pixel_buffer=True` a width x height framebuffer is allocated at
    creation and serves as the final render target.
    """

    kind = 'headless'

    def __init__(self, ctx: moderngl.Context, size: Tuple[int, int], strategy: str, pixel_buffer: bool = False):
        super().__init__(ctx, size, strategy)
        self.surface = None
        if pixel_buffer:
            try:
                self.surface = self.allocate_target()
            except RenderError:
                self.release()
                raise

    def final_target(self) -> moderngl.Framebuffer:
        if self.surface is not None:
            return self.surface
        return self.allocate_target()


class WindowedContext(RenderContext):
    """Context owned by a moderngl-window window (visible or hidden)."""

    kind = 'windowed'

    def __init__(self, window, size: Tuple[int, int], strategy: str):
        super().__init__(window.ctx, size, strategy)
        self.window = window

    @property
    def is_closing(self) -> bool:
        return bool(self.window.is_closing)

    def present(self, target: moderngl.Framebuffer) -> None:
        """Copy `target` to the window and swap; also pumps window events."""
        self.ctx.copy_framebuffer(self.window.fbo, target)
        self.window.swap_buffers()

    def _release_context(self) -> None:
        self.window.destroy()


@dataclass(frozen=True)
class Strategy:
    """One named way of creating a context."""
    name: str
    create: Callable[[int, int], RenderContext]
    needs_display: bool = True


@contextmanager
def _software_rasterizer():
    """Force Mesa's software rasterizer while a context is being created."""
    saved = {key: os.environ.get(key) for key in _SOFTWARE_ENVIRONMENT}
    os.environ.update(_SOFTWARE_ENVIRONMENT)
    try:
        yield
    finally:
        for key, value in saved.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


def create_surfaceless_context(width: int, height: int) -> RenderContext:
    ctx = moderngl.create_context(standalone=True, backend='egl', require=GL_REQUIRE)
    return HeadlessContext(ctx, (width, height), 'surfaceless')


def create_pbuffer_context(width: int, height: int) -> RenderContext:
    ctx = moderngl.create_context(standalone=True, require=GL_REQUIRE)
    return HeadlessContext(ctx, (width, height), 'pbuffer', pixel_buffer=True)


def create_software_context(width: int, height: int) -> RenderContext:
    with _software_rasterizer():
        ctx = moderngl.create_context(standalone=True, backend='egl', require=GL_REQUIRE)
    return HeadlessContext(ctx, (width, height), 'software', pixel_buffer=True)


def create_windowed_context(width: int, height: int, visible: bool = True) -> RenderContext:
    """Open a fixed-size pygame window through moderngl-window."""
    window_cls = moderngl_window.get_local_window_cls('pygame2')
    window = window_cls(
        title=RENDERING['window_title'],
        gl_version=RENDERING['gl_version'],
        size=(width, height),
        resizable=False,
        visible=visible,
        vsync=False,
    )
    moderngl_window.activate_context(window=window)
    return WindowedContext(window, (width, height), 'window' if visible else 'hidden-window')


HEADLESS_STRATEGIES: Tuple[Strategy, ...] = (
    Strategy('surfaceless', create_surfaceless_context),
    Strategy('pbuffer', create_pbuffer_context),
    Strategy('software', create_software_context, needs_display=False),
    Strategy('hidden-window', partial(create_windowed_context, visible=False)),
)


def log_context_info(context: RenderContext) -> None:
    d = context.describe()
    logger.info('GL context:   %s (%s)', d['strategy'], d['kind'])
    logger.info('GL Version Code: %s', d['version_code'])
    logger.info('GL Version:   %s', d['version'])
    logger.info('Vendor:       %s', d['vendor'])
    logger.info('Renderer:     %s', d['renderer'])
    logger.info('Free GPU Mem: %s', d['free_video_memory'] if d['free_video_memory'] is not None else 'unknown')


def acquire_context(width: int, height: int, visible: bool = False,
                    strategies: Optional[Sequence[Strategy]] = None,
                    display_probe: Callable[[], bool] = display_available,
                    window_factory: Callable[..., RenderContext] = create_windowed_context) -> RenderContext:
    """Return the first context the strategies can produce.

    Raises `ContextError` when a visible window cannot be opened, or when
    every headless strategy failed or was skipped.
    """
    if visible:
        try:
            context = window_factory(width, height, visible=True)
        except Exception as exc:
            raise ContextError('unable to open a visible window', [('window', f'{type(exc).__name__}: {exc}')]) from exc
        log_context_info(context)
        return context

    strategies = HEADLESS_STRATEGIES if strategies is None else strategies
    has_display = display_probe()
    if not has_display:
        logger.warning('No display server reachable; using display-independent strategies only')

    failures: List[Tuple[str, str]] = []
    for strategy in strategies:
        if strategy.needs_display and not has_display:
            logger.debug('skipping %s GL context: no display', strategy.name)
            failures.append((strategy.name, 'skipped, no display available'))
            continue
        try:
            context = strategy.create(width, height)
        except Exception as exc:
            reason = f'{type(exc).__name__}: {exc}'
            logger.warning('Unable to create %s GL context, trying next strategy. Reason: %s', strategy.name, reason)
            failures.append((strategy.name, reason))
            continue
        log_context_info(context)
        return context

    raise ContextError('no rendering context could be created', failures)
