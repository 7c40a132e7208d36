"""
rendering.py

Draws a `Mesh` into an off-screen target and reads the pixels back.

Pipeline for one frame:
    1. build the model program (a failure raises CompileError)
    2. upload positions and normals as two vertex buffers
    3. model = normalization transform, view = fixed camera,
       perspective from the output aspect ratio
    4. clear the scene target to the background, depth-tested draw with
       back faces culled
    5. with FXAA, a second full-screen pass samples the scene texture into
       the final target; without it the scene target is the final target
    6. read the final target back as RGBA8, top row first

Every GPU call goes through the `RenderContext` handed in, which owns and
releases everything allocated here.
"""
from typing import NamedTuple, Optional, Sequence
import logging

import moderngl
import numpy as np

from stlthumb.thumbnail.config import CAMERA, DEFAULTS, LIGHTING, Material
from stlthumb.thumbnail.geometry import as_uniform, look_at, normalization_transform, perspective
from stlthumb.thumbnail.shaders import (FXAA_FRAGMENT_SHADER, FXAA_VERTEX_SHADER,
                                        MODEL_FRAGMENT_SHADER, MODEL_VERTEX_SHADER)
from stlthumb.thumbnail.utils import log_matrix

logger = logging.getLogger(__name__)

# x, y, u, v for a TRIANGLE_STRIP covering clip space
_FULLSCREEN_QUAD = np.array([
    -1.0, 1.0, 0.0, 1.0,
    1.0, 1.0, 1.0, 1.0,
    -1.0, -1.0, 0.0, 0.0,
    1.0, -1.0, 1.0, 0.0,
], dtype='f4')


class Frame(NamedTuple):
    """Result of one render: RGBA8 pixels (top row first) and the target holding them."""
    pixels: bytes
    target: moderngl.Framebuffer


class FxaaPass:
    """Full-screen post-process pass applying FXAA to a scene texture."""

    def __init__(self, context):
        self.context = context
        self.program = context.build_program(FXAA_VERTEX_SHADER, FXAA_FRAGMENT_SHADER)
        self.vbo = context.allocate_buffer(_FULLSCREEN_QUAD)
        self.vao = context.vertex_array(self.program, [(self.vbo, '2f 2f', 'position', 'tex_coords')])

    def apply(self, source: moderngl.Framebuffer, target: moderngl.Framebuffer) -> None:
        width, height = source.size
        texture = source.color_attachments[0]
        texture.filter = (moderngl.LINEAR, moderngl.LINEAR)
        texture.repeat_x = False
        texture.repeat_y = False
        texture.use(location=0)
        self.program['tex'].value = 0
        self.program['resolution'].value = (float(width), float(height))
        self.context.clear(target, (0.0, 0.0, 0.0, 0.0))
        self.context.submit(self.vao, target, moderngl.TRIANGLE_STRIP, depth_test=False, cull_back_faces=False)


def _set_uniforms(program: moderngl.Program, model, view, projection, material: Material) -> None:
    modelview = view @ model
    log_matrix('Modelview', modelview)
    program['modelview'].write(as_uniform(modelview))
    program['perspective'].write(as_uniform(projection))
    program['u_light'].value = tuple(float(c) for c in LIGHTING['direction'])
    program['ambient_color'].value = material.ambient
    program['diffuse_color'].value = material.diffuse
    program['specular_color'].value = material.specular
    program['shininess'].value = float(LIGHTING['shininess'])


def render_frame(context, mesh, material: Optional[Material] = None,
                 background: Sequence[float] = DEFAULTS['background'],
                 antialiasing: str = DEFAULTS['antialiasing'],
                 width: Optional[int] = None, height: Optional[int] = None) -> Frame:
    """Render `mesh` once and return the `Frame`.

    `width`/`height` default to the context size. The target stays alive
    until the context is released, so a windowed caller can keep
    presenting it.
    """
    material = material or Material()
    width = context.size[0] if width is None else int(width)
    height = context.size[1] if height is None else int(height)

    program = context.build_program(MODEL_VERTEX_SHADER, MODEL_FRAGMENT_SHADER)

    model = normalization_transform(mesh)
    view = look_at(CAMERA['position'], CAMERA['target'], CAMERA['up'])
    log_matrix('View', view)
    projection = perspective(CAMERA['fov_deg'], width / height, CAMERA['near'], CAMERA['far'])
    log_matrix('Perspective', projection)
    _set_uniforms(program, model, view, projection, material)

    positions = context.allocate_buffer(mesh.vertices)
    normals = context.allocate_buffer(mesh.normals)
    vao = context.vertex_array(program, [(positions, '3f', 'position'), (normals, '3f', 'normal')])

    if (width, height) == context.size:
        final = context.final_target()
    else:
        final = context.allocate_target((width, height))
    if antialiasing == 'fxaa':
        scene = context.allocate_target((width, height))
    else:
        scene = final

    context.clear(scene, background)
    context.submit(vao, scene, moderngl.TRIANGLES)
    logger.debug('drew %d triangles at %dx%d', mesh.triangle_count, width, height)

    if scene is not final:
        FxaaPass(context).apply(scene, final)

    return Frame(context.read_pixels(final), final)


def render(context, mesh, material: Optional[Material] = None,
           background: Sequence[float] = DEFAULTS['background'],
           antialiasing: str = DEFAULTS['antialiasing'],
           width: Optional[int] = None, height: Optional[int] = None) -> bytes:
    """Render `mesh` and return width*height*4 RGBA8 bytes, top row first."""
    return render_frame(context, mesh, material, background, antialiasing, width, height).pixels
