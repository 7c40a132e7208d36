# -*- coding: utf-8 -*-

"""
thumbnail/config.py

This module centralizes the configuration for thumbnail rendering. Camera
placement, lighting, default colors and output dimensions live here so that
ingestion, rendering, the CLI and the foreign entry point agree on them.

Contents:
---------
1. CAMERA:
   - Fixed eye position, look-at target, up vector, field of view and clip planes.
   - Thumbnails always use this one view so repeated runs are reproducible.

2. LIGHTING:
   - Direction of the single light used by the model shader.

3. DEFAULTS:
   - Output width/height, background color, antialiasing method and the other
     per-invocation switches.

4. RENDERING:
   - Requested GL version, window title and the presentation loop polling interval.

5. Material / Config:
   - `Material` holds the ambient/diffuse/specular colors.
   - `Config` bundles everything a single invocation needs.

Usage:
------
    from stlthumb.thumbnail.config import Config, Material

    cfg = Config(model_filename='part.stl', img_filename='part.png')
    cfg = Config(model_filename='part.stl', width=256, height=256,
                 material=Material(diffuse=(1.0, 0.2, 0.2)))
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple

RGB = Tuple[float, float, float]
RGBA = Tuple[float, float, float, float]

STDIN_SENTINEL = '-'

# ───────────────────────────────────────────────────────────────────────────────
# 1) CAMERA (model space is normalized to the [-1, 1] cube before viewing)
# ───────────────────────────────────────────────────────────────────────────────
CAMERA = {
    'position': (2.0, -4.0, 2.0),   # eye, looking down on the model from the front-right
    'target': (0.0, 0.0, 0.0),      # the normalized model is centered on the origin
    'up': (0.0, 0.0, 1.0),          # +Z is up, as in most CAD/printing tools
    'fov_deg': 30.0,                # vertical field of view
    'near': 0.1,
    'far': 1024.0,
}

# ───────────────────────────────────────────────────────────────────────────────
# 2) LIGHTING
# ───────────────────────────────────────────────────────────────────────────────
LIGHTING = {
    'direction': (-1.1, 0.4, 1.0),
    'shininess': 16.0,
}

# ───────────────────────────────────────────────────────────────────────────────
# 3) PER-INVOCATION DEFAULTS
# ───────────────────────────────────────────────────────────────────────────────
DEFAULTS = {
    'width': 1024,
    'height': 768,
    'background': (1.0, 1.0, 1.0, 0.0),   # transparent white
    'antialiasing': 'fxaa',
    'visible': False,
    'recalc_normals': False,
    'verbosity': 0,
}

ANTIALIASING_METHODS = ('none', 'fxaa')

# ───────────────────────────────────────────────────────────────────────────────
# 4) RENDERING
# ───────────────────────────────────────────────────────────────────────────────
RENDERING = {
    'gl_version': (3, 3),
    'present_interval_s': 0.010,     # presentation loop polling period
    'window_title': 'stl-thumb',
}


@dataclass(frozen=True)
class Material:
    """Surface colors for the model shader, each an RGB triple in [0, 1]."""
    ambient: RGB = (0.0, 0.0, 0.4)
    diffuse: RGB = (0.0, 0.5, 1.0)
    specular: RGB = (1.0, 1.0, 1.0)

    def __post_init__(self):
        for name in ('ambient', 'diffuse', 'specular'):
            value = tuple(float(c) for c in getattr(self, name))
            if len(value) != 3 or any(c < 0.0 or c > 1.0 for c in value):
                raise ValueError(f'{name} must be three components in [0, 1], got {value!r}')
            object.__setattr__(self, name, value)


@dataclass
class Config:
    """Everything one render invocation needs.

    `model_filename` may be `STDIN_SENTINEL` to read the model from standard
    input. `img_filename` of None means the encoded image goes to stdout.
    """
    model_filename: str
    img_filename: Optional[str] = None
    format: Optional[str] = None
    width: int = DEFAULTS['width']
    height: int = DEFAULTS['height']
    visible: bool = DEFAULTS['visible']
    verbosity: int = DEFAULTS['verbosity']
    material: Material = field(default_factory=Material)
    background: RGBA = DEFAULTS['background']
    antialiasing: str = DEFAULTS['antialiasing']
    recalc_normals: bool = DEFAULTS['recalc_normals']

    def __post_init__(self):
        self.width = int(self.width)
        self.height = int(self.height)
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f'image size must be positive, got {self.width}x{self.height}')
        if self.antialiasing not in ANTIALIASING_METHODS:
            raise ValueError(f'antialiasing must be one of {ANTIALIASING_METHODS}, got {self.antialiasing!r}')
        background = tuple(float(c) for c in self.background)
        if len(background) != 4:
            raise ValueError(f'background must be RGBA, got {self.background!r}')
        self.background = background


def parse_hex_color(text: str, components: int = 4) -> tuple:
    """Parse `RRGGBB` or `RRGGBBAA` (optional leading '#') into floats in [0, 1].

    A six digit value asked for as RGBA gets an alpha of 1.0.
    """
    digits = text.strip().lstrip('#')
    if len(digits) not in (6, 8):
        raise ValueError(f'expected RRGGBB or RRGGBBAA, got {text!r}')
    try:
        values = [int(digits[i:i + 2], 16) / 255.0 for i in range(0, len(digits), 2)]
    except ValueError:
        raise ValueError(f'invalid hex color {text!r}') from None
    if components == 4 and len(values) == 3:
        values.append(1.0)
    if len(values) != components:
        raise ValueError(f'expected {components} components, got {text!r}')
    return tuple(values)
