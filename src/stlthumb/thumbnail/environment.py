"""
environment.py

Process environment concerns for rendering: the graphics-driver override
applied once at startup, and the probe that tells context acquisition whether
a display server can be reached.

Functions:
- `driver_overrides(platform)` -> dict of environment variables to set
- `apply_driver_overrides(environ=None, platform=None)` -> the values applied
- `display_available(platform=None, environ=None)` -> bool

Notes:
- Nothing in here runs on import. Entry points call `apply_driver_overrides`
  explicitly before any GL library is loaded.
"""
from typing import Dict, MutableMapping, Mapping, Optional
import logging
import os
import sys

logger = logging.getLogger(__name__)

# Mesa 18.3 on Linux advertises the wrong GL version without this.
_LINUX_OVERRIDES = {
    'MESA_GL_VERSION_OVERRIDE': '3.3',
}

_DISPLAY_VARIABLES = ('DISPLAY', 'WAYLAND_DISPLAY')


def driver_overrides(platform: str) -> Dict[str, str]:
    """Environment variables to set for `platform` (a `sys.platform` value)."""
    if platform.startswith('linux'):
        return dict(_LINUX_OVERRIDES)
    return {}


def apply_driver_overrides(environ: Optional[MutableMapping[str, str]] = None,
                           platform: Optional[str] = None) -> Dict[str, str]:
    """Apply `driver_overrides` to `environ` (default `os.environ`).

    Values the user already set are left alone. Returns the mapping that was
    actually applied.
    """
    environ = os.environ if environ is None else environ
    platform = sys.platform if platform is None else platform
    applied = {}
    for key, value in driver_overrides(platform).items():
        if key in environ:
            logger.debug('keeping user-set %s=%s', key, environ[key])
            continue
        environ[key] = value
        applied[key] = value
    if applied:
        logger.debug('applied driver overrides: %s', applied)
    return applied


def display_available(platform: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> bool:
    """Whether a window system session looks reachable.

    Windows and macOS always have one for a logged-in process. Elsewhere an
    X11 or Wayland display must be advertised in the environment.
    """
    platform = sys.platform if platform is None else platform
    environ = os.environ if environ is None else environ
    if platform.startswith('win') or platform == 'darwin':
        return True
    return any(environ.get(name) for name in _DISPLAY_VARIABLES)
