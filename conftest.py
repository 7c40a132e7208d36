import os

import pytest


def pytest_configure(config):
    config.addinivalue_line('markers', 'gl: test needs a working OpenGL context')


def pytest_collection_modifyitems(config, items):
    """Deselect tests marked `gl` when STLTHUMB_NO_GL is set.

    Machines without any usable OpenGL driver can crash inside native
    context creation, so those tests are not even attempted there.
    """
    if not os.environ.get('STLTHUMB_NO_GL'):
        return

    removed = []
    kept = []
    for item in items:
        if item.get_closest_marker('gl') is not None:
            removed.append(item)
        else:
            kept.append(item)

    if removed:
        config.hook.pytest_deselected(items=removed)
        items[:] = kept
        tr = config.pluginmanager.get_plugin('terminalreporter')
        if tr:
            tr.write_sep('-', f'Deselected {len(removed)} OpenGL tests (STLTHUMB_NO_GL is set)')


GL_PROBE_SIZE = (64, 48)


@pytest.fixture(scope="session")
def gl_available():
    """Skip the requesting test when no headless context can be created."""
    from stlthumb.thumbnail.context import acquire_context
    from stlthumb.thumbnail.environment import apply_driver_overrides
    from stlthumb.thumbnail.errors import ContextError

    apply_driver_overrides()
    try:
        context = acquire_context(*GL_PROBE_SIZE)
    except ContextError as exc:
        pytest.skip(f"no OpenGL context available: {exc}")
    context.release()
    return True


@pytest.fixture
def gl_context(gl_available):
    """Headless 64x48 context, released after the test."""
    from stlthumb.thumbnail.context import acquire_context

    context = acquire_context(*GL_PROBE_SIZE)
    yield context
    context.release()
