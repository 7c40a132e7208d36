import logging

import numpy as np

from stlthumb.thumbnail.utils import log_matrix, safe_log_exception


def test_safe_log_exception_logs_with_context(caplog):
    try:
        raise ValueError('boom')
    except ValueError as exc:
        safe_log_exception('render failed', exc, width=4)
    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert 'render failed' in record.getMessage()
    assert 'width=4' in record.getMessage()
    assert record.exc_info is not None


def test_log_matrix_debug_rows(caplog):
    with caplog.at_level(logging.DEBUG, logger='stlthumb'):
        log_matrix('Model', np.eye(4))
    lines = [r.getMessage() for r in caplog.records]
    assert lines[0] == 'Model:'
    assert lines[1] == '1.000\t0.000\t0.000\t0.000'
    assert len(lines) == 5
