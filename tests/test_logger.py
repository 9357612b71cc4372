"""
日志工具测试 / Logging Utility Tests
"""

import logging

import pytest

from ekfjax.utils import setup_logger, get_logger, log_info, log_warning, log_error, log_debug


class _Collector(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def collector():
    """收集 ekfjax 日志记录 / Collect records of the ekfjax logger"""
    logger = get_logger("ekfjax")
    handler = _Collector()
    old_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield handler
    logger.removeHandler(handler)
    logger.setLevel(old_level)


class TestLogger:
    """测试日志记录器 / Test logger setup"""

    def test_setup_is_idempotent(self):
        first = setup_logger("ekfjax.test_setup", use_rich=False)
        n_handlers = len(first.handlers)
        second = setup_logger("ekfjax.test_setup", use_rich=False)
        assert first is second
        assert len(second.handlers) == n_handlers == 1
        assert not first.propagate

    def test_module_loggers_in_hierarchy(self):
        assert get_logger("ekfjax.filters.ekf").name == "ekfjax.filters.ekf"
        assert get_logger().name == __name__
        assert get_logger("ekfjax").handlers

    def test_helpers(self, collector):
        log_info("info message")
        log_warning("warning message")
        log_error("error message")
        log_debug("debug message")
        levels = [r.levelno for r in collector.records]
        assert levels == [logging.INFO, logging.WARNING, logging.ERROR, logging.DEBUG]

    def test_child_records_reach_package_logger(self, collector):
        get_logger("ekfjax.filters.kalman").warning("from a module")
        assert collector.records[-1].getMessage() == "from a module"
