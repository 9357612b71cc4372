"""
Utilities module for ekfjax
ekfjax工具模块

This module provides utility functions and helpers.
本模块提供工具函数和辅助功能。
"""

from .logger import (
    setup_logger,
    get_logger,
    log_info,
    log_warning,
    log_error,
    log_debug,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "log_info",
    "log_warning",
    "log_error",
    "log_debug",
]
