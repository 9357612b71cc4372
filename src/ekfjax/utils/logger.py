"""
Logging utilities for ekfjax
ekfjax日志工具

Provides consistent logging across the project.
提供项目中一致的日志记录。
"""

import logging
import sys
from typing import Optional
from rich.logging import RichHandler
from rich.console import Console

# Console for rich output / Rich输出控制台
console = Console(stderr=True)


def setup_logger(
    name: str = "ekfjax",
    level: str = "INFO",
    use_rich: bool = True,
) -> logging.Logger:
    """
    Setup logger with consistent formatting.
    设置具有一致格式的日志记录器。

    Args:
        name: Logger name / 日志记录器名称
        level: Logging level / 日志级别
        use_rich: Whether to use rich formatting / 是否使用rich格式

    Returns:
        logger: Configured logger / 配置好的日志记录器
    """
    logger = logging.getLogger(name)
    # 如果已经配置，无需重复 / Skip if already configured
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper()))

    if use_rich:
        handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    logger.addHandler(handler)
    logger.propagate = False  # 避免重复打印

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get logger instance under the ``ekfjax`` hierarchy.
    获取日志记录器实例。

    Args:
        name: Logger name, defaults to the caller's module name / 默认为调用者模块名

    Returns:
        logger: Logger instance / 日志记录器实例
    """
    if name is None:
        import inspect
        frame = inspect.currentframe()
        if frame and frame.f_back:
            name = frame.f_back.f_globals.get("__name__", "ekfjax")
        else:
            name = "ekfjax"

    # Ensure root project logger is setup / 确保日志记录器已设置
    if not logging.getLogger("ekfjax").handlers:
        setup_logger()

    return logging.getLogger(name)


# Convenience functions / 便利函数
def log_info(message: str, **kwargs):
    """Log info message / 记录信息消息"""
    get_logger("ekfjax").info(message, **kwargs)


def log_warning(message: str, **kwargs):
    """Log warning message / 记录警告消息"""
    get_logger("ekfjax").warning(message, **kwargs)


def log_error(message: str, **kwargs):
    """Log error message / 记录错误消息"""
    get_logger("ekfjax").error(message, **kwargs)


def log_debug(message: str, **kwargs):
    """Log debug message / 记录调试消息"""
    get_logger("ekfjax").debug(message, **kwargs)
