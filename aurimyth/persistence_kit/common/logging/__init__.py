"""日志管理器 - 统一的日志配置和管理。

提供：
- 统一的日志配置（日志级别、滚动机制、错误日志单独存放）
- 数据访问日志分类（repository / database 模块单独成文件）
- 性能监控装饰器
- 异常日志装饰器
- 链路追踪 ID 支持
"""

from __future__ import annotations

from collections.abc import Callable
from contextvars import ContextVar
from functools import wraps
import os
import sys
import time
from typing import TYPE_CHECKING, Any
import uuid

from loguru import logger

if TYPE_CHECKING:
    from aurimyth.persistence_kit.core.config import LogSettings

# 移除默认配置，由 setup_logging 统一配置
logger.remove()
logger.configure(extra={"trace_id": "-"})

_trace_id: ContextVar[str | None] = ContextVar("trace_id", default=None)

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> | "
    "{extra[trace_id]:.8} - "
    "<level>{message}</level>"
)

_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | "
    "{level: <8} | "
    "{name}:{function}:{line} | "
    "{extra[trace_id]} - "
    "{message}"
)


def get_trace_id() -> str:
    """获取当前链路追踪ID，不存在时生成一个。"""
    trace_id = _trace_id.get()
    if trace_id is None:
        trace_id = str(uuid.uuid4())
        _trace_id.set(trace_id)
    return trace_id


def set_trace_id(trace_id: str) -> None:
    """设置当前上下文的链路追踪ID。"""
    _trace_id.set(trace_id)


def _is_data_access_record(record: dict[str, Any]) -> bool:
    name = record["name"].lower()
    return "database" in name or "repository" in name


def _add_file_sink(
    path: str,
    *,
    level: str,
    rotation: str,
    retention_days: int,
    filter: Callable[[dict[str, Any]], bool] | None = None,
) -> None:
    logger.add(
        path,
        rotation=rotation,
        retention=f"{retention_days} days",
        level=level,
        format=_FILE_FORMAT,
        encoding="utf-8",
        enqueue=True,  # 异步写入
        filter=filter,
    )


def setup_logging(
    log_level: str = "INFO",
    log_dir: str | None = None,
    enable_file_rotation: bool = True,
    rotation_size: str = "100 MB",
    rotation_time: str = "00:00",
    retention_days: int = 7,
    enable_classify: bool = True,
    enable_console: bool = True,
    enable_error_file: bool = True,
    enable_file: bool = True,
) -> None:
    """设置日志配置。

    Args:
        log_level: 日志级别（DEBUG/INFO/WARNING/ERROR/CRITICAL）
        log_dir: 日志目录（默认：./log）
        enable_file_rotation: 是否按时间滚动（否则按文件大小滚动）
        rotation_size: 文件大小阈值（默认：100 MB）
        rotation_time: 每日滚动时间（默认：00:00）
        retention_days: 日志保留天数（默认：7 天）
        enable_classify: 是否将数据访问日志单独存放
        enable_console: 是否输出到控制台
        enable_error_file: 是否单独记录错误日志
        enable_file: 是否写入日志文件
    """
    log_level = log_level.upper()
    log_dir = log_dir or "log"

    logger.remove()

    if enable_console:
        logger.add(
            sys.stderr,
            format=_CONSOLE_FORMAT,
            level=log_level,
            colorize=True,
        )

    if enable_file:
        os.makedirs(log_dir, exist_ok=True)
        rotation = rotation_time if enable_file_rotation else rotation_size
        suffix = "_{time:YYYY-MM-DD}" if enable_file_rotation else ""

        _add_file_sink(
            os.path.join(log_dir, f"app{suffix}.log"),
            level=log_level,
            rotation=rotation,
            retention_days=retention_days,
        )

        if enable_error_file:
            _add_file_sink(
                os.path.join(log_dir, f"error{suffix}.log"),
                level="ERROR",
                rotation=rotation,
                retention_days=retention_days,
            )

        if enable_classify:
            # 仓储 / 数据库操作日志
            _add_file_sink(
                os.path.join(log_dir, f"database{suffix}.log"),
                level="DEBUG",
                rotation=rotation,
                retention_days=retention_days,
                filter=_is_data_access_record,
            )

    logger.info(
        f"日志系统初始化完成 | 级别: {log_level} | "
        f"目录: {log_dir} | "
        f"文件: {enable_file} | "
        f"分类: {enable_classify}"
    )


def setup_logging_from_settings(settings: LogSettings) -> None:
    """根据 LogSettings 配置日志。"""
    setup_logging(
        log_level=settings.level,
        log_dir=settings.dir,
        enable_file_rotation=settings.enable_file_rotation,
        rotation_size=settings.rotation_size,
        rotation_time=settings.rotation_time,
        retention_days=settings.retention_days,
        enable_classify=settings.enable_classify,
        enable_console=settings.enable_console,
        enable_file=settings.enable_file,
    )


def log_performance(threshold: float = 1.0) -> Callable:
    """性能监控装饰器（异步函数）。

    记录函数执行时间，超过阈值时警告。

    Args:
        threshold: 警告阈值（秒）

    使用示例:
        @log_performance(threshold=0.5)
        async def load_page():
            ...
    """
    def decorator[T](func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                duration = time.perf_counter() - start_time
                logger.error(
                    f"执行失败: {func.__qualname__} | "
                    f"耗时: {duration:.3f}s | "
                    f"异常: {type(exc).__name__}: {exc}"
                )
                raise

            duration = time.perf_counter() - start_time
            if duration > threshold:
                logger.warning(
                    f"性能警告: {func.__qualname__} 执行耗时 {duration:.3f}s "
                    f"(阈值: {threshold}s)"
                )
            else:
                logger.debug(f"性能: {func.__qualname__} 执行耗时 {duration:.3f}s")
            return result

        return wrapper
    return decorator


def log_exceptions[T](func: Callable[..., T]) -> Callable[..., T]:
    """异常日志装饰器，记录异步函数抛出的异常后原样抛出。"""
    @wraps(func)
    async def wrapper(*args, **kwargs) -> T:
        try:
            return await func(*args, **kwargs)
        except Exception as exc:
            logger.exception(
                f"异常捕获: {func.__qualname__} | "
                f"异常: {type(exc).__name__}: {exc}"
            )
            raise

    return wrapper


def get_class_logger(obj: object) -> Any:
    """获取绑定了类名和链路追踪ID的日志器。

    Args:
        obj: 对象实例或类

    使用示例:
        class CustomerRepository(BaseRepository[Customer]):
            async def archive(self):
                log = get_class_logger(self)
                log.info("归档客户")
    """
    cls = obj if isinstance(obj, type) else obj.__class__
    return logger.bind(
        name=f"{cls.__module__}.{cls.__name__}",
        trace_id=get_trace_id(),
    )


__all__ = [
    "get_class_logger",
    "get_trace_id",
    "log_exceptions",
    "log_performance",
    "logger",
    "set_trace_id",
    "setup_logging",
    "setup_logging_from_settings",
]
