"""共享配置。

使用 pydantic-settings 进行分层配置管理，所有配置均可通过环境变量覆盖。
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RepositorySettings(BaseSettings):
    """仓储配置。
    
    环境变量前缀: REPOSITORY_
    示例: REPOSITORY_INCLUDE_DELETED_DIRECTIVE, REPOSITORY_DEFAULT_ACTOR
    """
    
    include_deleted_directive: str = Field(
        default="deleted",
        description="includes 中表示“包含已软删除记录”的保留指令"
    )
    default_actor: Optional[str] = Field(
        default=None,
        description="既没有显式指定、也无法从上下文解析操作人时使用的审计操作人"
    )
    max_page_size: Optional[int] = Field(
        default=None,
        description="每页数量上限（为空表示不限制）"
    )
    
    model_config = SettingsConfigDict(
        env_prefix="REPOSITORY_",
        case_sensitive=False,
    )
    
    @field_validator("max_page_size")
    @classmethod
    def _check_max_page_size(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError("max_page_size 必须大于等于 1")
        return value


class LogSettings(BaseSettings):
    """日志配置。
    
    环境变量前缀: LOG_
    示例: LOG_LEVEL, LOG_DIR, LOG_RETENTION_DAYS
    """
    
    level: str = Field(
        default="INFO",
        description="日志级别"
    )
    dir: Optional[str] = Field(
        default=None,
        description="日志目录（默认 ./log）"
    )
    enable_file: bool = Field(
        default=True,
        description="是否写入日志文件"
    )
    enable_file_rotation: bool = Field(
        default=True,
        description="是否按时间滚动日志文件"
    )
    rotation_size: str = Field(
        default="100 MB",
        description="按大小滚动时的文件大小阈值"
    )
    rotation_time: str = Field(
        default="00:00",
        description="按时间滚动时的每日滚动时间"
    )
    retention_days: int = Field(
        default=7,
        description="日志保留天数"
    )
    enable_classify: bool = Field(
        default=True,
        description="是否将仓储/数据库日志单独存放"
    )
    enable_console: bool = Field(
        default=True,
        description="是否输出到控制台"
    )
    
    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """顶层配置，聚合各子配置。"""
    
    repository: RepositorySettings = Field(default_factory=RepositorySettings)
    log: LogSettings = Field(default_factory=LogSettings)
    
    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """获取全局配置（进程内缓存）。"""
    return Settings()


__all__ = [
    "LogSettings",
    "RepositorySettings",
    "Settings",
    "get_settings",
]
