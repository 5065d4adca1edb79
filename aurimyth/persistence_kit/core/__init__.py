"""核心层模块。

提供配置管理。
"""

from .config import LogSettings, RepositorySettings, Settings, get_settings

__all__ = [
    "LogSettings",
    "RepositorySettings",
    "Settings",
    "get_settings",
]
