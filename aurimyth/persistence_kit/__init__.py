"""AuriMyth Persistence Kit - 通用数据访问层。

按实体契约提供 CRUD、软删除、审计字段维护，以及按字段路径动态排序的分页查询。

分层：
- common: 异常基类、日志
- core: 配置
- domain: 实体契约、查询构建器、分页、仓储
"""

from . import common, core, domain

__version__ = "0.1.0"

__all__ = [
    "common",
    "core",
    "domain",
]
