"""ORM模块

提供标签库使用的ORM基础设施：
- CoreModel: 核心模型基类，包含ID、时间戳、CRUD、保存后回调
- 数据库会话管理
- 标签扩展（taggable）

使用示例:
    from ytag.orm import CoreModel, init_database, db_session_scope
    from ytag.orm import AbstractTag, AbstractTagging, TaggableMixin

    init_database("sqlite:///./app.db")

    class Tag(CoreModel, AbstractTag):
        __tablename__ = "tag"

    class Tagging(CoreModel, AbstractTagging):
        __tablename__ = "tagging"
        __tag_model__ = Tag

    class Article(CoreModel, TaggableMixin):
        __tablename__ = "article"
        __tag_model__ = Tag
        title = mapped_column(String(200))
"""

from .id_model import IdModel, Base
from .core_model import CoreModel
from .db_session import (
    db_manager,
    init_database,
    get_engine,
    db_session_scope,
    enable_sqlite_savepoints,
)
from .utils import to_snake_case

# 标签扩展
from .taggable import (
    AbstractTag,
    AbstractTagging,
    TaggableMixin,
    TaggerMixin,
    TagList,
    TagContext,
    BoundTagContext,
    CacheState,
    TaggingError,
    TagValidationError,
    TagInUseError,
    FrozenTagListError,
    TaggableConfigError,
    is_taggable,
)

__all__ = [
    "Base",
    "IdModel",
    "CoreModel",
    "db_manager",
    "init_database",
    "get_engine",
    "db_session_scope",
    "enable_sqlite_savepoints",
    "to_snake_case",
    "AbstractTag",
    "AbstractTagging",
    "TaggableMixin",
    "TaggerMixin",
    "TagList",
    "TagContext",
    "BoundTagContext",
    "CacheState",
    "TaggingError",
    "TagValidationError",
    "TagInUseError",
    "FrozenTagListError",
    "TaggableConfigError",
    "is_taggable",
]
