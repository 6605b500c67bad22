"""
ytag - SQLAlchemy 多态标签库

提供按上下文管理的标签、标签集合查询，以及配套的ORM、配置、日志基础功能
"""

from .version import __version__, __author__, __description__

# 导出配置
from .config import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    TaggingSettings,
    configure_tagging,
    get_tagging_settings,
    load_yaml_config,
)

# 导出日志
from .log import (
    setup_logger,
    setup_logger_from_config,
    get_logger,
)

# 导出ORM基类与标签扩展
from .orm import (
    Base,
    CoreModel,
    init_database,
    get_engine,
    db_session_scope,
    AbstractTag,
    AbstractTagging,
    TaggableMixin,
    TaggerMixin,
    TagList,
    TaggingError,
    TagValidationError,
    TagInUseError,
    FrozenTagListError,
    TaggableConfigError,
    is_taggable,
)

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "TaggingSettings",
    "configure_tagging",
    "get_tagging_settings",
    "load_yaml_config",
    "setup_logger",
    "setup_logger_from_config",
    "get_logger",
    "Base",
    "CoreModel",
    "init_database",
    "get_engine",
    "db_session_scope",
    "AbstractTag",
    "AbstractTagging",
    "TaggableMixin",
    "TaggerMixin",
    "TagList",
    "TaggingError",
    "TagValidationError",
    "TagInUseError",
    "FrozenTagListError",
    "TaggableConfigError",
    "is_taggable",
]
