"""日志模块

提供日志配置与获取：
- setup_logger: 创建控制台/文件日志记录器
- setup_sql_logger: 配置 SQLAlchemy SQL 日志
- get_logger: 获取日志记录器（自动推断模块名）

使用示例:
    from ytag.log import setup_logger, get_logger

    setup_logger("ytag", level="DEBUG", log_file="logs/ytag.log")

    logger = get_logger()
    logger.info("标签已保存")
"""

from .logger import (
    setup_logger,
    setup_logger_from_config,
    setup_sql_logger,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    SQL_LOG_FORMAT,
    orm_logger,
    taggable_logger,
    logger,
    get_logger,
)

__all__ = [
    "setup_logger",
    "setup_logger_from_config",
    "setup_sql_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "SQL_LOG_FORMAT",
    "orm_logger",
    "taggable_logger",
    "logger",
    "get_logger",
]
