"""
日志配置

ytag 内部统一通过 get_logger() 取日志器，名称都在 "ytag." 之下，
应用只需配置 "ytag" 一个日志器即可控制整个库的输出。
"""

import inspect
import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Any, Optional


DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s"

# SQLAlchemy 的日志本身带有足够的上下文，只保留时间和级别
SQL_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class MicrosecondFormatter(logging.Formatter):
    """时间戳精确到微秒，便于对照同一秒内的多条 SQL 与标签同步日志"""

    def formatTime(self, record, datefmt=None):
        created = datetime.fromtimestamp(record.created)
        return f"{created.strftime(datefmt or _DATE_FORMAT)}.{created.microsecond:06d}"


def create_formatter(
    log_format: str = None,
    datefmt: str = _DATE_FORMAT,
    use_microseconds: bool = True,
) -> logging.Formatter:
    formatter_class = MicrosecondFormatter if use_microseconds else logging.Formatter
    return formatter_class(fmt=log_format or DEFAULT_LOG_FORMAT, datefmt=datefmt)


def _parse_level(level: Any) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    # 未知名称时 getLevelName 返回字符串
    return value if isinstance(value, int) else logging.INFO


def _file_handler(log_file: str, max_bytes: int, backup_count: int, encoding: str) -> logging.Handler:
    directory = os.path.dirname(log_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    if max_bytes > 0:
        return RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding=encoding,
        )
    return logging.FileHandler(log_file, encoding=encoding)


def setup_logger(
    name: str = None,
    level: str = "INFO",
    log_file: str = None,
    log_format: str = None,
    console: bool = True,
    use_microseconds: bool = True,
    propagate: bool = True,
    max_bytes: int = 0,
    backup_count: int = 5,
    encoding: str = "utf-8",
) -> logging.Logger:
    """配置日志器（重复调用会替换之前的处理器）

    Args:
        name: 日志器名称，为空时配置根日志器
        level: 级别名称，大小写均可
        log_file: 写入的文件，为空则不写文件
        log_format: 格式字符串，默认 DEFAULT_LOG_FORMAT
        console: 是否同时输出到 stderr
        use_microseconds: 时间戳是否带微秒
        propagate: 是否继续交给上级日志器
        max_bytes: 大于 0 时按文件大小轮转
        backup_count: 轮转保留的文件数
        encoding: 文件编码

    使用示例:
        setup_logger("ytag", level="DEBUG")
        setup_logger("ytag", log_file="logs/ytag.log", max_bytes=10 * 1024 * 1024)
    """
    target = logging.getLogger(name)
    target.setLevel(_parse_level(level))
    target.propagate = propagate

    for handler in list(target.handlers):
        target.removeHandler(handler)
        handler.close()

    formatter = create_formatter(log_format, use_microseconds=use_microseconds)
    handlers = []
    if console:
        handlers.append(logging.StreamHandler())
    if log_file:
        handlers.append(_file_handler(log_file, max_bytes, backup_count, encoding))
    for handler in handlers:
        handler.setFormatter(formatter)
        target.addHandler(handler)
    return target


def setup_sql_logger(
    level: str = "DEBUG",
    log_file: str = None,
    console: bool = False,
) -> logging.Logger:
    """把 sqlalchemy.engine 的 SQL 输出单独写到文件

    不向上传播，SQL 不会混进应用日志。

    使用示例:
        setup_sql_logger(level="INFO", log_file="logs/sql.log")
    """
    return setup_logger(
        name="sqlalchemy.engine",
        level=level,
        log_file=log_file,
        log_format=SQL_LOG_FORMAT,
        console=console,
        propagate=False,
    )


def setup_logger_from_config(config: Any, name: str = "ytag") -> logging.Logger:
    """按 LoggingSettings 配置日志器，sql_log_enabled 时一并配置 SQL 日志"""
    configured = setup_logger(
        name=name,
        level=getattr(config, "level", "INFO"),
        log_file=getattr(config, "file_path", None),
        console=getattr(config, "enable_console", True),
        max_bytes=getattr(config, "file_max_bytes", 0),
        backup_count=getattr(config, "file_backup_count", 5),
        encoding=getattr(config, "file_encoding", "utf-8"),
    )
    if getattr(config, "sql_log_enabled", False):
        setup_sql_logger(
            level=getattr(config, "sql_log_level", "DEBUG"),
            log_file=getattr(config, "sql_log_file_path", None),
        )
    return configured


def get_logger(name: str = None) -> logging.Logger:
    """取日志器

    - 不传名称: 使用调用方模块的 __name__
    - 不含点号的简写: 归到 ytag 之下（"taggable" -> "ytag.taggable"）
    - 其他名称原样使用

    使用示例:
        logger = get_logger()
        logger = get_logger("taggable")
    """
    if name is None:
        caller = inspect.currentframe().f_back
        name = caller.f_globals.get("__name__", "ytag") if caller is not None else "ytag"
    elif name != "ytag" and "." not in name:
        name = f"ytag.{name}"
    return logging.getLogger(name)


orm_logger = get_logger("orm")
taggable_logger = get_logger("taggable")

logger = logging.getLogger("ytag")
