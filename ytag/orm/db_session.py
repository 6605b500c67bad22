"""
引擎与会话

init_database() 创建引擎和线程作用域的 session，并把 CoreModel.query
绑定到该 session；db_session_scope() 包裹一次业务操作（提交或回滚）。

SQLite 引擎会自动启用 SAVEPOINT 支持，标签的并发创建依赖它。
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generator, Optional, Tuple

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from ytag.log import get_logger

_logger = get_logger("ytag.orm.session")

__all__ = [
    'db_manager',
    'init_database',
    'get_engine',
    'db_session_scope',
    'enable_sqlite_savepoints',
]

# 可以从 DatabaseSettings 读取的引擎参数及默认值
_ENGINE_OPTIONS: Dict[str, Any] = {
    "echo": False,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
    "pool_recycle": 3600,
    "pool_pre_ping": True,
}


def enable_sqlite_savepoints(engine: Engine) -> Engine:
    """让 pysqlite 引擎支持 session.begin_nested()

    pysqlite 会推迟发出 BEGIN，SAVEPOINT 因此落在事务之外。
    关闭驱动自己的事务处理，由 SQLAlchemy 在事务开始时发出 BEGIN。
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def _is_sqlite_memory(url: str) -> bool:
    return url.split("?", 1)[0] in ("sqlite://", "sqlite:///:memory:")


def _build_engine(url: str, options: Dict[str, Any]) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, **options)

    # SQLite 不使用连接池参数
    kwargs: Dict[str, Any] = {
        "echo": options["echo"],
        "connect_args": {"check_same_thread": False},
    }
    if _is_sqlite_memory(url):
        # 单连接，否则每个连接各自是一个空库
        kwargs["poolclass"] = StaticPool
    else:
        kwargs["connect_args"]["timeout"] = options["pool_timeout"]
    return enable_sqlite_savepoints(create_engine(url, **kwargs))


class DatabaseManager:
    """进程内唯一的引擎与会话持有者

    使用示例:
        from ytag.orm import db_manager

        db_manager.init("sqlite:///./tags.db")
        session = db_manager.get_session()
    """
    _instance: Optional["DatabaseManager"] = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._engine = None
            instance._session_scope = None
            cls._instance = instance
        return cls._instance

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("尚未初始化数据库，请先调用 init_database()")
        return self._engine

    @property
    def session_scope(self) -> scoped_session:
        if self._session_scope is None:
            raise RuntimeError("尚未初始化数据库，请先调用 init_database()")
        return self._session_scope

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None and self._session_scope is not None

    def init(
        self,
        database_url: str = None,
        *,
        config: Any = None,
        logger: logging.Logger = None,
        scopefunc: Callable = None,
        auto_setup_query: bool = True,
        **engine_options,
    ) -> Tuple[Engine, scoped_session]:
        """创建引擎和 scoped_session

        Args:
            database_url: 数据库URL
            config: DatabaseSettings，提供时其中的 url 和连接池参数优先
            logger: 日志记录器，默认 ytag.orm.session
            scopefunc: session 作用域函数，默认按线程
            auto_setup_query: 是否把 CoreModel.query 绑定到新的 session
            **engine_options: echo / pool_size / max_overflow / pool_timeout /
                pool_recycle / pool_pre_ping

        Returns:
            (engine, session_scope)
        """
        log = logger or _logger

        unknown = set(engine_options) - set(_ENGINE_OPTIONS)
        if unknown:
            raise TypeError(f"不支持的引擎参数: {sorted(unknown)}")
        options = {**_ENGINE_OPTIONS, **engine_options}
        if config is not None:
            database_url = getattr(config, "url", None) or database_url
            for name in _ENGINE_OPTIONS:
                options[name] = getattr(config, name, options[name])

        if not database_url:
            raise ValueError("缺少 database_url（通过参数或 config.url 提供）")

        self._engine = _build_engine(database_url, options)
        self._session_scope = scoped_session(
            sessionmaker(bind=self._engine, autoflush=True),
            scopefunc=scopefunc,
        )
        log.info(f"数据库已连接: {self._engine.url!r}")

        if auto_setup_query:
            from .core_model import CoreModel
            CoreModel.query = self._session_scope.query_property()
            log.debug("CoreModel.query 已绑定到当前 scoped_session")

        return self._engine, self._session_scope

    def get_session(self) -> Session:
        """当前作用域的 session"""
        return self.session_scope()

    def remove_session(self) -> None:
        if self._session_scope is not None:
            self._session_scope.remove()

    def dispose(self) -> None:
        """关闭 session 并释放引擎"""
        self.remove_session()
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_scope = None


db_manager = DatabaseManager()


def init_database(database_url: str = None, **kwargs) -> Tuple[Engine, scoped_session]:
    """db_manager.init() 的快捷方式

    engine, session_scope = init_database("sqlite:///:memory:")
    engine, session_scope = init_database(config=settings.database)
    """
    return db_manager.init(database_url, **kwargs)


def get_engine() -> Engine:
    return db_manager.engine


@contextmanager
def db_session_scope() -> Generator[Session, None, None]:
    """一次业务操作的 session

    退出时提交；出现异常则回滚并继续抛出。无论成功与否都会移除 session。

    使用示例:
        with db_session_scope():
            article = Article(title="Hello")
            article.set_tag_list_on("tags", "python, orm")
            article.save()
    """
    session = db_manager.get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        db_manager.remove_session()
