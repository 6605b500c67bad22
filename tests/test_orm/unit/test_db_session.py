"""数据库会话管理测试

测试 init_database / db_session_scope / SQLite SAVEPOINT 支持。
"""

import os

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from ytag.config import DatabaseSettings
from ytag.orm import (
    Base,
    CoreModel,
    db_manager,
    db_session_scope,
    get_engine,
    init_database,
)

from tests.helpers import TagModel, TaggableUser


@pytest.fixture
def memory_database():
    """通过 init_database 初始化内存数据库"""
    engine, session_scope = init_database("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    yield engine
    db_manager.dispose()


class TestInitDatabase:
    """初始化测试"""

    def test_init_memory_database(self, memory_database):
        """测试初始化内存数据库"""
        assert db_manager.is_initialized
        assert get_engine() is memory_database
        assert CoreModel.query.session is db_manager.get_session()

    def test_init_from_config(self):
        """测试从配置对象初始化"""
        engine, _ = init_database(config=DatabaseSettings(url="sqlite:///:memory:"))
        try:
            assert str(engine.url) == "sqlite:///:memory:"
        finally:
            db_manager.dispose()

    def test_init_file_database(self, temp_dir):
        """测试初始化文件数据库"""
        path = os.path.join(temp_dir, "ytag_session_test.db")
        engine, _ = init_database(f"sqlite:///{path}")
        try:
            with engine.connect() as conn:
                assert conn.execute(text("SELECT 1")).scalar() == 1
        finally:
            db_manager.dispose()

    def test_url_required(self):
        """测试缺少数据库URL"""
        with pytest.raises(ValueError):
            init_database()

    def test_engine_before_init(self):
        """测试未初始化时获取引擎"""
        db_manager.dispose()

        with pytest.raises(RuntimeError):
            get_engine()
        assert not db_manager.is_initialized


class TestSessionScope:
    """会话上下文管理器测试"""

    def test_commit_on_success(self, memory_database):
        """测试正常退出时提交"""
        with db_session_scope():
            user = TaggableUser(name="tom")
            user.set_tag_list_on("tags", "python")
            user.save()

        with db_session_scope():
            user = TaggableUser.query.one()
            assert list(user.tag_list_on("tags")) == ["python"]

    def test_rollback_on_error(self, memory_database):
        """测试异常时回滚并重新抛出"""
        with pytest.raises(ValueError):
            with db_session_scope():
                TaggableUser(name="tom").save()
                raise ValueError("boom")

        with db_session_scope():
            assert TaggableUser.query.count() == 0


class TestSqliteSavepoints:
    """SQLite SAVEPOINT 支持测试"""

    def test_nested_rollback_keeps_outer_transaction(self, memory_database):
        """测试 SAVEPOINT 回滚不影响外层事务"""
        with db_session_scope() as session:
            session.add(TagModel(name="kept"))
            session.flush()
            with pytest.raises(IntegrityError):
                with session.begin_nested():
                    session.add(TagModel(name="kept"))

        with db_session_scope():
            assert [t.name for t in TagModel.query.all()] == ["kept"]
