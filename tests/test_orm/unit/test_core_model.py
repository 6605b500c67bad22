"""CoreModel 测试

测试保存后回调机制、CRUD 方法和自动表名。
"""

import logging

import pytest
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, sessionmaker, scoped_session

from ytag.orm import CoreModel, Base, to_snake_case


CALLS = []


class AuditMixin:
    __after_save__ = ("write_audit",)

    def write_audit(self):
        CALLS.append(("audit", self.id))


class CallbackNote(CoreModel, AuditMixin):
    """带保存后回调的模型"""
    __tablename__ = "test_callback_note"
    __table_args__ = {'extend_existing': True}
    __after_save__ = ("write_log", "write_audit")

    title: Mapped[str] = mapped_column(String(100))

    def write_log(self):
        if getattr(self, "fail", False):
            raise RuntimeError("callback failed")
        CALLS.append(("log", self.title))


class PlainRecord(CoreModel):
    """无回调的模型（自动表名）"""
    __table_args__ = {'extend_existing': True}

    title: Mapped[str] = mapped_column(String(100), nullable=True)


class TestCoreModelBase:
    """CoreModel 测试基类"""

    @pytest.fixture(autouse=True)
    def setup_db(self, memory_engine):
        """初始化数据库"""
        CALLS.clear()
        Base.metadata.create_all(bind=memory_engine)
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=memory_engine)
        self.session_scope = scoped_session(SessionLocal)
        CoreModel.query = self.session_scope.query_property()
        yield
        self.session_scope.remove()


class TestAfterSave(TestCoreModelBase):
    """保存后回调测试"""

    def test_callbacks_merged_over_mro(self):
        """测试回调按 MRO 合并去重，基类在前"""
        assert CallbackNote.after_save_callbacks() == ["write_audit", "write_log"]
        assert PlainRecord.after_save_callbacks() == []

    def test_callbacks_run_after_flush(self):
        """测试回调在 flush 之后执行（主键已生成）"""
        note = CallbackNote(title="hello")
        note.save(commit=True)

        assert CALLS == [("audit", note.id), ("log", "hello")]
        assert note.id is not None

    def test_failed_callback_rolls_back_when_committing(self, caplog):
        """测试 commit=True 时回调失败回滚整个事务"""
        note = CallbackNote(title="broken")
        note.fail = True

        with caplog.at_level(logging.WARNING, logger="ytag.orm.core_model"):
            with pytest.raises(RuntimeError):
                note.save(commit=True)

        assert CallbackNote.query.count() == 0
        assert "回滚事务" in caplog.text

    def test_failed_callback_without_commit(self):
        """测试 commit=False 时异常向上抛出，由调用方回滚"""
        note = CallbackNote(title="broken")
        note.fail = True

        with pytest.raises(RuntimeError):
            note.save()

        self.session_scope.rollback()
        assert CallbackNote.query.count() == 0

    def test_save_without_callbacks(self):
        """测试无回调模型的保存"""
        record = PlainRecord(title="plain").save(commit=True)

        assert PlainRecord.get(record.id).title == "plain"


class TestCrud(TestCoreModelBase):
    """CRUD 方法测试"""

    def test_auto_tablename(self):
        """测试自动表名"""
        assert PlainRecord.__tablename__ == "plain_record"
        assert to_snake_case("APIClient") == "api_client"

    def test_timestamps(self):
        """测试创建时间自动填充，更新时间在修改后填充"""
        record = PlainRecord(title="a").save(commit=True)
        assert record.created_at is not None
        assert record.updated_at is None

        record.title = "b"
        record.save(commit=True)
        assert record.updated_at is not None

    def test_get_all_and_delete(self):
        """测试查询全部和删除"""
        first = PlainRecord(title="a").save(commit=True)
        PlainRecord(title="b").save(commit=True)

        first.delete(commit=True)

        assert [r.title for r in PlainRecord.get_all()] == ["b"]
        assert PlainRecord.get(9999) is None

    def test_refresh(self):
        """测试从数据库刷新"""
        record = PlainRecord(title="a").save(commit=True)
        self.session_scope.execute(PlainRecord.__table__.update().values(title="z"))

        assert record.refresh(["title"]).title == "z"

    def test_to_dict(self):
        """测试转换为字典"""
        record = PlainRecord(title="a").save(commit=True)

        data = record.to_dict(exclude={"created_at", "updated_at"})

        assert data == {"id": record.id, "title": "a"}
