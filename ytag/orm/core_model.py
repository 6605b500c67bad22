"""
ORM基础模型

提供常用的CRUD操作，以及保存后回调（after-save hooks）机制。
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, List, Tuple, TYPE_CHECKING

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, mapped_column, declared_attr, Session, Query, object_session

if TYPE_CHECKING:
    from typing_extensions import Self

from ytag.log import get_logger

from .id_model import IdModel, Base
from .utils import to_snake_case

_logger = get_logger("ytag.orm.core_model")


class CoreModel(IdModel):
    """业务模型基类

    在 IdModel 的整数主键之上增加：
    - 未声明 __tablename__ 时由类名生成表名（TagGroup -> tag_group）
    - created_at / updated_at
    - save / delete / refresh / get 等便捷方法
    - 保存后回调：Mixin 通过 __after_save__ 注册方法名，
      save() 在 flush 之后、commit 之前依次调用

    使用示例:
        from ytag.orm import CoreModel, init_database

        init_database("sqlite:///./test.db")

        class User(CoreModel):
            __tablename__ = "user"  # 可选，不指定则自动生成
            username: Mapped[str] = mapped_column(String(50), unique=True)

        user = User(username="tom")
        user.save(commit=True)

    保存后回调示例:
        class AuditMixin:
            __after_save__ = ("write_audit",)

            def write_audit(self):
                ...
    """
    __abstract__ = True

    # 保存后回调的方法名（Mixin 声明，按 MRO 从基类到子类合并）
    __after_save__: ClassVar[Tuple[str, ...]] = ()

    # query 属性由 init_database() 或测试中的 scoped_session.query_property() 设置
    if TYPE_CHECKING:
        query: ClassVar[Query[Self]]

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """驼峰命名转下划线"""
        return to_snake_case(cls.__name__)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        default=datetime.now,
        server_default=func.now(),
        comment="创建时间"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=True,
        onupdate=datetime.now,
        comment="更新时间"
    )

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.id}>"

    @property
    def session(self) -> Session:
        """获取当前session

        优先使用对象已绑定的 session，其次是 query 属性的 session，
        最后是全局 scoped_session。
        """
        session = object_session(self)
        if session is not None:
            return session
        query = getattr(self.__class__, "query", None)
        if query is not None:
            return query.session
        from .db_session import db_manager
        return db_manager.get_session()

    # ==================== 保存后回调 ====================

    @classmethod
    def after_save_callbacks(cls) -> List[str]:
        """获取保存后回调方法名列表（去重，基类在前）"""
        names: List[str] = []
        for klass in reversed(cls.__mro__):
            for name in klass.__dict__.get("__after_save__", ()):
                if name not in names:
                    names.append(name)
        return names

    def _run_after_save(self, session: Session, commit: bool) -> None:
        callbacks = self.after_save_callbacks()
        if not callbacks:
            return
        try:
            # 回调依赖主键，先 flush 写入自身字段
            session.flush()
            for name in callbacks:
                getattr(self, name)()
        except Exception as e:
            if commit:
                _logger.warning(f"{self!r} 保存后回调失败，回滚事务: {e}")
                session.rollback()
            raise

    # ==================== CRUD ====================

    def save(self, commit: bool = False) -> Self:
        """加入 session 并执行保存后回调

        有回调时先 flush（回调需要主键），再按顺序调用回调，最后按需提交。

        回调抛出异常时，commit=True 会回滚整个事务（对象自身的修改和回调
        已完成的部分一起撤销）并重新抛出；commit=False 时由调用方决定回滚。

        Returns:
            self
        """
        session = self.session
        session.add(self)
        self._run_after_save(session, commit)
        if commit:
            session.commit()
        return self

    def delete(self, commit: bool = False):
        """删除对象"""
        session = self.session
        session.delete(self)
        if commit:
            session.commit()

    def refresh(self, attribute_names: list = None) -> Self:
        """从数据库重新读取（可只刷新部分属性）"""
        if attribute_names:
            self.session.refresh(self, attribute_names)
        else:
            self.session.refresh(self)
        return self

    @classmethod
    def get(cls, id: int):
        """根据主键获取对象，不存在返回 None"""
        return cls.query.session.get(cls, id)

    @classmethod
    def get_all(cls):
        """获取所有对象"""
        return cls.query.all()

    def to_dict(self, exclude: set = None) -> dict:
        """转换为字典（仅包含表字段）"""
        exclude = exclude or set()
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
            if column.name not in exclude
        }


__all__ = [
    "Base",
    "CoreModel",
]
