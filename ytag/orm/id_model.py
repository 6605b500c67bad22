"""声明基类与整数主键

标签关联以 (taggable_type, taggable_id) 引用被标记的记录，
所以可打标签的模型统一使用整数自增主键。

一般直接继承 CoreModel；IdModel 只提供 id 列。
"""

from __future__ import annotations

from sqlalchemy import Integer
from sqlalchemy.orm import declarative_base, Mapped, mapped_column, declared_attr


Base = declarative_base()


class IdModel(Base):
    """整数主键模型

    使用示例:
        class Tag(IdModel):
            __tablename__ = "tag"
            name = mapped_column(String(255))
    """
    __abstract__ = True

    @declared_attr
    def id(cls) -> Mapped[int]:
        return mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键ID")
