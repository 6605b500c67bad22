"""标签模型定义

提供标签系统的抽象模型定义。

使用示例:
    from ytag.orm import CoreModel
    from ytag.orm.taggable import AbstractTag, AbstractTagging

    # 定义项目的标签模型
    class Tag(CoreModel, AbstractTag):
        __tablename__ = "tag"

    class Tagging(CoreModel, AbstractTagging):
        __tablename__ = "tagging"
        __tag_model__ = Tag
"""

from typing import Any, Dict, Iterable, List, Optional, Type, Union

from sqlalchemy import (
    ForeignKey, Index, Integer, String, UniqueConstraint,
    event, false, func, or_, select, text,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Query, Session, declared_attr, mapped_column, relationship

from ytag.config import get_tagging_settings
from ytag.log import get_logger

from .exceptions import TaggableConfigError, TagInUseError, TagValidationError

_logger = get_logger("ytag.orm.taggable")

LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """转义 LIKE 通配符，使名称按字面匹配"""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class AbstractTag:
    """标签抽象模型

    标签名称全局唯一，所有可打标签的模型、所有上下文共享同一个标签表。
    名称查找默认大小写不敏感（见 TaggingSettings.strict_case_match）。

    字段说明:
        - name: 标签名称（唯一，非空）

    使用示例:
        class Tag(CoreModel, AbstractTag):
            __tablename__ = "tag"

        tag = Tag.find_or_create_by_name("Python")
        Tag.find_or_create_by_name("PYTHON") == tag   # True

        tags = Tag.find_or_create_all_by_name(["python", "orm"])
        Tag.named_like("py").all()
    """

    # 标签名称最大长度
    __tag_name_max_length__ = 255

    # 标签关联模型，由 AbstractTagging 子类定义时自动注册
    __tagging_model__ = None

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="标签名称"
    )

    def __str__(self) -> str:
        return self.name or ""

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AbstractTag):
            return self.name == other.name
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.name)

    # ==================== 校验 ====================

    @classmethod
    def validate_name(cls, name: Any) -> str:
        """校验并规范化标签名称

        Returns:
            去除首尾空白后的名称

        Raises:
            TagValidationError: 名称为空白或超过最大长度
        """
        if name is None or not str(name).strip():
            raise TagValidationError("标签名称不能为空", name)
        name = str(name).strip()
        if len(name) > cls.__tag_name_max_length__:
            raise TagValidationError(
                f"标签名称超过最大长度 {cls.__tag_name_max_length__}", name
            )
        return name

    # ==================== 名称匹配条件 ====================

    @classmethod
    def _lookup_key(cls, name: str) -> str:
        if get_tagging_settings().strict_case_match:
            return name
        return name.lower()

    @classmethod
    def name_equals(cls, name: str):
        """名称精确匹配条件（按配置区分或忽略大小写）"""
        if get_tagging_settings().strict_case_match:
            return cls.name == name
        return func.lower(cls.name) == name.lower()

    @classmethod
    def name_like(cls, pattern: str):
        """名称模糊匹配条件（使用配置的 LIKE 操作符）

        pattern 中的 % 和 _ 作为通配符，字面值需先经 escape_like() 转义。
        """
        if get_tagging_settings().like_operator == "like":
            return cls.name.like(pattern, escape=LIKE_ESCAPE)
        return cls.name.ilike(pattern, escape=LIKE_ESCAPE)

    @classmethod
    def _query(cls, session: Optional[Session] = None) -> Query:
        if session is None:
            return cls.query
        return session.query(cls)

    # ==================== 查询 ====================

    @classmethod
    def named(cls, name: str, session: Optional[Session] = None) -> Query:
        """按名称精确查找"""
        return cls._query(session).filter(cls.name_equals(name)).order_by(cls.id)

    @classmethod
    def named_any(cls, names: Iterable[str], session: Optional[Session] = None) -> Query:
        """按任一名称精确查找"""
        names = list(names)
        if not names:
            return cls._query(session).filter(false())
        return cls._query(session).filter(or_(*[cls.name_equals(name) for name in names])).order_by(cls.id)

    @classmethod
    def named_like(cls, name: str) -> Query:
        """名称包含指定字符串"""
        return cls.query.filter(cls.name_like(f"%{escape_like(name)}%")).order_by(cls.id)

    @classmethod
    def named_like_any(cls, names: Iterable[str]) -> Query:
        """名称包含任一指定字符串"""
        names = list(names)
        if not names:
            return cls.query.filter(false())
        return cls.query.filter(or_(*[cls.name_like(f"%{escape_like(name)}%") for name in names])).order_by(cls.id)

    # ==================== 查找或创建 ====================

    @classmethod
    def find_or_create_by_name(cls, name: str, session: Optional[Session] = None) -> "AbstractTag":
        """查找标签，不存在则创建

        Args:
            name: 标签名称
            session: 使用的 session，默认 Model.query 绑定的 session

        Returns:
            标签对象

        Raises:
            TagValidationError: 名称不合法
        """
        name = cls.validate_name(name)
        tag = cls.named(name, session).first()
        if tag is None:
            tag = cls._create_tag(name, session)
        return tag

    @classmethod
    def find_or_create_all_by_name(
        cls,
        names: Union[str, Iterable[str]],
        session: Optional[Session] = None,
    ) -> List["AbstractTag"]:
        """批量查找或创建标签

        一次查询找出已存在的标签，其余逐个创建。返回结果与输入顺序一一对应，
        输入中大小写不同的重复名称对应同一个标签对象。

        Args:
            names: 标签名称列表（单个字符串视为一个名称）
            session: 使用的 session，被标记记录所在的 session 应从这里传入

        Returns:
            标签对象列表，顺序与输入一致
        """
        if isinstance(names, str):
            names = [names]
        names = [cls.validate_name(name) for name in names]
        if not names:
            return []

        found: Dict[str, AbstractTag] = {}
        for tag in cls.named_any(names, session).all():
            found.setdefault(cls._lookup_key(tag.name), tag)

        tags = []
        for name in names:
            key = cls._lookup_key(name)
            tag = found.get(key)
            if tag is None:
                tag = cls._create_tag(name, session)
                found[key] = tag
            tags.append(tag)
        return tags

    @classmethod
    def _create_tag(cls, name: str, session: Optional[Session] = None) -> "AbstractTag":
        """在 SAVEPOINT 中创建标签

        唯一约束冲突说明标签已被其他事务创建，回滚 SAVEPOINT 后重新查询。
        """
        if session is None:
            session = cls.query.session
        try:
            with session.begin_nested():
                tag = cls(name=name)
                session.add(tag)
        except IntegrityError:
            _logger.info(f"标签已被并发创建，重新查询: {name}")
            tag = cls.named(name, session).first()
            if tag is None:
                raise
        return tag

    # ==================== 维护 ====================

    @classmethod
    def _get_tagging_model(cls) -> Type["AbstractTagging"]:
        model = cls.__tagging_model__
        if model is None:
            raise TaggableConfigError(f"{cls.__name__} 没有关联的标签关联模型（AbstractTagging 子类）")
        return model

    @classmethod
    def remove_unused(
        cls,
        tag_ids: Optional[Iterable[int]] = None,
        session: Optional[Session] = None,
    ) -> int:
        """删除没有任何关联的标签

        Args:
            tag_ids: 只检查这些标签，默认检查全部
            session: 使用的 session，默认 Model.query 绑定的 session

        Returns:
            删除的数量
        """
        tagging_model = cls._get_tagging_model()
        query = cls._query(session).filter(cls.id.not_in(select(tagging_model.tag_id)))
        if tag_ids is not None:
            tag_ids = list(tag_ids)
            if not tag_ids:
                return 0
            query = query.filter(cls.id.in_(tag_ids))
        count = query.delete(synchronize_session="fetch")
        if count:
            _logger.debug(f"已删除 {count} 个未使用的标签")
        return count


_OWNED_TAGGING = text("tagger_id IS NULL AND tagger_type IS NULL")


class AbstractTagging:
    """标签关联抽象模型（多态关联）

    通过 taggable_type + taggable_id 关联任意被标记的记录，
    通过 tagger_type + tagger_id 记录打标签的操作者（为空表示记录自身的标签）。

    字段说明:
        - tag_id: 标签ID（外键）
        - taggable_type / taggable_id: 被标记的记录
        - context: 标签上下文（如 "tags"、"skills"）
        - tagger_type / tagger_id: 操作者，可空

    约束:
        - (tag_id, taggable_id, taggable_type, context, tagger_id, tagger_type) 唯一
        - 自身标签（无操作者）的 (tag_id, taggable_id, taggable_type, context) 唯一
        - (taggable_id, taggable_type, context) 复合索引

    使用示例:
        class Tagging(CoreModel, AbstractTagging):
            __tablename__ = "tagging"
            __tag_model__ = Tag
    """

    # 标签模型类（子类必须设置）
    __tag_model__ = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        tag_model = getattr(cls, "__tag_model__", None)
        if tag_model is not None and not cls.__dict__.get("__abstract__", False):
            tag_model.__tagging_model__ = cls

    @classmethod
    def _get_tag_model(cls) -> Type[AbstractTag]:
        model = getattr(cls, "__tag_model__", None)
        if model is None:
            raise TaggableConfigError(f"{cls.__name__} 必须设置 __tag_model__ 属性")
        return model

    @declared_attr
    def tag_id(cls) -> Mapped[int]:
        tag_table = cls._get_tag_model().__table__.name
        return mapped_column(
            Integer,
            ForeignKey(f"{tag_table}.id"),
            nullable=False,
            index=True,
            comment="标签ID"
        )

    @declared_attr
    def tag(cls):
        return relationship(cls._get_tag_model())

    taggable_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="被标记记录ID"
    )

    taggable_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="被标记记录类型"
    )

    context: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="标签上下文"
    )

    tagger_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="操作者ID"
    )

    tagger_type: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="操作者类型"
    )

    @declared_attr.directive
    def __table_args__(cls):
        table = cls.__tablename__
        return (
            UniqueConstraint(
                "tag_id", "taggable_id", "taggable_type", "context", "tagger_id", "tagger_type",
                name=f"uq_{table}_tag_taggable_context_tagger",
            ),
            # 自身标签的操作者列为 NULL，唯一约束对其不生效，用部分唯一索引保证
            Index(
                f"uq_{table}_owned_tag_taggable_context",
                "tag_id", "taggable_id", "taggable_type", "context",
                unique=True,
                sqlite_where=_OWNED_TAGGING,
                postgresql_where=_OWNED_TAGGING,
            ),
            Index(f"ix_{table}_taggable_context", "taggable_id", "taggable_type", "context"),
        )

    @property
    def is_owned(self) -> bool:
        """是否为记录自身的标签（没有操作者）"""
        return self.tagger_id is None and self.tagger_type is None

    def __repr__(self):
        return (
            f"<{self.__class__.__name__} id={self.id} tag_id={self.tag_id} "
            f"{self.taggable_type}#{self.taggable_id} context={self.context!r}>"
        )


# ==================== 事件监听器 ====================

@event.listens_for(AbstractTag, "before_insert", propagate=True)
@event.listens_for(AbstractTag, "before_update", propagate=True)
def event_validate_tag_name(mapper, connection, target):
    """写入前校验标签名称"""
    target.name = type(target).validate_name(target.name)


@event.listens_for(AbstractTag, "before_delete", propagate=True)
def event_check_tag_in_use(mapper, connection, target):
    """删除前检查标签是否仍被关联"""
    tagging_model = type(target).__tagging_model__
    if tagging_model is None:
        return
    table = tagging_model.__table__
    usage_count = connection.execute(
        select(func.count()).select_from(table).where(table.c.tag_id == target.id)
    ).scalar()
    if usage_count:
        raise TagInUseError(target.name, usage_count)


__all__ = [
    "AbstractTag",
    "AbstractTagging",
]
