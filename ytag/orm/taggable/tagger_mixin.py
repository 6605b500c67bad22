"""操作者 Mixin

为"给其他记录打标签的人"（如用户）提供能力。操作者打的标签与记录自身的标签
分开存放：不会出现在 tag_list_on() 中，但会出现在 all_tags_list_on() 中。

使用示例:
    class User(CoreModel, TaggerMixin):
        __tablename__ = "user"
        __tagging_model__ = Tagging

    user.tag(photo, with_="sunset, beach", on="locations")
    photo.owner_tags_on(user, "locations").all()
    user.owned_tags().all()
"""

from typing import Any, Optional, Type, TYPE_CHECKING

from sqlalchemy import event, false, select
from sqlalchemy.orm import Query, Session

from .context import normalize_context
from .exceptions import TaggableConfigError
from .tag_list import TagList
from .taggable_mixin import base_class_name, is_taggable

if TYPE_CHECKING:
    from .tag_model import AbstractTag, AbstractTagging


class TaggerMixin:
    """操作者 Mixin

    配置属性:
        __tagging_model__: 标签关联模型类（必须设置）
        __tagger_type__: 写入 tagger_type 列的类型名称，默认为最顶层映射类的类名
    """

    __tagging_model__: Type["AbstractTagging"] = None

    __tagger_type__: Optional[str] = None

    @classmethod
    def is_tagger(cls) -> bool:
        return True

    @classmethod
    def get_tagger_type(cls) -> str:
        return cls.__tagger_type__ or base_class_name(cls)

    @classmethod
    def _get_tagging_model(cls) -> Type["AbstractTagging"]:
        model = getattr(cls, "__tagging_model__", None)
        if model is None:
            raise TaggableConfigError(f"{cls.__name__} 必须设置 __tagging_model__ 属性")
        return model

    @classmethod
    def _get_tag_model(cls) -> Type["AbstractTag"]:
        return cls._get_tagging_model()._get_tag_model()

    def tag(self, taggable: Any, with_: Any = None, *, on: str) -> bool:
        """以当前操作者身份给记录打标签

        将操作者在该记录、该上下文上的标签替换为 with_（最小差异同步）。

        Args:
            taggable: 可打标签的记录（必须已保存）
            with_: 标签字符串或列表
            on: 上下文

        Returns:
            True
        """
        if not is_taggable(taggable):
            raise TaggableConfigError(f"{type(taggable).__name__} 不支持标签")
        if self.id is None or taggable.id is None:
            raise TaggableConfigError("操作者和被标记记录都必须先保存")

        context = normalize_context(on)
        taggable._reconcile_context(context, TagList.from_input(with_), tagger=self)
        return True

    def owned_taggings(self, context: Optional[str] = None) -> Query:
        """当前操作者打过的全部标签关联"""
        Tagging = self._get_tagging_model()
        if self.id is None:
            return Tagging.query.filter(false())
        query = self.session.query(Tagging).filter(
            Tagging.tagger_id == self.id,
            Tagging.tagger_type == self.get_tagger_type(),
        )
        if context is not None:
            query = query.filter(Tagging.context == normalize_context(context))
        return query.order_by(Tagging.id)

    def owned_tags(self, context: Optional[str] = None) -> Query:
        """当前操作者使用过的标签（去重）"""
        Tag = self._get_tag_model()
        Tagging = self._get_tagging_model()
        if self.id is None:
            return Tag.query.filter(false())
        tag_ids = select(Tagging.tag_id).where(
            Tagging.tagger_id == self.id,
            Tagging.tagger_type == self.get_tagger_type(),
        )
        if context is not None:
            tag_ids = tag_ids.where(Tagging.context == normalize_context(context))
        return self.session.query(Tag).filter(Tag.id.in_(tag_ids)).order_by(Tag.id)


@event.listens_for(Session, "before_flush")
def event_delete_taggings_of_deleted_taggers(session, flush_context, instances):
    """删除操作者时一并删除其打的标签关联"""
    for obj in list(session.deleted):
        if not isinstance(obj, TaggerMixin) or obj.id is None:
            continue
        for tagging in obj.owned_taggings().all():
            session.delete(tagging)


__all__ = [
    "TaggerMixin",
]
