"""标签管理 Mixin

提供按上下文管理的标签功能：每个上下文的标签列表缓存在记录实例上，
调用 save() 时与数据库中的标签关联做最小差异同步。

使用示例:
    from ytag.orm import CoreModel
    from ytag.orm.taggable import TaggableMixin, AbstractTag, AbstractTagging

    # 定义标签模型
    class Tag(CoreModel, AbstractTag):
        __tablename__ = "tag"

    class Tagging(CoreModel, AbstractTagging):
        __tablename__ = "tagging"
        __tag_model__ = Tag

    # 业务模型使用
    class Person(CoreModel, TaggableMixin):
        __tablename__ = "person"
        __tag_model__ = Tag
        __tag_types__ = ("skills", "interests")

        name = mapped_column(String(100))

    # 使用
    person = Person(name="Tom")
    person.set_tag_list_on("skills", "python, sql")
    person.save(commit=True)

    person.tag_list_on("skills")            # TagList(['python', 'sql'])
    Person.tagged_with("python", on="skills").all()
"""

from typing import Any, Dict, List, Optional, Tuple, Type, TYPE_CHECKING

from sqlalchemy import event, false, func, inspect as sa_inspect
from sqlalchemy.orm import Query, Session

from ytag.config import get_tagging_settings
from ytag.log import get_logger

from .context import (
    BoundTagContext,
    CacheState,
    CachedTagList,
    TagContext,
    TagContextRegistry,
    freeze_tag_types,
    normalize_context,
)
from .exceptions import TaggableConfigError
from .tag_list import TagList

if TYPE_CHECKING:
    from .tag_model import AbstractTag, AbstractTagging

_logger = get_logger("ytag.orm.taggable")


def base_class_name(model: type) -> str:
    """获取多态类型名称（继承体系中最顶层映射类的类名）"""
    mapper = sa_inspect(model, raiseerr=False)
    if mapper is None:
        return model.__name__
    return mapper.base_mapper.class_.__name__


def is_taggable(obj: Any) -> bool:
    """判断对象或类是否支持标签"""
    cls = obj if isinstance(obj, type) else type(obj)
    return issubclass(cls, TaggableMixin)


class TaggableMixin:
    """标签管理 Mixin

    为模型提供按上下文管理标签的能力。需要与 CoreModel 一起使用，
    CoreModel.save() 在 flush 之后通过保存后回调调用 save_tags()。

    配置属性:
        __tag_model__: 标签模型类（必须设置）
        __tagging_model__: 标签关联模型类（可选，默认取标签模型上注册的关联模型）
        __tag_types__: 声明的上下文，默认 ("tags",)
        __taggable_type__: 多态类型名称，默认为最顶层映射类的类名

    使用示例:
        class Article(CoreModel, TaggableMixin):
            __tablename__ = "article"
            __tag_model__ = Tag
            __tag_types__ = ("tags", "topics")

        article = Article(title="Python 教程")
        article.set_tag_list_on("tags", "python, tutorial")
        article.tag_list_on("topics").append("web")
        article.save(commit=True)

        Article.tagged_with(["python", "tutorial"]).all()
        Article.tagged_with("web", on="topics", match_any=True).all()
    """

    # ==================== 配置 ====================

    # 标签模型类（子类必须设置）
    __tag_model__: Type["AbstractTag"] = None

    # 标签关联模型类（可选）
    __tagging_model__: Type["AbstractTagging"] = None

    # 声明的标签上下文
    __tag_types__: Tuple[str, ...] = ("tags",)

    # 多态类型名称（可选）
    __taggable_type__: Optional[str] = None

    # 保存后同步标签
    __after_save__ = ("save_tags",)

    __tag_context_registry__: TagContextRegistry = TagContextRegistry(("tags",))

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls.__tag_types__ = freeze_tag_types(getattr(cls, "__tag_types__", None))
        cls.__tag_context_registry__ = TagContextRegistry(cls.__tag_types__)

    # ==================== 类配置方法 ====================

    @classmethod
    def is_taggable(cls) -> bool:
        return True

    @classmethod
    def _get_tag_model(cls) -> Type["AbstractTag"]:
        """获取标签模型类"""
        model = getattr(cls, "__tag_model__", None)
        if model is None:
            raise TaggableConfigError(f"{cls.__name__} 必须设置 __tag_model__ 属性")
        return model

    @classmethod
    def _get_tagging_model(cls) -> Type["AbstractTagging"]:
        """获取标签关联模型类"""
        model = getattr(cls, "__tagging_model__", None)
        if model is None:
            model = getattr(cls._get_tag_model(), "__tagging_model__", None)
        if model is None:
            raise TaggableConfigError(
                f"{cls.__name__} 必须设置 __tagging_model__ 属性，"
                f"或先定义 __tag_model__ 对应的 AbstractTagging 子类"
            )
        return model

    @classmethod
    def get_taggable_type(cls) -> str:
        """获取写入 taggable_type 列的类型名称"""
        return cls.__taggable_type__ or base_class_name(cls)

    @classmethod
    def tag_context(cls, name: str) -> TagContext:
        """获取声明的标签上下文

        Raises:
            TaggableConfigError: 上下文未在 __tag_types__ 中声明
        """
        name = normalize_context(name)
        try:
            return cls.__tag_context_registry__[name]
        except KeyError:
            raise TaggableConfigError(f"{cls.__name__} 未声明标签上下文: {name}") from None

    @classmethod
    def tag_types(cls) -> Tuple[str, ...]:
        """声明的上下文名称"""
        return cls.__tag_types__

    # ==================== 实例缓存 ====================

    def _tag_list_cache(self) -> Dict[str, CachedTagList]:
        # 插入顺序即上下文激活顺序
        return self.__dict__.setdefault("_ytag_tag_lists", {})

    def _all_tag_list_cache(self) -> Dict[str, TagList]:
        return self.__dict__.setdefault("_ytag_all_tag_lists", {})

    def _custom_contexts(self) -> List[str]:
        return self.__dict__.setdefault("_ytag_custom_contexts", [])

    def _cache_entry(self, context: str) -> CachedTagList:
        return self._tag_list_cache().setdefault(context, CachedTagList())

    def tag_list_cache_state(self, context: str) -> CacheState:
        """获取上下文缓存状态"""
        cached = self._tag_list_cache().get(normalize_context(context))
        return cached.state if cached is not None else CacheState.UNSET

    def add_custom_context(self, context: str) -> None:
        """登记未声明的上下文（仅对当前实例有效）"""
        context = normalize_context(context)
        if context not in self.tagging_contexts():
            self._custom_contexts().append(context)

    def tagging_contexts(self) -> List[str]:
        """当前实例的全部上下文（自定义 + 声明）"""
        return list(self._custom_contexts()) + list(self.__tag_types__)

    def tag_context_for(self, name: str) -> BoundTagContext:
        """获取绑定到当前实例的上下文访问器，未声明的上下文按自定义上下文处理"""
        name = normalize_context(name)
        context = self.__tag_context_registry__.get(name) or TagContext(name)
        return context.bind(self)

    # ==================== 读写标签列表 ====================

    def tag_list_on(self, context: str) -> TagList:
        """获取上下文的标签列表

        首次读取时从数据库加载（只包含记录自身的标签，按关联创建顺序），
        之后返回缓存。对返回列表的修改在 save() 时写入数据库。
        """
        context = normalize_context(context)
        self.add_custom_context(context)
        cached = self._cache_entry(context)
        if cached.state is CacheState.UNSET:
            if self.id is None:
                cached.tag_list = TagList()
            else:
                cached.tag_list = TagList(tag.name for tag in self.tags_on(context))
            cached.state = CacheState.LOADED
        return cached.tag_list

    def set_tag_list_on(self, context: str, value: Any) -> None:
        """设置上下文的标签列表（字符串或列表），save() 时写入数据库"""
        context = normalize_context(context)
        self.add_custom_context(context)
        cached = self._cache_entry(context)
        cached.tag_list = TagList.from_input(value)
        cached.state = CacheState.DIRTY

    def all_tags_list_on(self, context: str) -> TagList:
        """获取上下文的全部标签（包含其他操作者打的标签），最近使用的在前，只读"""
        context = normalize_context(context)
        cache = self._all_tag_list_cache()
        if context not in cache:
            if self.id is None:
                names = []
            else:
                names = [tag.name for tag in self.all_tags_on(context)]
            cache[context] = TagList(names).freeze()
        return cache[context]

    # ==================== 标签查询 ====================

    def _taggings_query(self, context: Optional[str] = None, tagger: Any = None, owned: bool = True) -> Query:
        Tagging = self._get_tagging_model()
        query = self.session.query(Tagging).filter(
            Tagging.taggable_id == self.id,
            Tagging.taggable_type == self.get_taggable_type(),
        )
        if context is not None:
            query = query.filter(Tagging.context == context)
        if tagger is not None:
            query = query.filter(
                Tagging.tagger_id == tagger.id,
                Tagging.tagger_type == _tagger_type_of(tagger),
            )
        elif owned:
            query = query.filter(Tagging.tagger_id.is_(None), Tagging.tagger_type.is_(None))
        return query.order_by(Tagging.id)

    def _tags_query(self, context: Optional[str] = None) -> Query:
        Tag = self._get_tag_model()
        Tagging = self._get_tagging_model()
        query = self.session.query(Tag).join(Tagging, Tagging.tag_id == Tag.id).filter(
            Tagging.taggable_id == self.id,
            Tagging.taggable_type == self.get_taggable_type(),
        )
        if context is not None:
            query = query.filter(Tagging.context == normalize_context(context))
        return query

    def taggings(self) -> Query:
        """当前记录的全部标签关联（所有上下文、所有操作者）"""
        return self._taggings_query(owned=False)

    def tags_on(self, context: str) -> Query:
        """上下文中记录自身的标签（不含其他操作者打的标签），按关联创建顺序"""
        Tagging = self._get_tagging_model()
        if self.id is None:
            return self._get_tag_model().query.filter(false())
        return self._tags_query(context).filter(
            Tagging.tagger_id.is_(None),
            Tagging.tagger_type.is_(None),
        ).order_by(Tagging.id)

    def all_tags_on(self, context: str) -> Query:
        """上下文中的全部标签（所有操作者），最近使用的在前"""
        Tag = self._get_tag_model()
        Tagging = self._get_tagging_model()
        if self.id is None:
            return Tag.query.filter(false())
        return self._tags_query(context).group_by(*Tag.__table__.columns).order_by(
            func.max(Tagging.created_at).desc(),
            func.max(Tagging.id).desc(),
        )

    def owner_tags_on(self, owner: Any, context: Optional[str] = None) -> Query:
        """指定操作者在当前记录上打的标签"""
        Tagging = self._get_tagging_model()
        if self.id is None or owner.id is None:
            return self._get_tag_model().query.filter(false())
        return self._tags_query(context).filter(
            Tagging.tagger_id == owner.id,
            Tagging.tagger_type == _tagger_type_of(owner),
        ).order_by(Tagging.id)

    # ==================== 同步 ====================

    def _reconcile_context(self, context: str, names: TagList, tagger: Any = None) -> List[int]:
        """将上下文中（指定操作者的）标签关联同步为 names

        只删除多余的关联、只创建缺少的关联，未变化的关联保持不变。

        Returns:
            被移除关联的标签ID列表
        """
        Tag = self._get_tag_model()
        Tagging = self._get_tagging_model()
        session = self.session

        desired_tags = []
        desired_ids = set()
        for tag in Tag.find_or_create_all_by_name(list(names), session=session):
            if tag.id not in desired_ids:
                desired_ids.add(tag.id)
                desired_tags.append(tag)

        current = self._taggings_query(context, tagger=tagger).all()
        current_ids = {tagging.tag_id for tagging in current}

        old_taggings = [tagging for tagging in current if tagging.tag_id not in desired_ids]
        new_tags = [tag for tag in desired_tags if tag.id not in current_ids]

        _logger.debug(
            f"{self!r} 同步标签 context={context!r}: "
            f"移除 {[tagging.tag_id for tagging in old_taggings]}, "
            f"新增 {[tag.name for tag in new_tags]}"
        )

        for tagging in old_taggings:
            session.delete(tagging)
        if old_taggings:
            session.flush()

        for tag in new_tags:
            session.add(Tagging(
                tag_id=tag.id,
                taggable_id=self.id,
                taggable_type=self.get_taggable_type(),
                context=context,
                tagger_id=tagger.id if tagger is not None else None,
                tagger_type=_tagger_type_of(tagger) if tagger is not None else None,
            ))
        if new_tags:
            session.flush()

        self._all_tag_list_cache().pop(context, None)
        return [tagging.tag_id for tagging in old_taggings]

    def save_tags(self) -> bool:
        """同步所有已激活上下文的标签关联

        由 CoreModel.save() 在 flush 之后自动调用。按上下文激活顺序处理，
        任何异常都会中断并向上抛出。

        Returns:
            True

        Raises:
            TaggableConfigError: 记录尚未保存
        """
        if self.id is None:
            raise TaggableConfigError(f"{self.__class__.__name__} 必须先保存记录才能保存标签")

        removed_tag_ids: List[int] = []
        for context, cached in list(self._tag_list_cache().items()):
            if not cached.is_set:
                continue
            removed_tag_ids.extend(self._reconcile_context(context, cached.tag_list))
            cached.state = CacheState.LOADED

        if removed_tag_ids and get_tagging_settings().remove_unused_tags:
            self._get_tag_model().remove_unused(tag_ids=set(removed_tag_ids), session=self.session)
        return True

    def reload(self):
        """丢弃所有上下文缓存，并从数据库刷新记录"""
        self._tag_list_cache().clear()
        self._all_tag_list_cache().clear()
        self._custom_contexts().clear()
        state = sa_inspect(self)
        if state.persistent:
            self.refresh()
        return self

    # ==================== 类方法：按标签查询 ====================

    @classmethod
    def tagged_with(
        cls,
        tags: Any,
        *,
        exclude: bool = False,
        match_any: bool = False,
        match_all: bool = False,
        on: Optional[str] = None,
        order: Any = None,
    ) -> Query:
        """按标签查询记录

        Args:
            tags: 标签字符串或列表
            exclude: 排除带有任一指定标签的记录
            match_any: 带有任一指定标签
            match_all: 标签集合恰好等于指定标签（仅在默认模式下生效）
            on: 限定上下文
            order: 排序（SQL 文本片段或列表达式）

        Returns:
            延迟执行的 Query，可继续过滤、排序、分页

        使用示例:
            Article.tagged_with("python, web").all()                 # 同时带有两个标签
            Article.tagged_with(["python"], match_any=True).all()   # 带有任一标签
            Article.tagged_with("python", exclude=True).all()       # 不带这些标签
            Article.tagged_with("python, web", match_all=True).all()  # 恰好这两个标签
        """
        from .query import build_tagged_with_query
        return build_tagged_with_query(
            cls, tags,
            exclude=exclude, match_any=match_any, match_all=match_all,
            on=on, order=order,
        )

    @classmethod
    def tag_counts_on(cls, context: Optional[str] = None, limit: Optional[int] = None) -> List[Tuple["AbstractTag", int]]:
        """统计当前模型使用的标签及次数，使用最多的在前

        Returns:
            (标签, 次数) 列表
        """
        Tag = cls._get_tag_model()
        Tagging = cls._get_tagging_model()
        usage = func.count(Tagging.id)
        query = cls.query.session.query(Tag, usage).join(
            Tagging, Tagging.tag_id == Tag.id
        ).filter(Tagging.taggable_type == cls.get_taggable_type())
        if context is not None:
            query = query.filter(Tagging.context == normalize_context(context))
        query = query.group_by(*Tag.__table__.columns).order_by(usage.desc(), Tag.id)
        if limit:
            query = query.limit(limit)
        return [(tag, count) for tag, count in query.all()]


def _tagger_type_of(tagger: Any) -> str:
    get_tagger_type = getattr(tagger, "get_tagger_type", None)
    if get_tagger_type is not None:
        return get_tagger_type()
    return base_class_name(type(tagger))


# ==================== 事件监听器 ====================

@event.listens_for(Session, "before_flush")
def event_delete_taggings_of_deleted_taggables(session, flush_context, instances):
    """删除记录时一并删除其标签关联"""
    for obj in list(session.deleted):
        if not isinstance(obj, TaggableMixin) or obj.id is None:
            continue
        for tagging in obj.taggings().all():
            session.delete(tagging)


__all__ = [
    "TaggableMixin",
    "is_taggable",
    "base_class_name",
]
