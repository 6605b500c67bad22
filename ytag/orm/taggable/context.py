"""标签上下文

- TagContext: 单个上下文的访问能力（get_list / set_list / get_all_list）
- BoundTagContext: 绑定到某条记录的上下文访问器
- TagContextRegistry: 模型声明的上下文注册表（类定义时生成，之后只读）
- CachedTagList: 记录上每个上下文的标签列表缓存及其状态
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from .exceptions import TaggableConfigError
from .tag_list import TagList


DEFAULT_TAG_TYPES: Tuple[str, ...] = ("tags",)


def normalize_context(context: Any) -> str:
    """上下文名称规范化（转字符串并去除空白）"""
    name = "" if context is None else str(context).strip()
    if not name:
        raise TaggableConfigError("标签上下文不能为空")
    return name


def freeze_tag_types(tag_types: Any) -> Tuple[str, ...]:
    """将 __tag_types__ 声明转换为去重后的不可变元组"""
    if tag_types is None:
        return DEFAULT_TAG_TYPES
    if isinstance(tag_types, str):
        tag_types = [tag_types]
    frozen = []
    for context in tag_types:
        context = normalize_context(context)
        if context not in frozen:
            frozen.append(context)
    return tuple(frozen)


class CacheState(Enum):
    """上下文缓存状态

    UNSET -> LOADED（首次读取时从数据库加载）
    UNSET/LOADED -> DIRTY（set_tag_list_on 赋值）
    DIRTY -> LOADED（保存完成）
    任意状态在 reload() 时被丢弃
    """
    UNSET = "unset"
    LOADED = "loaded"
    DIRTY = "dirty"


@dataclass
class CachedTagList:
    """单个上下文的标签列表缓存"""
    state: CacheState = CacheState.UNSET
    tag_list: Optional[TagList] = None

    @property
    def is_set(self) -> bool:
        return self.state is not CacheState.UNSET


class TagContext:
    """标签上下文

    使用示例:
        skills = Person.tag_context("skills")
        skills.set_list(person, "python, sql")
        skills.get_list(person)          # TagList(['python', 'sql'])
        skills.get_all_list(person)      # 只读，包含其他操作者打的标签
    """

    def __init__(self, name: str):
        self.name = normalize_context(name)

    def get_list(self, taggable) -> TagList:
        return taggable.tag_list_on(self.name)

    def set_list(self, taggable, value: Any) -> None:
        taggable.set_tag_list_on(self.name, value)

    def get_all_list(self, taggable) -> TagList:
        return taggable.all_tags_list_on(self.name)

    def bind(self, taggable) -> "BoundTagContext":
        return BoundTagContext(self, taggable)

    def __repr__(self):
        return f"<TagContext {self.name!r}>"


class BoundTagContext:
    """绑定到记录的上下文访问器

    使用示例:
        skills = person.tag_context_for("skills")
        skills.list = "python, sql"
        skills.list.append("go")
        skills.all_list
    """

    def __init__(self, context: TagContext, taggable):
        self.context = context
        self.taggable = taggable

    @property
    def name(self) -> str:
        return self.context.name

    @property
    def list(self) -> TagList:
        return self.context.get_list(self.taggable)

    @list.setter
    def list(self, value: Any) -> None:
        self.context.set_list(self.taggable, value)

    @property
    def all_list(self) -> TagList:
        return self.context.get_all_list(self.taggable)


class TagContextRegistry(Mapping):
    """模型声明的标签上下文注册表（只读）"""

    def __init__(self, names: Iterable[str]):
        self._contexts: Dict[str, TagContext] = {name: TagContext(name) for name in names}

    def __getitem__(self, name: str) -> TagContext:
        return self._contexts[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._contexts)

    def __len__(self) -> int:
        return len(self._contexts)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._contexts)

    def __repr__(self):
        return f"<TagContextRegistry {list(self._contexts)!r}>"


__all__ = [
    "CacheState",
    "CachedTagList",
    "TagContext",
    "BoundTagContext",
    "TagContextRegistry",
    "normalize_context",
    "freeze_tag_types",
    "DEFAULT_TAG_TYPES",
]
