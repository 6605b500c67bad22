"""标签系统模块

提供按上下文管理的多态标签功能。

导出:
    - AbstractTag: 标签抽象模型
    - AbstractTagging: 标签关联抽象模型
    - TaggableMixin: 可打标签模型 Mixin
    - TaggerMixin: 操作者 Mixin
    - TagList: 标签名称列表
    - TagContext / BoundTagContext: 上下文访问器
    - 异常: TaggingError, TagValidationError, TagInUseError,
      FrozenTagListError, TaggableConfigError

使用示例:
    from ytag.orm import CoreModel
    from ytag.orm.taggable import AbstractTag, AbstractTagging, TaggableMixin

    # 1. 定义标签模型（项目级别，一次性）
    class Tag(CoreModel, AbstractTag):
        __tablename__ = "tag"

    class Tagging(CoreModel, AbstractTagging):
        __tablename__ = "tagging"
        __tag_model__ = Tag

    # 2. 业务模型使用 TaggableMixin
    class Person(CoreModel, TaggableMixin):
        __tablename__ = "person"
        __tag_model__ = Tag
        __tag_types__ = ("skills", "interests")

        name = mapped_column(String(100))

    # 3. 读写标签列表，save() 时同步
    person = Person(name="Tom")
    person.set_tag_list_on("skills", "python, sql")
    person.tag_list_on("interests").add("hiking")
    person.save(commit=True)

    # 4. 按标签查询记录
    Person.tagged_with("python, sql", on="skills").all()      # 同时带有
    Person.tagged_with("python", match_any=True).all()        # 带有任一
    Person.tagged_with("python", exclude=True).all()          # 不带有
    Person.tagged_with("python, sql", match_all=True).all()   # 恰好这些

    # 5. 标签维护
    Tag.find_or_create_all_by_name(["python", "go"])
    Person.tag_counts_on("skills", limit=10)
    Tag.remove_unused()
"""

from .exceptions import (
    TaggingError,
    TagValidationError,
    TagInUseError,
    FrozenTagListError,
    TaggableConfigError,
)
from .tag_list import TagList, split_tag_string
from .tag_model import AbstractTag, AbstractTagging
from .context import (
    CacheState,
    CachedTagList,
    TagContext,
    BoundTagContext,
    TagContextRegistry,
)
from .taggable_mixin import TaggableMixin, is_taggable
from .tagger_mixin import TaggerMixin
from .query import build_tagged_with_query

__all__ = [
    "TaggingError",
    "TagValidationError",
    "TagInUseError",
    "FrozenTagListError",
    "TaggableConfigError",
    "TagList",
    "split_tag_string",
    "AbstractTag",
    "AbstractTagging",
    "CacheState",
    "CachedTagList",
    "TagContext",
    "BoundTagContext",
    "TagContextRegistry",
    "TaggableMixin",
    "TaggerMixin",
    "is_taggable",
    "build_tagged_with_query",
]
