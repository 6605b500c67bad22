"""按标签查询

build_tagged_with_query() 构造 TaggableMixin.tagged_with() 的查询，四种模式：

- exclude:   主键 NOT IN（带有任一指定标签的记录ID子查询）
- match_any: 主键 IN（同上子查询）
- 默认:      每个标签一次 INNER JOIN 标签关联表，记录必须同时带有全部标签
- match_all: 在默认模式基础上 LEFT OUTER JOIN 全部自身标签关联（不含操作者的标签），
             GROUP BY 记录所有列，HAVING 不同标签数 = 指定标签数

选项优先级为 exclude > match_any > 默认，match_all 只在默认模式下生效。
空标签列表或存在未知标签（默认模式）时返回不会产生任何行的查询，不抛出异常。
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import and_, distinct, false, func, or_, select, text
from sqlalchemy.orm import Query, aliased

from .context import normalize_context
from .tag_list import TagList
from .tag_model import escape_like


def _apply_order(query: Query, order: Any) -> Query:
    if order is None:
        return query
    if isinstance(order, (list, tuple)):
        clauses = [text(item) if isinstance(item, str) else item for item in order]
        return query.order_by(*clauses)
    if isinstance(order, str):
        return query.order_by(text(order))
    return query.order_by(order)


def _resolve_tags(Tag, tag_list: TagList) -> Optional[List[Any]]:
    """按名称精确解析标签，任一名称不存在时返回 None"""
    resolved: Dict[str, Any] = {}
    for tag in Tag.named_any(list(tag_list)).all():
        resolved.setdefault(Tag._lookup_key(tag.name), tag)

    tags = []
    seen_ids = set()
    for name in tag_list:
        tag = resolved.get(Tag._lookup_key(name))
        if tag is None:
            return None
        if tag.id not in seen_ids:
            seen_ids.add(tag.id)
            tags.append(tag)
    return tags


def build_tagged_with_query(
    model,
    tags: Any,
    *,
    exclude: bool = False,
    match_any: bool = False,
    match_all: bool = False,
    on: Optional[str] = None,
    order: Any = None,
) -> Query:
    """构造按标签查询记录的 Query

    Args:
        model: TaggableMixin 模型类
        tags: 标签字符串或列表
        exclude: 排除模式
        match_any: 任一匹配模式
        match_all: 精确匹配（仅默认模式）
        on: 上下文，为空表示不限上下文
        order: 排序（SQL 文本、列表达式或它们的列表）

    Returns:
        Query 对象（延迟执行）
    """
    Tag = model._get_tag_model()
    Tagging = model._get_tagging_model()
    query = model.query

    tag_list = TagList.from_input(tags)
    if not tag_list:
        return query.filter(false())

    taggable_type = model.get_taggable_type()
    context = None if on is None or not str(on).strip() else normalize_context(on)

    if exclude or match_any:
        name_matches = or_(*[Tag.name_like(escape_like(name)) for name in tag_list])
        taggable_ids = (
            select(Tagging.taggable_id)
            .join(Tag, and_(Tagging.tag_id == Tag.id, name_matches))
            .where(Tagging.taggable_type == taggable_type)
        )
        if context is not None:
            taggable_ids = taggable_ids.where(Tagging.context == context)
        if exclude:
            query = query.filter(model.id.not_in(taggable_ids))
        else:
            query = query.filter(model.id.in_(taggable_ids))
        return _apply_order(query, order)

    resolved = _resolve_tags(Tag, tag_list)
    if resolved is None:
        return query.filter(false())

    table_name = model.__table__.name
    for position, tag in enumerate(resolved):
        taggings = aliased(Tagging, name=f"{table_name}_taggings_{position}")
        conditions = [
            taggings.taggable_id == model.id,
            taggings.taggable_type == taggable_type,
            taggings.tag_id == tag.id,
        ]
        if context is not None:
            conditions.append(taggings.context == context)
        query = query.join(taggings, and_(*conditions))

    if match_all:
        group = aliased(Tagging, name=f"{table_name}_taggings_group")
        conditions = [
            group.taggable_id == model.id,
            group.taggable_type == taggable_type,
            group.tagger_id.is_(None),
            group.tagger_type.is_(None),
        ]
        if context is not None:
            conditions.append(group.context == context)
        query = (
            query.outerjoin(group, and_(*conditions))
            .group_by(*model.__table__.columns)
            .having(func.count(distinct(group.tag_id)) == len(resolved))
        )

    return _apply_order(query, order)


__all__ = [
    "build_tagged_with_query",
]
