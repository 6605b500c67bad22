"""ORM 工具函数"""
import re

_ACRONYM_BOUNDARY = re.compile(r"([A-Z\d]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")


def to_snake_case(name: str) -> str:
    """类名转表名

    连续大写视为一个缩写词。

    Examples:
        >>> to_snake_case("TagGroup")
        'tag_group'
        >>> to_snake_case("HTTPTagSource")
        'http_tag_source'
    """
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    return _WORD_BOUNDARY.sub(r"\1_\2", name).lower()


__all__ = [
    "to_snake_case",
]
