"""标签列表

TagList 是内存中的有序、去重标签名称集合，提供：
- 字符串解析与格式化（分隔符和引号规则来自 TaggingSettings）
- 集合运算（差集、并集、交集）
- 大小写不敏感的成员判断和相等比较

使用示例:
    from ytag.orm.taggable import TagList

    tags = TagList.from_input('python, "web, api", orm')
    list(tags)          # ["python", "web, api", "orm"]
    str(tags)           # 'python, "web, api", orm'

    tags.append("Python")   # 大小写不敏感去重，不会重复添加
    "PYTHON" in tags        # True

    tags - ["orm"]          # TagList(['python', 'web, api'])
"""

from collections.abc import Iterable as IterableABC, MutableSequence
from typing import Any, Iterable, Iterator, List, Optional

from ytag.config import get_tagging_settings

from .exceptions import FrozenTagListError


def _name_key(name: str) -> str:
    return name.lower()


def split_tag_string(
    text: str,
    delimiter: Optional[str] = None,
    quote_chars: Optional[str] = None,
) -> List[str]:
    """按分隔符拆分标签字符串

    以引号开头、并以同一引号结尾（其后紧跟分隔符或字符串结束）的片段
    视为一个完整标签，其中的分隔符不拆分。返回的片段未去除空白。

    Args:
        text: 标签字符串
        delimiter: 分隔符，默认取当前配置
        quote_chars: 引号字符，默认取当前配置

    Returns:
        片段列表

    示例:
        split_tag_string('a, "b, c", d')  # ['a', 'b, c', ' d']
    """
    settings = get_tagging_settings()
    delimiter = delimiter or settings.delimiter
    quote_chars = settings.quote_chars if quote_chars is None else quote_chars

    parts: List[str] = []
    length = len(text)
    pos = 0
    while pos <= length:
        start = pos
        while start < length and text[start].isspace():
            start += 1

        if start < length and text[start] in quote_chars:
            quote = text[start]
            end = text.find(quote, start + 1)
            while end != -1:
                rest = end + 1
                while rest < length and text[rest].isspace():
                    rest += 1
                if rest == length or text.startswith(delimiter, rest):
                    break
                end = text.find(quote, end + 1)
            if end != -1:
                parts.append(text[start + 1:end])
                pos = rest + len(delimiter)
                continue

        end = text.find(delimiter, pos)
        if end == -1:
            parts.append(text[pos:])
            break
        parts.append(text[pos:end])
        pos = end + len(delimiter)
    return parts


class TagList(MutableSequence):
    """有序、去重的标签名称列表

    - 名称去除首尾空白，空白名称被丢弃
    - 大小写不敏感去重，保留首次出现的写法
    - 相等比较忽略顺序和大小写
    - freeze() 之后任何修改都抛出 FrozenTagListError
    """

    def __init__(self, names: Iterable[Any] = ()):
        self._names: List[str] = []
        self._frozen = False
        self._force_lowercase = get_tagging_settings().force_lowercase
        self.extend(names)

    # ==================== 构造 ====================

    @classmethod
    def from_input(cls, value: Any) -> "TagList":
        """从字符串或列表构造

        - None: 空列表
        - 字符串: 按分隔符和引号规则解析
        - 其他可迭代对象: 每个元素作为一个标签（Tag 对象取其名称）
        """
        if value is None:
            return cls()
        if isinstance(value, str):
            return cls(split_tag_string(value))
        if isinstance(value, TagList):
            return value.copy()
        if not isinstance(value, IterableABC):
            return cls([value])
        return cls(value)

    def copy(self) -> "TagList":
        """复制（副本不冻结）"""
        clone = self.__class__()
        clone._names = list(self._names)
        return clone

    # ==================== 规范化 ====================

    def _clean(self, name: Any) -> Optional[str]:
        if name is None:
            return None
        name = str(name).strip()
        if not name:
            return None
        if self._force_lowercase:
            name = name.lower()
        return name

    def _check_frozen(self) -> None:
        if self._frozen:
            raise FrozenTagListError()

    def _keys(self) -> List[str]:
        return [_name_key(name) for name in self._names]

    # ==================== MutableSequence 接口 ====================

    def __getitem__(self, index):
        if isinstance(index, slice):
            return self.__class__(self._names[index])
        return self._names[index]

    def __setitem__(self, index, value) -> None:
        self._check_frozen()
        names = list(self._names)
        if isinstance(index, slice):
            names[index] = list(value)
        else:
            names[index] = value
        rebuilt = self.__class__(names)
        self._names = rebuilt._names

    def __delitem__(self, index) -> None:
        self._check_frozen()
        del self._names[index]

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def insert(self, index: int, value: Any) -> None:
        """插入标签，空白或重复名称被忽略"""
        self._check_frozen()
        name = self._clean(value)
        if name is None or _name_key(name) in self._keys():
            return
        self._names.insert(index, name)

    def add(self, *names: Any) -> "TagList":
        """追加一个或多个标签，支持链式调用"""
        self.extend(names)
        return self

    def __contains__(self, name: object) -> bool:
        if name is None:
            return False
        return _name_key(str(name).strip()) in self._keys()

    def index(self, name: Any, start: int = 0, stop: Optional[int] = None) -> int:
        key = _name_key(str(name).strip())
        keys = self._keys()
        stop = len(keys) if stop is None else stop
        for position in range(start, stop):
            if keys[position] == key:
                return position
        raise ValueError(f"{name!r} 不在标签列表中")

    def count(self, name: Any) -> int:
        return 1 if name in self else 0

    def reverse(self) -> None:
        self._check_frozen()
        self._names.reverse()

    # ==================== 冻结 ====================

    def freeze(self) -> "TagList":
        """冻结列表，返回自身"""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ==================== 集合运算 ====================

    def __sub__(self, other: Iterable[Any]) -> "TagList":
        removed = {_name_key(name) for name in TagList.from_input(other)}
        return self.__class__(name for name in self._names if _name_key(name) not in removed)

    def __add__(self, other: Iterable[Any]) -> "TagList":
        merged = self.copy()
        merged.extend(TagList.from_input(other))
        return merged

    __or__ = __add__

    def __and__(self, other: Iterable[Any]) -> "TagList":
        kept = {_name_key(name) for name in TagList.from_input(other)}
        return self.__class__(name for name in self._names if _name_key(name) in kept)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (TagList, list, tuple, set, frozenset)):
            return set(self._keys()) == set(TagList.from_input(other)._keys())
        return NotImplemented

    __hash__ = None

    # ==================== 格式化 ====================

    def to_string(self, delimiter: Optional[str] = None) -> str:
        """格式化为字符串

        名称中包含分隔符时加引号（优先双引号，名称包含双引号时用单引号）。
        """
        delimiter = delimiter or get_tagging_settings().delimiter
        formatted = []
        for name in self._names:
            if delimiter in name:
                name = f"'{name}'" if '"' in name else f'"{name}"'
            formatted.append(name)
        return f"{delimiter} ".join(formatted)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"TagList({self._names!r})"


__all__ = [
    "TagList",
    "split_tag_string",
]
