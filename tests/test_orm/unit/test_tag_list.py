"""标签列表 TagList 测试

测试 TagList 的核心功能：
1. 字符串解析（分隔符、引号、空白）
2. 去重与大小写不敏感比较
3. 集合运算
4. 格式化输出
5. 冻结
"""

import pytest

from ytag.config import configure_tagging
from ytag.orm.taggable import TagList, FrozenTagListError, split_tag_string


class TestTagListParsing:
    """字符串解析测试"""

    def test_parse_comma_delimited(self):
        """测试逗号分隔字符串"""
        tags = TagList.from_input("awesome, radical, cool")

        assert list(tags) == ["awesome", "radical", "cool"]

    def test_parse_strips_whitespace_and_blanks(self):
        """测试去除空白和空项"""
        tags = TagList.from_input("  a ,, b ,   ,c  ")

        assert list(tags) == ["a", "b", "c"]

    def test_parse_double_quoted(self):
        """测试双引号内的分隔符不拆分"""
        tags = TagList.from_input('cool, "one, two", neat')

        assert list(tags) == ["cool", "one, two", "neat"]

    def test_parse_single_quoted(self):
        """测试单引号内的分隔符不拆分"""
        tags = TagList.from_input("cool, 'one, two', neat")

        assert list(tags) == ["cool", "one, two", "neat"]

    def test_parse_quote_inside_name(self):
        """测试名称中间的引号按普通字符处理"""
        tags = TagList.from_input('it"s, fine')

        assert list(tags) == ['it"s', "fine"]

    def test_parse_custom_delimiter(self):
        """测试自定义分隔符"""
        configure_tagging(delimiter=";")

        tags = TagList.from_input("a, b; c")

        assert list(tags) == ["a, b", "c"]

    def test_parse_none_and_empty(self):
        """测试空输入"""
        assert len(TagList.from_input(None)) == 0
        assert len(TagList.from_input("")) == 0
        assert len(TagList.from_input("   ")) == 0

    def test_list_input_elementwise(self):
        """测试列表输入：每个元素一个标签，不再拆分"""
        tags = TagList.from_input(["a, b", " c ", "", None])

        assert list(tags) == ["a, b", "c"]

    def test_force_lowercase(self):
        """测试解析时转小写"""
        configure_tagging(force_lowercase=True)

        tags = TagList.from_input("Python, SQL")

        assert list(tags) == ["python", "sql"]

    def test_split_tag_string_keeps_raw_segments(self):
        """测试底层拆分函数"""
        assert split_tag_string('a, "b, c", d') == ["a", "b, c", " d"]


class TestTagListDedup:
    """去重与比较测试"""

    def test_dedup_case_insensitive(self):
        """测试大小写不敏感去重，保留首次写法"""
        tags = TagList.from_input("Python, python, PYTHON, web")

        assert list(tags) == ["Python", "web"]

    def test_append_duplicate_ignored(self):
        """测试追加重复标签被忽略"""
        tags = TagList(["a", "b"])
        tags.append(" A ")
        tags.add("c", "B")

        assert list(tags) == ["a", "b", "c"]

    def test_contains_case_insensitive(self):
        """测试成员判断大小写不敏感"""
        tags = TagList(["Python"])

        assert "python" in tags
        assert " PYTHON " in tags
        assert "java" not in tags

    def test_equality_ignores_order_and_case(self):
        """测试相等比较忽略顺序和大小写"""
        assert TagList(["a", "B"]) == TagList(["b", "A"])
        assert TagList(["a", "b"]) == ["B", "a"]
        assert TagList(["a"]) != TagList(["a", "b"])

    def test_remove_case_insensitive(self):
        """测试移除大小写不敏感"""
        tags = TagList(["Python", "web"])
        tags.remove("PYTHON")

        assert list(tags) == ["web"]

    def test_setitem_keeps_unique(self):
        """测试按下标赋值后仍保持唯一"""
        tags = TagList(["a", "b", "c"])
        tags[0] = "c"

        assert list(tags) == ["c", "b"]


class TestTagListAlgebra:
    """集合运算测试"""

    def test_difference(self):
        """测试差集"""
        result = TagList(["a", "b", "c"]) - TagList(["B"])

        assert isinstance(result, TagList)
        assert list(result) == ["a", "c"]

    def test_difference_with_string(self):
        """测试与字符串做差集"""
        result = TagList(["a", "b", "c"]) - "a, c"

        assert list(result) == ["b"]

    def test_union(self):
        """测试并集保持顺序"""
        result = TagList(["a", "b"]) + ["B", "c"]

        assert list(result) == ["a", "b", "c"]
        assert list(TagList(["a"]) | ["b"]) == ["a", "b"]

    def test_intersection(self):
        """测试交集"""
        result = TagList(["a", "b", "c"]) & ["C", "a", "x"]

        assert list(result) == ["a", "c"]

    def test_operations_do_not_mutate(self):
        """测试运算不修改原列表"""
        tags = TagList(["a", "b"])
        _ = tags - ["a"]
        _ = tags + ["c"]

        assert list(tags) == ["a", "b"]


class TestTagListFormatting:
    """格式化测试"""

    def test_to_string(self):
        """测试格式化为字符串"""
        assert TagList(["a", "b", "c"]).to_string() == "a, b, c"
        assert str(TagList(["a", "b"])) == "a, b"

    def test_to_string_quotes_delimiter(self):
        """测试名称包含分隔符时加引号"""
        tags = TagList(["one, two", "three"])

        assert tags.to_string() == '"one, two", three'

    def test_to_string_round_trip(self):
        """测试格式化后重新解析得到相同列表"""
        tags = TagList(["one, two", 'say "hi", ok', "three"])

        parsed = TagList.from_input(tags.to_string())

        assert list(parsed) == list(tags)

    def test_to_string_custom_delimiter(self):
        """测试自定义分隔符格式化"""
        configure_tagging(delimiter="|")

        assert TagList(["a", "b"]).to_string() == "a| b"


class TestTagListFreeze:
    """冻结测试"""

    def test_frozen_rejects_mutation(self):
        """测试冻结后拒绝修改"""
        tags = TagList(["a", "b"]).freeze()

        assert tags.frozen
        with pytest.raises(FrozenTagListError):
            tags.append("c")
        with pytest.raises(FrozenTagListError):
            tags.remove("a")
        with pytest.raises(FrozenTagListError):
            tags[0] = "x"
        with pytest.raises(FrozenTagListError):
            tags.clear()

        assert list(tags) == ["a", "b"]

    def test_frozen_error_is_type_error(self):
        """测试冻结异常同时是 TypeError"""
        tags = TagList(["a"]).freeze()

        with pytest.raises(TypeError):
            tags.append("b")

    def test_copy_is_not_frozen(self):
        """测试副本不冻结"""
        tags = TagList(["a"]).freeze()
        clone = tags.copy()
        clone.append("b")

        assert list(clone) == ["a", "b"]
        assert list(tags) == ["a"]
