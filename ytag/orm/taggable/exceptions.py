"""
标签模块 - 异常定义

提供标签相关的异常类
"""

from typing import Optional


class TaggingError(Exception):
    """标签异常基类

    所有标签相关异常的基类。

    使用示例:
        try:
            article.save(commit=True)
        except TaggingError as e:
            print(e.message)
    """

    def __init__(self, message: str = "标签操作失败"):
        super().__init__(message)
        self.message = message


class TagValidationError(TaggingError, ValueError):
    """标签名称校验失败

    名称为空白或超过最大长度时抛出，保存会被阻止。
    """

    def __init__(self, message: str = "标签名称不合法", name: Optional[str] = None):
        if name is not None:
            message = f"{message}: {name!r}"
        super().__init__(message)
        self.name = name


class TagInUseError(TaggingError):
    """标签仍被使用，不能删除"""

    def __init__(self, name: str, usage_count: int):
        super().__init__(f"标签仍被 {usage_count} 条关联引用，不能删除: {name}")
        self.name = name
        self.usage_count = usage_count


class FrozenTagListError(TaggingError, TypeError):
    """修改只读标签列表"""

    def __init__(self, message: str = "标签列表已冻结，不能修改"):
        super().__init__(message)


class TaggableConfigError(TaggingError):
    """标签模型配置错误

    模型缺少 __tag_model__ / __tagging_model__ 配置，
    或在未保存的记录上执行需要主键的操作时抛出。
    """
    pass


__all__ = [
    "TaggingError",
    "TagValidationError",
    "TagInUseError",
    "FrozenTagListError",
    "TaggableConfigError",
]
