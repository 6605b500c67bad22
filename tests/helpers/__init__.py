"""测试辅助模块"""

from .taggable_models import (
    TagModel,
    TaggingModel,
    TaggableUser,
    TaggableArticle,
    TaggerAccount,
    create_user,
)

__all__ = [
    "TagModel",
    "TaggingModel",
    "TaggableUser",
    "TaggableArticle",
    "TaggerAccount",
    "create_user",
]
