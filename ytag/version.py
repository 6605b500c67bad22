"""版本信息"""

__version__ = "0.3.0"
__author__ = "ytag contributors"
__description__ = "SQLAlchemy 多态标签库：按上下文管理标签，支持标签集合查询"
