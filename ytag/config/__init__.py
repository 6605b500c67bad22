"""配置模块

提供配置管理功能：
- TaggingSettings: 标签解析与匹配配置
- DatabaseSettings, LoggingSettings: 基础设施配置
- AppSettings: 聚合配置，支持 YAML + 环境变量
- configure_tagging / get_tagging_settings: 全局标签配置

快速开始:
    from ytag.config import AppSettings, load_yaml_config, configure_tagging

    settings = load_yaml_config("config/settings.yaml", AppSettings)
    configure_tagging(settings.tagging)

配置优先级: 环境变量 > YAML 文件 > 默认值
"""

from .settings import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    TaggingSettings,
    configure_tagging,
    get_tagging_settings,
    reset_tagging_settings,
)

from .loader import (
    ConfigLoader,
    load_yaml_config,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "TaggingSettings",
    "configure_tagging",
    "get_tagging_settings",
    "reset_tagging_settings",
    "ConfigLoader",
    "load_yaml_config",
]
