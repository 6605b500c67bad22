"""YAML 配置读取

使用示例:
    from ytag.config import AppSettings, ConfigLoader, load_yaml_config

    raw = ConfigLoader.load("config/settings.yaml")                 # dict
    settings = load_yaml_config("config/settings.yaml", AppSettings)
"""

import os
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

import yaml


SettingsT = TypeVar("SettingsT")


def _deep_merge(base: Mapping[str, Any], update: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """YAML 文件读取器，结果按绝对路径缓存"""

    _cache: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def resolve_path(config_path: str, base_dir: Optional[str] = None) -> str:
        if not os.path.isabs(config_path) and base_dir:
            config_path = os.path.join(base_dir, config_path)
        return os.path.abspath(config_path)

    @classmethod
    def load(
        cls,
        config_path: str,
        base_dir: Optional[str] = None,
        use_cache: bool = True,
    ) -> Dict[str, Any]:
        """读取 YAML 文件为字典

        空文件返回空字典。

        Raises:
            FileNotFoundError: 文件不存在
            yaml.YAMLError: 内容不是合法的 YAML
        """
        path = cls.resolve_path(config_path, base_dir)
        if use_cache and path in cls._cache:
            return cls._cache[path]

        if not os.path.isfile(path):
            raise FileNotFoundError(f"找不到配置文件: {path}")
        with open(path, encoding="utf-8") as stream:
            data = yaml.safe_load(stream) or {}

        if use_cache:
            cls._cache[path] = data
        return data

    @classmethod
    def reload(cls, config_path: str, base_dir: Optional[str] = None) -> Dict[str, Any]:
        """丢弃缓存后重新读取"""
        cls._cache.pop(cls.resolve_path(config_path, base_dir), None)
        return cls.load(config_path, base_dir)

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache.clear()


def load_yaml_config(
    config_path: str,
    settings_class: Type[SettingsT],
    base_dir: Optional[str] = None,
    **overrides,
) -> SettingsT:
    """读取 YAML 并构造 Settings 对象

    overrides 按节深度合并到文件内容上，例如 tagging={"delimiter": "|"}
    只替换 tagging.delimiter，tagging 下的其他配置保持文件中的值。

    使用示例:
        settings = load_yaml_config("config/settings.yaml", AppSettings)
        configure_tagging(settings.tagging)
    """
    data = _deep_merge(ConfigLoader.load(config_path, base_dir), overrides)
    return settings_class(**data)
