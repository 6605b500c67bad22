"""配置加载器测试"""

import os

import pytest
import yaml

from ytag.config import AppSettings, ConfigLoader, configure_tagging, load_yaml_config
from ytag.orm.taggable import TagList


@pytest.fixture(autouse=True)
def clear_config_cache():
    ConfigLoader.clear_cache()
    yield
    ConfigLoader.clear_cache()


class TestConfigLoader:
    """ConfigLoader 测试"""

    def test_load(self, sample_yaml_config):
        """测试加载 YAML 文件"""
        config = ConfigLoader.load(sample_yaml_config)

        assert config["database"]["pool_size"] == 5
        assert config["tagging"]["delimiter"] == ";"

    def test_load_uses_cache(self, sample_yaml_config):
        """测试缓存"""
        first = ConfigLoader.load(sample_yaml_config)

        assert ConfigLoader.load(sample_yaml_config) is first
        assert ConfigLoader.load(sample_yaml_config, use_cache=False) is not first

    def test_reload(self, sample_yaml_config):
        """测试重新加载读取文件的最新内容"""
        ConfigLoader.load(sample_yaml_config)
        with open(sample_yaml_config, "w", encoding="utf-8") as f:
            f.write("tagging:\n  delimiter: '|'\n")

        assert ConfigLoader.load(sample_yaml_config)["tagging"]["delimiter"] == ";"
        assert ConfigLoader.reload(sample_yaml_config)["tagging"]["delimiter"] == "|"

    def test_relative_path_with_base_dir(self, sample_yaml_config):
        """测试相对路径 + 基础目录"""
        base_dir = os.path.dirname(os.path.dirname(sample_yaml_config))

        config = ConfigLoader.load("config/settings.yaml", base_dir=base_dir)

        assert config["logging"]["level"] == "DEBUG"

    def test_missing_file(self, temp_dir):
        """测试文件不存在"""
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load(os.path.join(temp_dir, "missing.yaml"))

    def test_empty_file(self, temp_file):
        """测试空文件返回空字典"""
        path = temp_file("empty.yaml", "")

        assert ConfigLoader.load(path) == {}

    def test_invalid_yaml(self, temp_file):
        """测试 YAML 语法错误"""
        path = temp_file("broken.yaml", "tagging: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            ConfigLoader.load(path)


class TestLoadYamlConfig:
    """load_yaml_config 测试"""

    def test_load_settings(self, sample_yaml_config):
        """测试加载为 Settings 实例"""
        settings = load_yaml_config(sample_yaml_config, AppSettings)

        assert settings.database.url == "sqlite:///test.db"
        assert settings.logging.file_path == "logs/test.log"
        assert settings.tagging.delimiter == ";"
        assert settings.tagging.force_lowercase is True

    def test_overrides(self, sample_yaml_config):
        """测试覆盖参数"""
        settings = load_yaml_config(
            sample_yaml_config, AppSettings, tagging={"delimiter": "|"}
        )

        assert settings.tagging.delimiter == "|"

    def test_activate_loaded_tagging_settings(self, sample_yaml_config):
        """测试激活从文件加载的标签配置"""
        settings = load_yaml_config(sample_yaml_config, AppSettings)
        configure_tagging(settings.tagging)

        assert list(TagList.from_input("Python; SQL")) == ["python", "sql"]
