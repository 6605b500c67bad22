"""
测试公共 Fixtures

- memory_engine / db_session: 内存 SQLite（单连接，启用 SAVEPOINT）
- temp_dir / temp_file / log_dir: 临时文件
- reset_tagging_config: 隔离全局标签配置
"""

import os
import shutil
import tempfile

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ytag.config import reset_tagging_settings
from ytag.orm import enable_sqlite_savepoints


# ==================== 数据库 ====================

@pytest.fixture
def memory_engine():
    """内存数据库引擎

    StaticPool 让所有 session 共用一个连接，否则每个连接看到的是不同的空库。
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(memory_engine):
    """绑定到内存数据库的独立 session"""
    session = sessionmaker(bind=memory_engine, autoflush=False)()
    yield session
    session.close()


# ==================== 配置 ====================

@pytest.fixture(autouse=True)
def reset_tagging_config():
    """全局标签配置在每个测试前后恢复默认"""
    reset_tagging_settings()
    yield
    reset_tagging_settings()


@pytest.fixture
def sample_yaml_config(temp_file):
    """示例 YAML 配置文件路径"""
    return temp_file("config/settings.yaml", (
        "database:\n"
        "  url: \"sqlite:///test.db\"\n"
        "  pool_size: 5\n"
        "\n"
        "logging:\n"
        "  level: \"DEBUG\"\n"
        "  file_path: \"logs/test.log\"\n"
        "\n"
        "tagging:\n"
        "  delimiter: \";\"\n"
        "  like_operator: \"like\"\n"
        "  force_lowercase: true\n"
    ))


# ==================== 临时文件 ====================

@pytest.fixture(scope="session")
def temp_dir():
    path = tempfile.mkdtemp(prefix="ytag-test-")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def temp_file(temp_dir):
    """在 temp_dir 下写入文件，测试结束后删除

    temp_file("config/a.yaml", "key: 1") -> 绝对路径
    """
    written = []

    def write(relative_path: str, content: str = "") -> str:
        path = os.path.join(temp_dir, relative_path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        written.append(path)
        return path

    yield write

    for path in written:
        if os.path.exists(path):
            os.remove(path)


@pytest.fixture
def log_dir(temp_dir):
    path = os.path.join(temp_dir, "logs")
    os.makedirs(path, exist_ok=True)
    return path
