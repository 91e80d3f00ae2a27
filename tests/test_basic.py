"""
基础测试 - 验证测试框架正常工作
"""

import pytest
from pathlib import Path

from conftest import SELF_USERNAME, md5


def test_temp_dir_fixture(temp_dir):
    """测试临时目录 fixture"""
    assert temp_dir.exists()
    assert temp_dir.is_dir()


def test_user_dir_fixture(user_dir):
    """测试模拟用户目录 fixture"""
    assert user_dir.name == md5(SELF_USERNAME)
    assert (user_dir / "DB" / "MM.sqlite").exists()
    assert (user_dir / "DB" / "WCDB_Contact.sqlite").exists()
    assert (user_dir / "mmsetting.archive").exists()


def test_project_structure():
    """测试项目结构是否正确"""
    project_root = Path(__file__).parent.parent

    assert (project_root / "wechat_reader").exists()
    assert (project_root / "wechat_reader" / "__init__.py").exists()
    assert (project_root / "wechat_reader" / "core").exists()
    assert (project_root / "wechat_reader" / "api").exists()
    assert (project_root / "pyproject.toml").exists()


def test_public_api():
    import wechat_reader

    assert wechat_reader.__version__
    for name in wechat_reader.__all__:
        assert hasattr(wechat_reader, name)
