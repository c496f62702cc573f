from __future__ import annotations

import os

import pytest

from modhub.core.config.manager import ConfigManager
from modhub.core.config.paths import ConfigFsPaths

from .helpers.modules import make_manager


@pytest.fixture
def tmp_config_root(tmp_path):
    """
    Provides an isolated project root with config/ under tmp_path.
    """
    fs = ConfigFsPaths(root=str(tmp_path))
    os.makedirs(fs.config_dir, exist_ok=True)
    return fs


@pytest.fixture
def config_manager(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root, read_only=False)
    cm.load_all()
    return cm


@pytest.fixture
def modules_root(tmp_path):
    os.makedirs(tmp_path / "tmp", exist_ok=True)
    return str(tmp_path / "modules")


@pytest.fixture
def manager_factory(tmp_path, modules_root):
    """Builds a fresh ModuleManager over the same tmp project root (a "new process")."""

    def _make(**cfg):
        return make_manager(str(tmp_path), **cfg)

    return _make


@pytest.fixture
def manager(manager_factory):
    return manager_factory()
