from __future__ import annotations

import pytest

from edgeconsent.core.config.manager import ConfigManager
from edgeconsent.core.config.paths import ConfigFsPaths
from edgeconsent.core.ops_log import OpsLogger
from tests.helpers.fakes import DummyLogger, FakeStore, SwitchableProvider


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def provider(fake_store):
    return SwitchableProvider(fake_store)


@pytest.fixture
def ops(tmp_path):
    return OpsLogger(path=str(tmp_path / "logs" / "ops.jsonl"))


@pytest.fixture
def tmp_config_root(tmp_path):
    """
    Provides an isolated root with config/ under tmp_path.
    """
    fs = ConfigFsPaths(root=str(tmp_path))
    return fs


@pytest.fixture
def config_manager(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root, logger=DummyLogger(), read_only=False)
    cm.load_all()
    return cm
