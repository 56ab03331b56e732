"""Tests for RelayConfig."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from story_relay.config import RelayConfig


def test_defaults_derive_paths_from_root(tmp_path):
    config = RelayConfig(root_dir=tmp_path)
    assert config.index_path == tmp_path / "data" / "index.json"
    assert config.upload_dir == tmp_path / "assets" / "uploads"
    assert config.worker_mode == "persistent"
    assert config.engine_command == "codex"
    assert config.settle_timeout == 120.0
    assert config.poll_interval == 0.4
    assert config.debounce == 1.0
    assert config.diagnostic_tail == 1200
    assert config.port == 8787


def test_from_env_reads_variables():
    config = RelayConfig.from_env({
        "RELAY_ROOT": "/srv/stories",
        "RELAY_WORKER_MODE": " Ephemeral ",
        "CODEX_PATH": "/opt/codex/bin/codex",
        "RELAY_SETTLE_TIMEOUT": "30",
        "RELAY_DEBOUNCE": "2.5",
        "PORT": "9000",
    })
    assert config.root_dir == Path("/srv/stories")
    assert config.index_path == Path("/srv/stories/data/index.json")
    assert config.worker_mode == "ephemeral"
    assert config.engine_path == "/opt/codex/bin/codex"
    assert config.settle_timeout == 30.0
    assert config.debounce == 2.5
    assert config.port == 9000


def test_from_env_explicit_index():
    config = RelayConfig.from_env({"RELAY_ROOT": "/srv", "RELAY_INDEX": "/etc/index.json"})
    assert config.index_path == Path("/etc/index.json")


def test_from_env_overrides_win(tmp_path):
    config = RelayConfig.from_env({"RELAY_WORKER_MODE": "ephemeral"}, root_dir=tmp_path, worker_mode="echo")
    assert config.root_dir == tmp_path
    assert config.worker_mode == "echo"


def test_invalid_worker_mode():
    with pytest.raises(ValidationError):
        RelayConfig.from_env({"RELAY_WORKER_MODE": "threaded"})


def test_public_view_omits_engine_path(tmp_path):
    view = RelayConfig(root_dir=tmp_path, engine_path="/x/codex").public_view()
    assert "engine_path" not in view
    assert view["worker_mode"] == "persistent"
