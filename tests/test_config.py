from __future__ import annotations

from pathlib import Path

import pytest

from microblog_inbound.config import ConfigError, load_config


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_config_applies_defaults_and_resolves_storage_path(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
log_level: debug
sources:
  - id: home
    type: timeline
  - id: dms
    type: direct_messages
    min_interval_seconds: 120
""",
    )

    config = load_config(path)

    assert [source.id for source in config.sources] == ["home", "dms"]
    assert config.sources[0].polling is None
    assert config.sources[1].polling.min_interval_seconds == 120
    assert config.sources[1].polling.max_interval_seconds == 900
    assert config.log_level == "DEBUG"
    assert config.api.token_env_var == "MICROBLOG_API_TOKEN"
    assert config.polling.min_interval_seconds == 15
    assert config.storage.type == "sqlite"
    assert config.storage.path == str((tmp_path / "data" / "markers.sqlite").resolve())


def test_load_config_reads_polling_and_api_sections(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
api:
  base_url: https://api.example.test/
  token_env_var: MY_TOKEN
  timeout_seconds: 5
polling:
  min_interval_seconds: 30
  max_interval_seconds: 600
  fallback_interval_seconds: 90
storage:
  type: memory
sources:
  - id: mentions
    type: mentions
""",
    )

    config = load_config(path)

    assert config.api.base_url == "https://api.example.test/"
    assert config.api.token_env_var == "MY_TOKEN"
    assert config.api.timeout_seconds == 5
    assert config.polling.max_interval_seconds == 600
    assert config.polling.fallback_interval_seconds == 90
    assert config.storage.type == "memory"


@pytest.mark.parametrize(
    "text",
    [
        "sources: []",
        "sources:\n  - id: home\n",
        "sources:\n  - id: a\n    type: timeline\n  - id: a\n    type: mentions\n",
        "sources:\n  - id: a\n    type: timeline\nstorage:\n  type: redis\n",
        "sources:\n  - id: a\n    type: timeline\npolling:\n  min_interval_seconds: 0\n",
        "sources:\n  - id: a\n    type: timeline\n"
        "polling:\n  min_interval_seconds: 60\n  max_interval_seconds: 30\n",
        "sources:\n  - id: a\n    type: timeline\n    url: https://example.test\n",
        "sources:\n  - id: a\n    type: timeline\n    max_interval_seconds: 5\n",
        "- not a mapping",
    ],
)
def test_invalid_config_raises(tmp_path: Path, text: str) -> None:
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, text))


def test_missing_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")


def test_source_interval_overrides_inherit_from_global_polling(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
polling:
  min_interval_seconds: 30
  fallback_interval_seconds: 90
sources:
  - id: dms
    type: direct_messages
    max_interval_seconds: 60
""",
    )

    polling = load_config(path).sources[0].polling

    assert polling.min_interval_seconds == 30
    assert polling.max_interval_seconds == 60
    assert polling.fallback_interval_seconds == 90
