import json

import pytest

from tracksem.config import DEFAULT_CONFIG, load_config
from tracksem.core.exceptions import ConfigurationError


def _write(tmp_path, payload):
    path = tmp_path / "tracksem.json"
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
    return str(path)


def test_defaults_without_file_or_environment():
    config = load_config(environ={})

    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG
    config["identity_config"]["url"] = "changed"
    assert DEFAULT_CONFIG["identity_config"]["url"] == ""


def test_file_is_merged_over_defaults(tmp_path):
    path = _write(tmp_path, {
        "identity_provider": "static",
        "identity_config": {"tokens": {"dev": "user-dev"}},
        "port": "9000",
    })

    config = load_config(path, environ={})

    assert config["identity_provider"] == "static"
    assert config["identity_config"] == {"url": "", "anon_key": "", "tokens": {"dev": "user-dev"}}
    assert config["port"] == 9000
    assert config["database_type"] == "sqlite"


def test_environment_wins_over_file(tmp_path):
    path = _write(tmp_path, {"database_config": {"database_path": "from-file.db"}})

    config = load_config(path, environ={
        "TRACKSEM_DATABASE_PATH": "from-env.db",
        "SUPABASE_URL": "https://project.supabase.co",
        "SUPABASE_ANON_KEY": "anon-key",
        "TRACKSEM_PORT": "8080",
        "TRACKSEM_LOG_LEVEL": "",
    })

    assert config["database_config"]["database_path"] == "from-env.db"
    assert config["identity_config"] == {"url": "https://project.supabase.co", "anon_key": "anon-key"}
    assert config["port"] == 8080
    assert config["log_level"] == "info"


@pytest.mark.parametrize("payload", ["{not json", "[1, 2]"])
def test_malformed_file_is_a_configuration_error(tmp_path, payload):
    with pytest.raises(ConfigurationError):
        load_config(_write(tmp_path, payload), environ={})


def test_missing_file_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(str(tmp_path / "absent.json"), environ={})


def test_invalid_port_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        load_config(environ={"TRACKSEM_PORT": "eighty"})
