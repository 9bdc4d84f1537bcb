import json

import pytest
from fastapi.testclient import TestClient

from tracksem import main as main_module
from tracksem.config import ENV_OVERRIDES
from tracksem.core.exceptions import ConfigurationError
from tracksem.main import TrackSemPlatform, main


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for variable in ENV_OVERRIDES:
        monkeypatch.delenv(variable, raising=False)


def _config(tmp_path, **overrides):
    config = {
        "database_type": "sqlite",
        "database_config": {"database_path": str(tmp_path / "data" / "tracksem.db")},
        "identity_provider": "static",
        "identity_config": {"tokens": {"dev-token": {"id": "user-dev", "email": "dev@example.edu"}}},
        "session_cookie": "tracksem-session",
    }
    config.update(overrides)
    return config


def test_platform_serves_the_api(tmp_path):
    platform = TrackSemPlatform(_config(tmp_path))

    with TestClient(platform.app) as client:
        response = client.get("/api/session", headers={"Authorization": "Bearer dev-token"})

    assert response.json() == {"id": "user-dev", "email": "dev@example.edu"}


def test_seed_user_is_idempotent(tmp_path):
    platform = TrackSemPlatform(_config(tmp_path))

    assert platform.seed_user("user-dev", "CSE", 3) == 5
    assert platform.seed_user("user-dev", "CSE", 3) == 5


def test_supabase_without_credentials_fails_fast(tmp_path):
    with pytest.raises(ConfigurationError):
        TrackSemPlatform(_config(tmp_path, identity_provider="supabase", identity_config={}))


def test_main_seeds_from_config_file(tmp_path, capsys):
    config_path = tmp_path / "tracksem.json"
    config_path.write_text(json.dumps(_config(tmp_path)), encoding="utf-8")

    code = main(["--config", str(config_path), "--seed", "CSE", "3", "--user", "user-dev"])

    assert code == 0
    assert "user-dev now has 5 course(s)" in capsys.readouterr().out


def test_main_reports_configuration_errors(tmp_path, capsys):
    code = main(["--config", str(tmp_path / "missing.json")])

    assert code == 1
    assert "Cannot read config file" in capsys.readouterr().err


def test_main_starts_rest_server(tmp_path, monkeypatch):
    config_path = tmp_path / "tracksem.json"
    config_path.write_text(json.dumps(_config(tmp_path)), encoding="utf-8")
    started = {}
    monkeypatch.setattr(main_module.TrackSemPlatform, "start_rest_server",
                        lambda self, host, port: started.update(host=host, port=port))

    assert main(["--config", str(config_path), "--port", "9001"]) == 0
    assert started == {"host": None, "port": 9001}


def test_seed_requires_user():
    with pytest.raises(SystemExit):
        main(["--seed", "CSE", "3"])
