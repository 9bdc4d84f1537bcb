import pytest
from fastapi.testclient import TestClient

from tracksem.api.rest_api import TrackSemRestAPI
from tracksem.core.entities import User
from tracksem.persistence import SQLiteDatabase, apply_schema
from tracksem.services import GradebookService, StaticIdentityProvider


ALICE = User(id="user-alice", email="alice@example.edu")
BOB = User(id="user-bob", email="bob@example.edu")

TOKENS = {"token-alice": ALICE, "token-bob": BOB}
CODES = {"code-alice": "token-alice"}


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def database(tmp_path):
    db = SQLiteDatabase(str(tmp_path / "data" / "tracksem.db"))
    apply_schema(db)
    return db


@pytest.fixture
def gradebook(database):
    return GradebookService(database)


@pytest.fixture
def identity():
    return StaticIdentityProvider(tokens=TOKENS, codes=CODES)


@pytest.fixture
def rest_api(gradebook, identity):
    return TrackSemRestAPI(gradebook, identity, {"session_cookie": "tracksem-session"})


@pytest.fixture
def client(rest_api):
    with TestClient(rest_api.app) as test_client:
        yield test_client
