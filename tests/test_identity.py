import pytest
import requests

from tracksem.core.entities import User
from tracksem.core.exceptions import AuthorizationError, ConfigurationError
from tracksem.services import IdentityProviderFactory, StaticIdentityProvider, SupabaseIdentityProvider

SUPABASE_URL = "https://project.supabase.co/"


class FakeResponse:
    def __init__(self, *, status_code=200, json_data=None):
        self.status_code = status_code
        self._json_data = json_data

    def json(self):
        if self._json_data is None:
            raise ValueError("No JSON payload")
        return self._json_data


class FakeSession:
    def __init__(self, response=None, error=None):
        self.headers = {}
        self._response = response
        self._error = error
        self.last_url = None
        self.last_headers = None
        self.last_params = None
        self.last_json = None

    def _reply(self):
        if self._error is not None:
            raise self._error
        return self._response

    def get(self, url, headers=None, timeout=None):
        self.last_url = url
        self.last_headers = headers
        return self._reply()

    def post(self, url, params=None, json=None, timeout=None):
        self.last_url = url
        self.last_params = params
        self.last_json = json
        return self._reply()


def _provider(session):
    return SupabaseIdentityProvider(SUPABASE_URL, "anon-key", session=session)


def test_get_user_validates_token_with_auth_server():
    session = FakeSession(FakeResponse(json_data={"id": "u-1", "email": "a@example.edu"}))

    user = _provider(session).get_user("jwt-token")

    assert user == User(id="u-1", email="a@example.edu")
    assert session.last_url == "https://project.supabase.co/auth/v1/user"
    assert session.last_headers == {"Authorization": "Bearer jwt-token"}
    assert session.headers == {"apikey": "anon-key"}


@pytest.mark.parametrize("session", [
    FakeSession(FakeResponse(status_code=401, json_data={"msg": "invalid JWT"})),
    FakeSession(FakeResponse(status_code=200)),
    FakeSession(FakeResponse(json_data={"email": "no-id@example.edu"})),
    FakeSession(error=requests.ConnectionError("unreachable")),
])
def test_get_user_failures_mean_no_user(session):
    assert _provider(session).get_user("jwt-token") is None


def test_get_user_without_token_skips_request():
    session = FakeSession(FakeResponse(json_data={"id": "u-1"}))

    assert _provider(session).get_user("") is None
    assert session.last_url is None


def test_exchange_code_for_session():
    session = FakeSession(FakeResponse(json_data={
        "access_token": "jwt-token",
        "refresh_token": "refresh",
        "expires_in": 3600,
        "user": {"id": "u-1", "email": "a@example.edu"},
    }))

    auth_session = _provider(session).exchange_code_for_session("one-time", "verifier")

    assert auth_session.access_token == "jwt-token"
    assert auth_session.refresh_token == "refresh"
    assert auth_session.expires_in == 3600
    assert auth_session.user.id == "u-1"
    assert session.last_url == "https://project.supabase.co/auth/v1/token"
    assert session.last_params == {"grant_type": "pkce"}
    assert session.last_json == {"auth_code": "one-time", "code_verifier": "verifier"}


@pytest.mark.parametrize("session", [
    FakeSession(FakeResponse(status_code=400, json_data={"error": "invalid_grant"})),
    FakeSession(FakeResponse(status_code=200)),
    FakeSession(FakeResponse(json_data={"access_token": "jwt-token"})),
    FakeSession(FakeResponse(json_data={"user": {"id": "u-1"}})),
    FakeSession(error=requests.Timeout("slow")),
])
def test_exchange_failures_raise_authorization_error(session):
    with pytest.raises(AuthorizationError):
        _provider(session).exchange_code_for_session("one-time")


@pytest.mark.parametrize("url,key", [("", "anon-key"), (SUPABASE_URL, ""), (None, None)])
def test_supabase_requires_url_and_key(url, key):
    with pytest.raises(ConfigurationError):
        SupabaseIdentityProvider(url, key, session=FakeSession())


def test_static_provider_accepts_users_dicts_and_ids():
    provider = StaticIdentityProvider(
        tokens={
            "t-1": User(id="u-1"),
            "t-2": {"id": 2, "email": "two@example.edu"},
            "t-3": "u-3",
        },
        codes={"c-2": "t-2", "c-x": "missing"},
    )

    assert provider.get_user("t-1") == User(id="u-1")
    assert provider.get_user("t-2") == User(id="2", email="two@example.edu")
    assert provider.get_user("t-3").id == "u-3"
    assert provider.get_user("nope") is None
    assert provider.exchange_code_for_session("c-2").access_token == "t-2"
    with pytest.raises(AuthorizationError):
        provider.exchange_code_for_session("c-x")


def test_factory_builds_configured_provider():
    static = IdentityProviderFactory.create("Static", url="", anon_key="", tokens={"t": "u"})
    supabase = IdentityProviderFactory.create("supabase", url=SUPABASE_URL, anon_key="anon-key")

    assert isinstance(static, StaticIdentityProvider)
    assert static.get_user("t").id == "u"
    assert isinstance(supabase, SupabaseIdentityProvider)
    with pytest.raises(ConfigurationError):
        IdentityProviderFactory.create("ldap")
