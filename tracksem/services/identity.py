"""
Identity providers that validate session tokens.

Sign-in happens with an external provider. The service only validates
access tokens and exchanges OAuth codes for sessions.
"""

import logging
from typing import Any, Dict, Optional

import requests

from ..core.entities import User
from ..core.enums import IdentityProviderType
from ..core.exceptions import AuthorizationError, ConfigurationError
from ..core.interfaces import AuthSession, IdentityProvider


logger = logging.getLogger(__name__)


def _user_from_payload(payload: Dict[str, Any]) -> Optional[User]:
    user_id = payload.get("id") if isinstance(payload, dict) else None
    if not user_id:
        return None
    return User(id=str(user_id), email=payload.get("email"))


class SupabaseIdentityProvider(IdentityProvider):
    """Supabase Auth over its REST endpoints."""

    USER_PATH = "/auth/v1/user"
    TOKEN_PATH = "/auth/v1/token"

    def __init__(self, url: str, anon_key: str, timeout: float = 10, session: Optional[requests.Session] = None):
        if not url or not anon_key:
            raise ConfigurationError("Supabase url and anon_key are required")
        self._url = url.rstrip("/")
        self._anon_key = anon_key
        self._timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"apikey": anon_key})

    def get_user(self, access_token: str) -> Optional[User]:
        """
        Validate the token with the Auth server.

        The cookie alone is never trusted; any failure means no user.
        """
        if not access_token:
            return None
        try:
            response = self.session.get(
                f"{self._url}{self.USER_PATH}",
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning("Identity provider unreachable: %s", e)
            return None

        if response.status_code != 200:
            return None
        try:
            return _user_from_payload(response.json())
        except ValueError:
            return None

    def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> AuthSession:
        """Exchange a one-time OAuth code for a session using the PKCE flow."""
        try:
            response = self.session.post(
                f"{self._url}{self.TOKEN_PATH}",
                params={"grant_type": "pkce"},
                json={"auth_code": code, "code_verifier": code_verifier},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise AuthorizationError(f"Code exchange failed: {e}")

        if response.status_code != 200:
            raise AuthorizationError("Code exchange rejected", details={"status": response.status_code})

        try:
            payload = response.json()
        except ValueError:
            raise AuthorizationError("Code exchange returned an invalid payload")

        user = _user_from_payload(payload.get("user") or {})
        access_token = payload.get("access_token")
        if user is None or not access_token:
            raise AuthorizationError("Code exchange returned no session")

        return AuthSession(
            access_token=access_token,
            user=user,
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
        )


class StaticIdentityProvider(IdentityProvider):
    """Fixed token-to-user map for local development and tests."""

    def __init__(self, tokens: Optional[Dict[str, Any]] = None, codes: Optional[Dict[str, str]] = None):
        self._users: Dict[str, User] = {}
        for token, user in (tokens or {}).items():
            if isinstance(user, User):
                self._users[token] = user
            elif isinstance(user, dict):
                self._users[token] = User(id=str(user["id"]), email=user.get("email"))
            else:
                self._users[token] = User(id=str(user))
        self._codes = dict(codes or {})

    def get_user(self, access_token: str) -> Optional[User]:
        return self._users.get(access_token)

    def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> AuthSession:
        token = self._codes.get(code)
        if token is None or token not in self._users:
            raise AuthorizationError("Unknown authorization code")
        return AuthSession(access_token=token, user=self._users[token])


class IdentityProviderFactory:
    """Factory for creating identity providers."""

    @staticmethod
    def create(provider_type: str, **kwargs) -> IdentityProvider:
        try:
            kind = IdentityProviderType(provider_type.lower())
        except ValueError:
            raise ConfigurationError(f"Unsupported identity provider: {provider_type}")

        if kind is IdentityProviderType.SUPABASE:
            return SupabaseIdentityProvider(
                url=kwargs.get("url"),
                anon_key=kwargs.get("anon_key"),
                timeout=kwargs.get("timeout", 10),
            )
        return StaticIdentityProvider(tokens=kwargs.get("tokens"), codes=kwargs.get("codes"))
