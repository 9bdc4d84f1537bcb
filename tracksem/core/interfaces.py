"""
Core interfaces and abstract base classes for TrackSem.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .entities import User


@dataclass(frozen=True)
class AuthSession:
    """Tokens issued by the identity provider after sign-in."""
    access_token: str
    user: User
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


class IdentityProvider(ABC):
    """Abstract base class for external identity providers."""
    
    @abstractmethod
    def get_user(self, access_token: str) -> Optional[User]:
        """Validate an access token with the provider and return its user."""
        pass
    
    @abstractmethod
    def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> AuthSession:
        """Exchange a one-time OAuth code for a session."""
        pass
