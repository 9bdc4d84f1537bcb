"""
Services module: gradebook rules and identity providers.
"""

from .gradebook_service import GradebookService
from .identity import SupabaseIdentityProvider, StaticIdentityProvider, IdentityProviderFactory

__all__ = [
    "GradebookService",
    "SupabaseIdentityProvider",
    "StaticIdentityProvider",
    "IdentityProviderFactory",
]
