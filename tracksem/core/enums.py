"""
Enumerations and constants for TrackSem.
"""

from enum import Enum


class ComponentField(Enum):
    """Editable fields of a grading component, keyed by their wire name."""
    SCORE = "score"
    WEIGHT = "weight"
    MAX_SCORE = "maxScore"
    NAME = "name"
    BEST_OF = "bestOf"


class SubItemField(Enum):
    """Editable fields of a sub-item, keyed by their wire name."""
    SCORE = "score"
    MAX_SCORE = "maxScore"
    NAME = "name"


class DatabaseType(Enum):
    """Supported relational backends."""
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class IdentityProviderType(Enum):
    """Supported identity providers."""
    SUPABASE = "supabase"
    STATIC = "static"
