"""
Core module containing the grade model, projection rules and course catalog.
"""

from .entities import User, AbstractEntity, Course, Component, SubItem
from .interfaces import AuthSession, IdentityProvider
from .exceptions import (
    TrackSemException, ValidationError, AuthorizationError, ResourceNotFoundError,
    PersistenceError, ConfigurationError, NetworkError,
)
from .enums import ComponentField, SubItemField, DatabaseType, IdentityProviderType
from .grading import Projection, component_percentage, project_course, total_weight, letter_grade, grade_color

__all__ = [
    # Entities
    "User",
    "AbstractEntity",
    "Course",
    "Component",
    "SubItem",
    
    # Interfaces
    "AuthSession",
    "IdentityProvider",
    
    # Enums
    "ComponentField",
    "SubItemField",
    "DatabaseType",
    "IdentityProviderType",
    
    # Grading
    "Projection",
    "component_percentage",
    "project_course",
    "total_weight",
    "letter_grade",
    "grade_color",
    
    # Exceptions
    "TrackSemException",
    "ValidationError",
    "AuthorizationError",
    "ResourceNotFoundError",
    "PersistenceError",
    "ConfigurationError",
    "NetworkError",
]
