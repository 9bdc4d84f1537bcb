"""
API module for the REST interface.
"""

from .rest_api import TrackSemRestAPI

__all__ = [
    "TrackSemRestAPI",
]
