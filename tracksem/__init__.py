"""
TrackSem: a semester grade tracker.

Users keep weighted grading components per course, enter scores as they
come in, and get a live projected final grade and letter.
"""

__version__ = "1.0.0"
__author__ = "TrackSem Development Team"
__description__ = "Semester grade tracking service with live grade projection"
