"""
TutorHub
A local tutorial catalog with layered content resolution, dependency-ordered
learning paths and full-text search.
"""

__version__ = "0.1.0"
