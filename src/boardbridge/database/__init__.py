"""
Database module for boardbridge
"""

from .connection import get_session_factory, init_database, reset_database

__all__ = ["get_session_factory", "init_database", "reset_database"]
