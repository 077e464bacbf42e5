"""
HTTP API for level queries
"""

from .levels_api import create_levels_app, run_server

__all__ = [
    "create_levels_app",
    "run_server"
]
