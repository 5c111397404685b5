"""
HTTP API for the tool installer.
"""

from .app import create_app

__all__ = ["create_app"]
