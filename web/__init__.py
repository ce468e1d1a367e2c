"""
Live Dashboard - Web Module.

FastAPI surface over the live-sync core: panel state, highlights,
notifications and the consolidation/process actions.
"""

from .main import app, create_app

__all__ = [
    'app',
    'create_app',
]
