"""
TutorLink API package.

Provides the FastAPI application for the TutorLink marketplace backend.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
