"""
API module.
Contains the FastAPI application, routes, and admin authentication.
"""

from sitescan.api.main import create_app, run

__all__ = ["create_app", "run"]
