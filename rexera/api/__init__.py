"""
Module API
==========

Application FastAPI: authentification, middlewares, routes et enveloppe
des réponses.
"""

from .errors import APIError
from .server import create_app

__all__ = [
    "APIError",
    "create_app",
]
