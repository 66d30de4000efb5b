"""
Utilitaires transverses de l'API Rexera.
"""

from .logging import setup_logging
from .retry import with_retry

__all__ = [
    "setup_logging",
    "with_retry",
]
