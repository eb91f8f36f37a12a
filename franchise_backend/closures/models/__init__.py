# closures/models/__init__.py

"""
CLOSURES MODELS PACKAGE EXPORTS

Keep this file imports-only; services are never imported from models.
"""

from closures.models.closure import Closure
from closures.models.posting import Posting

__all__ = [
    "Closure",
    "Posting",
]
