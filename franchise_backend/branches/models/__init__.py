"""
PATH: branches/models/__init__.py

Branches models export surface.
"""

from .branch import Branch
from .shift import BranchShift

__all__ = [
    "Branch",
    "BranchShift",
]
