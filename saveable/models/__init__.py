"""
ORM models for the saveable engine.

Both tables take their names from SaveableSettings when this package is first
imported.
"""

from .collection import Collection
from .save import Save

__all__ = [
    "Collection",
    "Save",
]
