"""Domain layer package exposing pure search and indexing abstractions."""

from . import entities
from . import interfaces
from .value_objects import PrefixQuery

__all__ = [
    "entities",
    "interfaces",
    "PrefixQuery",
]
