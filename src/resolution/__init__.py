"""Dependency-conflict resolution engine."""

from .graph import CollectedGraph, collect
from .resolver import DependencyResolver, resolve

__all__ = [
    "CollectedGraph",
    "DependencyResolver",
    "collect",
    "resolve",
]
