"""
Analyses that run before the rewrite.
"""

from .type_parameters import get_type_parameters, iter_annotation_identifiers
from .entity_resolution import EntityResolutionPass, EntityResolver

__all__ = [
    "get_type_parameters", "iter_annotation_identifiers",
    "EntityResolutionPass", "EntityResolver",
]
