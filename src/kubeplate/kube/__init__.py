"""
Access to the Kubernetes API for resources of any kind, resolved at runtime via the server's discovery endpoints.
"""

from .client import STRATEGIC_MERGE_PATCH, ResourceClient, ResourceCoordinate, is_already_exists
from .discovery import ResourceResolver
from .registry import TypeRegistry

__all__ = [
    "STRATEGIC_MERGE_PATCH",
    "ResourceClient",
    "ResourceCoordinate",
    "ResourceResolver",
    "TypeRegistry",
    "is_already_exists",
]
