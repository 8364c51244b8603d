"""
Content catalog
Module definitions and sub-entity kinds driving the generic services and routers
"""

from .kinds import KINDS, EntityKind
from .modules import MODULES, ModuleDefinition

__all__ = [
    "KINDS",
    "EntityKind",
    "MODULES",
    "ModuleDefinition",
]
