"""
Feature flags module for flagstore.

Resolves a feature's value once per (feature, scope) pair, stores it, and
answers later checks from storage.
"""

from flagstore.features.class_feature import ClassFeature
from flagstore.features.drivers.base import MISSING, FeatureDriver
from flagstore.features.drivers.database import DatabaseDriver
from flagstore.features.drivers.memory import InMemoryDriver, InMemoryState
from flagstore.features.engine import ResolutionEngine
from flagstore.features.gate import Gate
from flagstore.features.interaction import ScopedFeatureInteraction
from flagstore.features.manager import FeatureManager, get_feature_manager, set_feature_manager
from flagstore.features.registry import ResolverRegistry
from flagstore.features.scope import ScopeNormalizer, normalize_scope, scope_type

__all__ = [
    "ClassFeature",
    "MISSING",
    "FeatureDriver",
    "DatabaseDriver",
    "InMemoryDriver",
    "InMemoryState",
    "ResolutionEngine",
    "Gate",
    "ScopedFeatureInteraction",
    "FeatureManager",
    "get_feature_manager",
    "set_feature_manager",
    "ResolverRegistry",
    "ScopeNormalizer",
    "normalize_scope",
    "scope_type",
]
