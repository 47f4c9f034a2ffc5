"""
Decision Engine Package.

This package provides the lifecycle checks, the decision engine, the
configuration lookup, the trigger filter, and the identity snapshot store.
"""

from .checks import Check, CheckFactory, JoinerCheck, LeaverCheck, MoverCheck, NoOpCheck
from .config_lookup import ConfigurationLookup, DictConfigurationLookup, YamlConfigurationLookup
from .decision_engine import DecisionEngine
from .snapshot_store import SnapshotStore
from .trigger_filter import TriggerFilter

__all__ = [
    "Check",
    "CheckFactory",
    "JoinerCheck",
    "MoverCheck",
    "LeaverCheck",
    "NoOpCheck",
    "ConfigurationLookup",
    "DictConfigurationLookup",
    "YamlConfigurationLookup",
    "DecisionEngine",
    "SnapshotStore",
    "TriggerFilter",
]
