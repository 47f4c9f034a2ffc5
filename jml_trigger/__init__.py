"""
Identity Lifecycle Trigger Decision Engine (JML Trigger Engine)

Decides, for a single identity whose state has just changed, whether the
joiner, mover, or leaver business process should run, be skipped, be
skipped and marked, or be deferred to a downstream trigger filter.
"""

__version__ = "1.0.0"
__author__ = "JML Engine Team"
__email__ = "team@example.com"

from .engine.checks import CheckFactory
from .engine.config_lookup import DictConfigurationLookup, YamlConfigurationLookup
from .engine.decision_engine import DecisionEngine
from .models import Decision, FinalAction, IdentitySnapshot, ProcessingState, Shortcut
from .workflows.trigger_service import LifecycleTriggerService

__all__ = [
    "CheckFactory",
    "DecisionEngine",
    "DictConfigurationLookup",
    "YamlConfigurationLookup",
    "LifecycleTriggerService",
    "Decision",
    "FinalAction",
    "IdentitySnapshot",
    "ProcessingState",
    "Shortcut",
]
