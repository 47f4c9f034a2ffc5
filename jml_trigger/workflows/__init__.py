"""
Workflows Package for the JML Trigger Engine.

This package orchestrates trigger evaluation for the Joiner, Mover,
and Leaver lifecycle processes.
"""

from .trigger_service import LifecycleTriggerService

__all__ = ["LifecycleTriggerService"]
