"""
Trigger Filter for the JML Trigger Engine.

Evaluates the attribute-change conditions configured under
``businessProcesses -> <process> -> triggerFilter``. The filter is only
consulted when a check defers the decision.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..models import ConfigurationError, IdentitySnapshot
from .config_lookup import TRIGGER_FILTER, ConfigurationLookup, business_process_path

logger = logging.getLogger(__name__)

AND_OPERATION = "AND"
OR_OPERATION = "OR"
WILDCARD = "*"
EMPTY = "EMPTY"
IGNORE = "IGNORE"


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip()) or value == []


def _normalize(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _values_equal(old: Any, new: Any) -> bool:
    if _is_empty(old) and _is_empty(new):
        return True
    return _normalize(old) == _normalize(new)


def _matches_pattern(pattern: str, value: Any) -> bool:
    """
    Match an attribute value against one side of a condition.

    Args:
        pattern: '*', 'EMPTY', or comma-separated candidate values
        value: Attribute value from the snapshot

    Returns:
        True if the value satisfies the pattern
    """
    token = pattern.strip()
    if token == WILDCARD:
        return not _is_empty(value)
    if token.upper() == EMPTY:
        return _is_empty(value)
    if _is_empty(value):
        return False

    candidates = [c.strip().lower() for c in token.split(",") if c.strip()]
    return str(value).strip().lower() in candidates


class TriggerFilter:
    """Attribute-change trigger filter driven by lifecycle configuration."""

    def get_filter_config(self, process: str, config: ConfigurationLookup) -> Optional[Mapping[str, Any]]:
        """Return the filter configuration for a process, None if absent."""
        filter_config = config.get_value(business_process_path(process, TRIGGER_FILTER))
        if not isinstance(filter_config, Mapping):
            return None
        return filter_config

    def evaluate(
        self,
        process: str,
        previous: Optional[IdentitySnapshot],
        current: IdentitySnapshot,
        config: ConfigurationLookup,
    ) -> Optional[bool]:
        """
        Evaluate the configured trigger filter.

        Args:
            process: Business process name
            previous: Identity state before the change, None for a new identity
            current: Identity state after the change
            config: Configuration lookup holding the filter

        Returns:
            True/False when a filter is configured, None when there is none

        Raises:
            ConfigurationError: If the filter operation is not AND or OR, or
                the attribute conditions are not a list of mappings
        """
        filter_config = self.get_filter_config(process, config)
        if filter_config is None:
            return None

        operation = str(filter_config.get("operation", AND_OPERATION)).strip().upper()
        if operation not in (AND_OPERATION, OR_OPERATION):
            raise ConfigurationError(f"Unknown trigger filter operation for {process}: {operation}")

        conditions: List[Dict[str, Any]] = filter_config.get("attributes") or []
        if not isinstance(conditions, list):
            raise ConfigurationError(
                f"Trigger filter attributes for {process} must be a list, got {type(conditions).__name__}"
            )
        if not conditions:
            logger.debug(f"Trigger filter for {process} has no attribute conditions")
            return False

        results = [self._evaluate_condition(cond, previous, current) for cond in conditions]
        logger.debug(f"Trigger filter {process} ({operation}) for {current.name}: {results}")

        if operation == OR_OPERATION:
            return any(results)
        return all(results)

    def _evaluate_condition(
        self,
        condition: Mapping[str, Any],
        previous: Optional[IdentitySnapshot],
        current: IdentitySnapshot,
    ) -> bool:
        if not isinstance(condition, Mapping):
            raise ConfigurationError(f"Trigger filter condition must be a mapping: {condition!r}")

        attribute = condition.get("attribute")
        if not attribute:
            raise ConfigurationError(f"Trigger filter condition without attribute: {dict(condition)}")

        old_pattern = str(condition.get("oldValue", WILDCARD))
        new_pattern = str(condition.get("newValue", WILDCARD))
        if new_pattern.strip().upper() == IGNORE:
            raise ConfigurationError(f"IGNORE is only allowed as oldValue (attribute {attribute})")

        old_value = previous.attributes.get(attribute) if previous is not None else None
        new_value = current.attributes.get(attribute)

        # IGNORE on the old side also drops the change requirement
        if old_pattern.strip().upper() == IGNORE:
            return _matches_pattern(new_pattern, new_value)

        if _values_equal(old_value, new_value):
            return False

        return _matches_pattern(old_pattern, old_value) and _matches_pattern(new_pattern, new_value)
