"""
Lifecycle Checks for the JML Trigger Engine.

Each check encodes the policy of one business process as a chain of
early returns: the first matching rule decides the Shortcut.
Checks read configuration on every call and never mutate identity state.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from ..models import IdentitySnapshot, ProcessingState, ProcessKind, Shortcut
from .config_lookup import (
    AUTO_JOIN_NEW_EMPTY,
    REPROCESS_SKIPPED,
    REQUIRE_CORRELATED,
    ConfigurationLookup,
)


class Check(ABC):
    """Decision rule for a single lifecycle business process."""

    process: ProcessKind = ProcessKind.UNKNOWN

    @abstractmethod
    def evaluate(
        self,
        previous: Optional[IdentitySnapshot],
        current: IdentitySnapshot,
        identity_name: str,
        config: ConfigurationLookup,
    ) -> Shortcut:
        """
        Evaluate the check for one identity.

        Args:
            previous: Identity state before the change, None for a new identity
            current: Identity state after the change
            identity_name: Name of the identity, for tracing only
            config: Configuration to read process options from

        Returns:
            Shortcut describing how the process should proceed
        """

    def _option(self, config: ConfigurationLookup, option: str) -> bool:
        return config.get_process_option(self.process.value, option)


class NoOpCheck(Check):
    """Fallback for processes without a dedicated policy."""

    def evaluate(self, previous, current, identity_name, config) -> Shortcut:
        return Shortcut.CONTINUE


class JoinerCheck(Check):
    """
    Onboarding policy.

    A previously skipped identity that is allowed to be reprocessed still
    goes through the auto-join and correlation rules.
    """

    process = ProcessKind.JOINER

    def evaluate(self, previous, current, identity_name, config) -> Shortcut:
        state = current.processing_state

        if state == ProcessingState.PROCESSED:
            return Shortcut.CANCEL_IMMEDIATELY

        if state == ProcessingState.FORCED:
            return Shortcut.PERFORM_IMMEDIATELY

        reprocessing = False
        if state == ProcessingState.SKIPPED:
            if not self._option(config, REPROCESS_SKIPPED):
                return Shortcut.CANCEL_IMMEDIATELY
            reprocessing = True

        if previous is None and not current.has_links and self._option(config, AUTO_JOIN_NEW_EMPTY):
            return Shortcut.PERFORM_IMMEDIATELY

        if self._option(config, REQUIRE_CORRELATED) and not current.is_correlated:
            return Shortcut.CANCEL_AND_MARK_SKIP

        if state != ProcessingState.NEEDED and not reprocessing:
            return Shortcut.CANCEL_IMMEDIATELY

        return Shortcut.CONTINUE_OPTIONAL


class MoverCheck(Check):
    """Transfer policy: only existing identities can move."""

    process = ProcessKind.MOVER

    def evaluate(self, previous, current, identity_name, config) -> Shortcut:
        if previous is None:
            return Shortcut.CANCEL_IMMEDIATELY

        if self._option(config, REQUIRE_CORRELATED) and not current.is_correlated:
            return Shortcut.CANCEL_IMMEDIATELY

        return Shortcut.CONTINUE


class LeaverCheck(Check):
    """Offboarding policy: only existing identities can leave."""

    process = ProcessKind.LEAVER

    def evaluate(self, previous, current, identity_name, config) -> Shortcut:
        if previous is None:
            return Shortcut.CANCEL_IMMEDIATELY

        if self._option(config, REQUIRE_CORRELATED) and not current.is_correlated:
            return Shortcut.CANCEL_IMMEDIATELY

        return Shortcut.CONTINUE


class CheckFactory:
    """Maps business process names to their Check."""

    def __init__(self):
        self._checks: Dict[ProcessKind, Check] = {
            ProcessKind.JOINER: JoinerCheck(),
            ProcessKind.MOVER: MoverCheck(),
            ProcessKind.LEAVER: LeaverCheck(),
            ProcessKind.UNKNOWN: NoOpCheck(),
        }

    def resolve(self, process_name: Optional[str]) -> Check:
        """
        Resolve the check for a process name.

        Args:
            process_name: Business process name; unknown or empty names are allowed

        Returns:
            The matching Check, or the no-op check
        """
        return self._checks[ProcessKind.from_name(process_name)]
