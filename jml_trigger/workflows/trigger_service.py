"""
Lifecycle Trigger Service for the JML Trigger Engine.

Orchestrates a single trigger evaluation: process enablement, the
decision engine, the downstream trigger filter, logging, and the
optional decision audit log.
"""

import logging
from typing import Optional

from ..audit.decision_log import DecisionAuditLog
from ..engine.config_lookup import PROCESS_ENABLED, ConfigurationLookup, business_process_path
from ..engine.decision_engine import DecisionEngine
from ..engine.trigger_filter import TriggerFilter
from ..models import (
    Decision,
    FinalAction,
    IdentitySnapshot,
    InvalidSnapshotError,
    ProcessKind,
    TriggerOutcome,
)

logger = logging.getLogger(__name__)


class LifecycleTriggerService:
    """
    Decides whether the process launcher should start a lifecycle process.

    The decision engine stays free of logging and I/O; this service is
    where tracing and auditing are attached.
    """

    def __init__(
        self,
        config: ConfigurationLookup,
        trigger_filter: Optional[TriggerFilter] = None,
        audit_log: Optional[DecisionAuditLog] = None,
    ):
        """
        Initialize the trigger service.

        Args:
            config: Configuration lookup shared with the decision engine
            trigger_filter: Filter consulted when a check defers
            audit_log: Optional log receiving every outcome
        """
        self.config = config
        self.engine = DecisionEngine(config)
        self.trigger_filter = trigger_filter or TriggerFilter()
        self.audit_log = audit_log

    def is_process_enabled(self, process_name: str) -> bool:
        """
        Check the per-process ``enabled`` switch.

        Only an explicit false disables a known process; unknown processes
        and unset switches are treated as enabled.
        """
        kind = ProcessKind.from_name(process_name)
        if kind == ProcessKind.UNKNOWN:
            return True

        path = business_process_path(kind.value, PROCESS_ENABLED)
        if not self.config.has_value(path):
            return True
        return self.config.get_bool(path)

    def evaluate(
        self,
        process_name: str,
        previous: Optional[IdentitySnapshot],
        current: IdentitySnapshot,
        display_name: Optional[str] = None,
    ) -> TriggerOutcome:
        """
        Evaluate a lifecycle trigger for one identity.

        Args:
            process_name: Business process name
            previous: Identity state before the change, None for a new identity
            current: Identity state after the change
            display_name: Name used in log messages

        Returns:
            TriggerOutcome telling the launcher whether to start the process

        Raises:
            InvalidSnapshotError: If no current snapshot is supplied
        """
        if not isinstance(current, IdentitySnapshot):
            logger.error(f"Rejected {process_name} evaluation without a current snapshot")
            raise InvalidSnapshotError(
                f"A current identity snapshot is required to evaluate '{process_name}'"
            )

        name = display_name or current.display_name or current.name
        logger.debug(f"Evaluating {process_name} trigger for {name}")

        if not self.is_process_enabled(process_name):
            outcome = TriggerOutcome(
                process=process_name,
                identity_name=current.name,
                reason="process disabled",
            )
            return self._finish(outcome, name)

        decision = self.engine.decide(process_name, previous, current, name)
        launch, reason = self._resolve(decision, process_name, previous, current)

        outcome = TriggerOutcome(
            process=process_name,
            identity_name=current.name,
            decision=decision,
            launch=launch,
            mark_skipped=decision.action == FinalAction.SKIP_AND_MARK_SKIPPED,
            reason=reason,
        )
        return self._finish(outcome, name)

    def _resolve(
        self,
        decision: Decision,
        process_name: str,
        previous: Optional[IdentitySnapshot],
        current: IdentitySnapshot,
    ):
        if decision.action == FinalAction.RUN:
            return True, f"check shortcut {decision.shortcut.value}"
        if decision.action == FinalAction.SKIP:
            return False, f"check shortcut {decision.shortcut.value}"
        if decision.action == FinalAction.SKIP_AND_MARK_SKIPPED:
            return False, "identity not correlated, marked skipped"

        kind = ProcessKind.from_name(process_name)
        filter_name = kind.value if kind != ProcessKind.UNKNOWN else (process_name or "").strip()
        matched = None
        if filter_name:
            matched = self.trigger_filter.evaluate(filter_name, previous, current, self.config)

        if matched is None:
            if decision.optional:
                return False, "no trigger filter configured for optional process"
            return True, "no trigger filter configured"
        if matched:
            return True, "trigger filter matched"
        return False, "trigger filter did not match"

    def _finish(self, outcome: TriggerOutcome, name: str) -> TriggerOutcome:
        verdict = "launch" if outcome.launch else "no launch"
        logger.info(f"{outcome.process} trigger for {name}: {verdict} ({outcome.reason})")
        if outcome.mark_skipped:
            logger.info(f"{name} must be marked skipped for {outcome.process}")

        if self.audit_log is not None:
            self.audit_log.record(outcome)
        return outcome
