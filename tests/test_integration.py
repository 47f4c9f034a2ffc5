"""
Integration tests for the JML Trigger Engine.

These tests run identity refreshes through the YAML configuration, the
trigger service, the snapshot store, and the decision audit log together.
"""

import threading

import pytest

from jml_trigger.audit import DecisionAuditLog
from jml_trigger.engine import DecisionEngine, SnapshotStore, YamlConfigurationLookup
from jml_trigger.models import FinalAction, IdentitySnapshot, ProcessingState
from jml_trigger.workflows import LifecycleTriggerService


CONFIG = """
businessProcesses:
  joiner:
    requireCorrelated: true
    autoJoinNewEmpty: false
    reprocessSkipped: true
    triggerFilter:
      attributes:
        - attribute: status
          oldValue: IGNORE
          newValue: active
  mover:
    requireCorrelated: true
    triggerFilter:
      operation: OR
      attributes:
        - attribute: department
          oldValue: "*"
          newValue: "*"
  leaver:
    requireCorrelated: false
"""


@pytest.mark.integration
class TestLifecycleRefresh:
    """Integration tests for a sequence of identity refreshes."""

    @pytest.fixture
    def config(self, tmp_path):
        config_file = tmp_path / "lifecycle.yaml"
        config_file.write_text(CONFIG, encoding="utf-8")
        return YamlConfigurationLookup(config_file)

    @pytest.fixture
    def store(self, tmp_path):
        return SnapshotStore(tmp_path / "snapshots.json")

    @pytest.fixture
    def audit_log(self, tmp_path):
        return DecisionAuditLog(tmp_path / "audit")

    @pytest.fixture
    def service(self, config, audit_log):
        return LifecycleTriggerService(config, audit_log=audit_log)

    def refresh(self, service, store, process, snapshot):
        """Evaluate one refresh the way the process launcher does."""
        previous = store.get_snapshot(snapshot.name)
        outcome = service.evaluate(process, previous, snapshot)
        store.record_snapshot(snapshot)
        store.apply_outcome(outcome)
        return outcome

    def test_joiner_skip_then_reprocess(self, service, store, audit_log):
        """An uncorrelated new hire is skipped, then joined once correlated."""
        hire = IdentitySnapshot(
            name="alice", processing_state="needed", is_correlated=False,
            links=["HR:1001"], attributes={"status": "active"},
        )

        outcome = self.refresh(service, store, "joiner", hire)

        assert outcome.mark_skipped is True
        assert store.get_snapshot("alice").processing_state == ProcessingState.SKIPPED

        correlated = store.get_snapshot("alice").model_copy(update={"is_correlated": True})
        outcome = self.refresh(service, store, "joiner", correlated)

        assert outcome.decision.action == FinalAction.DEFER_TO_FILTERS
        assert outcome.launch is True
        assert store.get_snapshot("alice").processing_state == ProcessingState.PROCESSED

        rerun = self.refresh(service, store, "joiner", store.get_snapshot("alice"))

        assert rerun.decision.action == FinalAction.SKIP
        assert len(audit_log.get_decisions(identity_name="alice", process="joiner")) == 3

    def test_mover_and_leaver_after_join(self, service, store):
        """An existing identity moves departments and later leaves."""
        base = IdentitySnapshot(
            name="bob", processing_state="processed", is_correlated=True,
            links=["HR:1002"], attributes={"department": "Sales", "status": "active"},
        )

        first = self.refresh(service, store, "mover", base)
        assert first.launch is False

        moved = base.model_copy(update={"attributes": {"department": "Finance", "status": "active"}})
        assert self.refresh(service, store, "mover", moved).launch is True

        left = moved.model_copy(update={"is_correlated": False, "links": []})
        outcome = self.refresh(service, store, "leaver", left)

        assert outcome.decision.action == FinalAction.DEFER_TO_FILTERS
        assert outcome.launch is True
        assert store.get_snapshot("bob").processing_state == ProcessingState.PROCESSED

    def test_concurrent_decisions_agree(self, config):
        """Concurrent decisions for the same identity return the same result."""
        engine = DecisionEngine(config)
        previous = IdentitySnapshot(name="carol", is_correlated=True)
        current = IdentitySnapshot(name="carol", is_correlated=True, processing_state="needed")
        results = []
        lock = threading.Lock()

        def worker():
            for _ in range(20):
                decision = engine.decide("joiner", previous, current, "carol")
                with lock:
                    results.append(decision)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 160
        assert len(set(results)) == 1
