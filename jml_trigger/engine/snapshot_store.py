"""
Snapshot Store for the JML Trigger Engine.

Keeps the latest known snapshot of each identity so that a refresh can be
evaluated against the previous state, and applies the launcher's
processing-state write-back after a trigger outcome has been acted on.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..models import IdentitySnapshot, ProcessingState, ProcessKind, TriggerOutcome

logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    Identity snapshot provider.

    Provides in-memory storage with optional JSON file persistence.
    Snapshots are immutable; every update replaces the stored snapshot.
    """

    def __init__(self, storage_path: Optional[Union[str, Path]] = None):
        """
        Initialize the snapshot store.

        Args:
            storage_path: Path to store snapshots as JSON.
                         If None, snapshots are kept in memory only.
        """
        self.storage_path = Path(storage_path) if storage_path else None
        self.snapshots: Dict[str, IdentitySnapshot] = {}

        if self.storage_path:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_state()

        logger.info(
            f"Initialized SnapshotStore with {'persistent' if self.storage_path else 'in-memory'} storage"
        )

    def get_snapshot(self, identity_name: str) -> Optional[IdentitySnapshot]:
        """
        Get the latest snapshot of an identity.

        Args:
            identity_name: Identity name to look up

        Returns:
            IdentitySnapshot if known, None otherwise
        """
        return self.snapshots.get(identity_name)

    def record_snapshot(self, snapshot: IdentitySnapshot) -> Optional[IdentitySnapshot]:
        """
        Store a new snapshot of an identity.

        Args:
            snapshot: The identity's state after a refresh

        Returns:
            The snapshot it replaces, None for a new identity
        """
        previous = self.snapshots.get(snapshot.name)
        self.snapshots[snapshot.name] = snapshot
        self._save_state()

        if previous is None:
            logger.info(f"Recorded first snapshot for identity {snapshot.name}")
        else:
            logger.debug(f"Replaced snapshot for identity {snapshot.name}")
        return previous

    def carry_forward_state(self, current: IdentitySnapshot) -> IdentitySnapshot:
        """
        Apply the stored processing marker to a freshly fed snapshot.

        A SKIPPED or PROCESSED marker written back by the launcher wins over
        a feed that leaves the state unset or reports NEEDED. Any other state
        supplied by the feed, such as FORCED, is kept.

        Args:
            current: Identity state read from the feed

        Returns:
            The snapshot to evaluate, replaced only when the marker is carried
        """
        stored = self.snapshots.get(current.name)
        if stored is None:
            return current
        if stored.processing_state not in (ProcessingState.SKIPPED, ProcessingState.PROCESSED):
            return current
        if current.processing_state not in (None, ProcessingState.NEEDED):
            return current

        logger.debug(f"Carrying {stored.processing_state.value} marker forward for {current.name}")
        return current.model_copy(update={"processing_state": stored.processing_state})

    def set_processing_state(
        self, identity_name: str, state: Optional[ProcessingState]
    ) -> Optional[IdentitySnapshot]:
        """
        Replace the processing state of a stored identity.

        Args:
            identity_name: Identity to update
            state: New processing state, None to clear it

        Returns:
            The updated snapshot, None if the identity is unknown
        """
        snapshot = self.snapshots.get(identity_name)
        if snapshot is None:
            logger.warning(f"Cannot set processing state: identity {identity_name} not found")
            return None

        updated = snapshot.model_copy(update={"processing_state": state})
        self.snapshots[identity_name] = updated
        self._save_state()
        logger.info(f"Set processing state of {identity_name} to {state.value if state else None}")
        return updated

    def apply_outcome(self, outcome: TriggerOutcome) -> Optional[IdentitySnapshot]:
        """
        Persist the processing state implied by a trigger outcome.

        A mark-skip outcome stores SKIPPED; a launched joiner stores PROCESSED.
        Other outcomes leave the identity untouched.

        Args:
            outcome: Outcome returned by the trigger service

        Returns:
            The updated snapshot, or None when nothing was written
        """
        if outcome.mark_skipped:
            return self.set_processing_state(outcome.identity_name, ProcessingState.SKIPPED)

        if outcome.launch and ProcessKind.from_name(outcome.process) == ProcessKind.JOINER:
            return self.set_processing_state(outcome.identity_name, ProcessingState.PROCESSED)

        return None

    def get_all_snapshots(self) -> List[IdentitySnapshot]:
        """Get all stored snapshots."""
        return list(self.snapshots.values())

    def get_snapshots_by_state(self, state: Optional[ProcessingState]) -> List[IdentitySnapshot]:
        """Get all snapshots with a specific processing state."""
        return [s for s in self.snapshots.values() if s.processing_state == state]

    def _save_state(self):
        """Save current snapshots to persistent storage."""
        if not self.storage_path:
            return

        state_data = {
            "snapshots": {
                name: snapshot.model_dump(mode="json") for name, snapshot in self.snapshots.items()
            },
            "last_updated": datetime.now(timezone.utc).isoformat(),
        }

        try:
            with open(self.storage_path, "w", encoding="utf-8") as f:
                json.dump(state_data, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save snapshots to {self.storage_path}: {e}")
            raise

    def _load_state(self):
        """Load snapshots from persistent storage."""
        if not self.storage_path or not self.storage_path.exists():
            return

        try:
            with open(self.storage_path, encoding="utf-8") as f:
                state_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load snapshots from {self.storage_path}: {e}")
            raise

        for name, snapshot_data in state_data.get("snapshots", {}).items():
            self.snapshots[name] = IdentitySnapshot(**snapshot_data)

        logger.info(f"Loaded {len(self.snapshots)} snapshots from {self.storage_path}")
