"""
Core data models for the JML Trigger Engine.

This module defines the Pydantic models and enumerations used throughout the
system for identity snapshots, check shortcuts, and final trigger decisions.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProcessingState(str, Enum):
    """Per-identity marker used to prevent duplicate or unwanted automatic runs."""
    NEEDED = "needed"
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FORCED = "forced"


class ProcessKind(str, Enum):
    """Lifecycle business processes known to the engine."""
    JOINER = "joiner"
    MOVER = "mover"
    LEAVER = "leaver"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, process_name: Optional[str]) -> "ProcessKind":
        """
        Map a process name to its kind.

        Args:
            process_name: Business process name, e.g. 'joiner'

        Returns:
            Matching ProcessKind, or UNKNOWN for empty/unrecognised names
        """
        if not process_name:
            return cls.UNKNOWN

        normalized = process_name.strip().lower()
        for kind in (cls.JOINER, cls.MOVER, cls.LEAVER):
            if kind.value == normalized:
                return kind
        return cls.UNKNOWN


class Shortcut(str, Enum):
    """Outcome of a single lifecycle check."""
    CONTINUE = "CONTINUE"
    CONTINUE_OPTIONAL = "CONTINUE_OPTIONAL"
    CANCEL_IMMEDIATELY = "CANCEL_IMMEDIATELY"
    CANCEL_AND_MARK_SKIP = "CANCEL_AND_MARK_SKIP"
    PERFORM_IMMEDIATELY = "PERFORM_IMMEDIATELY"

    @property
    def is_final(self) -> bool:
        """True when no further rule evaluation happens after this shortcut."""
        return self in (
            Shortcut.CANCEL_IMMEDIATELY,
            Shortcut.CANCEL_AND_MARK_SKIP,
            Shortcut.PERFORM_IMMEDIATELY,
        )

    @property
    def requires_mark_skip(self) -> bool:
        """True when the caller must persist a skipped processing state."""
        return self is Shortcut.CANCEL_AND_MARK_SKIP


class FinalAction(str, Enum):
    """Action the process launcher should take for a decision."""
    RUN = "RUN"
    SKIP = "SKIP"
    SKIP_AND_MARK_SKIPPED = "SKIP_AND_MARK_SKIPPED"
    DEFER_TO_FILTERS = "DEFER_TO_FILTERS"


class IdentitySnapshot(BaseModel):
    """Read-only view of an identity's persisted state at a point in time."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique identity name")
    processing_state: Optional[ProcessingState] = Field(
        None, description="Lifecycle processing marker, None when unset"
    )
    is_correlated: bool = Field(False, description="Linked to an authoritative source account")
    links: List[str] = Field(default_factory=list, description="Account link references")
    display_name: Optional[str] = Field(None, description="Display name for tracing")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Identity attributes")

    @field_validator('processing_state', mode='before')
    @classmethod
    def normalize_processing_state(cls, v: Any) -> Any:
        """Accept stored values in any case; blank means unset."""
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @property
    def has_links(self) -> bool:
        """Whether the identity owns at least one account link."""
        return len(self.links) > 0


class Decision(BaseModel):
    """Final action for one identity and process, with the shortcut behind it."""
    model_config = ConfigDict(frozen=True)

    action: FinalAction
    optional: bool = Field(False, description="Only meaningful for DEFER_TO_FILTERS")
    shortcut: Shortcut

    @classmethod
    def from_shortcut(cls, shortcut: Shortcut) -> "Decision":
        """Map a check shortcut 1:1 onto its final action."""
        action, optional = _SHORTCUT_ACTIONS[shortcut]
        return cls(action=action, optional=optional, shortcut=shortcut)


_SHORTCUT_ACTIONS = {
    Shortcut.PERFORM_IMMEDIATELY: (FinalAction.RUN, False),
    Shortcut.CANCEL_IMMEDIATELY: (FinalAction.SKIP, False),
    Shortcut.CANCEL_AND_MARK_SKIP: (FinalAction.SKIP_AND_MARK_SKIPPED, False),
    Shortcut.CONTINUE: (FinalAction.DEFER_TO_FILTERS, False),
    Shortcut.CONTINUE_OPTIONAL: (FinalAction.DEFER_TO_FILTERS, True),
}


class TriggerOutcome(BaseModel):
    """Result of evaluating one lifecycle trigger end to end."""
    process: str
    identity_name: str
    decision: Optional[Decision] = None
    launch: bool = False
    mark_skipped: bool = False
    reason: str = ""
    evaluated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class InvalidSnapshotError(ValueError):
    """Raised when the caller passes no current identity snapshot."""


class ConfigurationError(ValueError):
    """Raised when lifecycle configuration cannot be loaded or interpreted."""


# Type aliases for convenience
IdentitySnapshots = List[IdentitySnapshot]
TriggerOutcomes = List[TriggerOutcome]
