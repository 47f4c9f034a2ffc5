"""
Decision Audit Log Module.

Appends every trigger outcome to a daily JSON Lines file so operators can
trace why a lifecycle process did or did not run for an identity.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from ..models import TriggerOutcome

logger = logging.getLogger(__name__)


class DecisionAuditLog:
    """
    Append-only log of trigger outcomes.

    Records are written to ``decisions_YYYY-MM-DD.jsonl`` files in the
    audit directory, one JSON object per line.
    """

    def __init__(self, audit_dir: Union[str, Path] = "audit_logs"):
        """
        Initialize the decision audit log.

        Args:
            audit_dir: Directory to store decision logs
        """
        self.audit_dir = Path(audit_dir)
        self.audit_dir.mkdir(parents=True, exist_ok=True)

    def record(self, outcome: TriggerOutcome) -> Path:
        """
        Append an outcome to today's log file.

        Args:
            outcome: The trigger outcome to record

        Returns:
            Path of the file the record was written to
        """
        date_str = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        log_file = self.audit_dir / f"decisions_{date_str}.jsonl"

        try:
            with open(log_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(outcome.model_dump(mode="json")) + "\n")
        except OSError as e:
            logger.error(f"Failed to record decision for {outcome.identity_name}: {e}")
            raise

        logger.debug(f"Recorded {outcome.process} decision for {outcome.identity_name}")
        return log_file

    def get_decisions(
        self,
        identity_name: Optional[str] = None,
        process: Optional[str] = None,
        limit: int = 100,
    ) -> List[TriggerOutcome]:
        """
        Retrieve recorded outcomes, most recent first.

        Args:
            identity_name: Filter by identity name
            process: Filter by business process name
            limit: Maximum number of records to return

        Returns:
            List of matching TriggerOutcomes
        """
        results: List[TriggerOutcome] = []

        log_files = sorted(self.audit_dir.glob("decisions_*.jsonl"), reverse=True)

        for log_file in log_files:
            if len(results) >= limit:
                break

            try:
                with open(log_file, encoding="utf-8") as f:
                    lines = f.readlines()
            except OSError as e:
                logger.error(f"Failed to read decision log {log_file}: {e}")
                continue

            for line in reversed(lines):
                if len(results) >= limit:
                    break
                if not line.strip():
                    continue

                try:
                    outcome = TriggerOutcome(**json.loads(line))
                except (json.JSONDecodeError, ValidationError) as e:
                    logger.warning(f"Failed to parse decision record in {log_file}: {e}")
                    continue

                if identity_name and outcome.identity_name != identity_name:
                    continue
                if process and outcome.process != process:
                    continue

                results.append(outcome)

        return results
