"""
Tests for the jmltrigger command line interface.
"""

import json

import pytest
from click.testing import CliRunner

from jml_trigger.cli.jmltrigger import cli
from jml_trigger.engine import SnapshotStore
from jml_trigger.models import IdentitySnapshot, ProcessingState


CONFIG = """
businessProcesses:
  joiner:
    requireCorrelated: true
    autoJoinNewEmpty: true
  mover:
    enabled: false
"""


class TestCLI:
    """Test cases for the jmltrigger CLI."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / "lifecycle.yaml"
        path.write_text(CONFIG, encoding="utf-8")
        return path

    def write_snapshot(self, path, **data):
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)

    def test_decide_new_empty_joiner(self, runner, config_file, tmp_path):
        """Test a decision that launches the joiner."""
        current = self.write_snapshot(tmp_path / "current.json", name="jdoe")

        result = runner.invoke(cli, ["--config", str(config_file), "decide", "joiner", current])

        assert result.exit_code == 0
        assert "Launch joiner for jdoe" in result.output
        assert "PERFORM_IMMEDIATELY" in result.output

    def test_decide_mark_skipped(self, runner, config_file, tmp_path):
        """Test a decision that requires the identity to be marked skipped."""
        current = self.write_snapshot(tmp_path / "current.json", name="jdoe", links=["HR:1"])

        result = runner.invoke(cli, ["--config", str(config_file), "decide", "joiner", current])

        assert result.exit_code == 0
        assert "SKIP_AND_MARK_SKIPPED" in result.output
        assert "marked skipped" in result.output

    def test_decide_disabled_process(self, runner, config_file, tmp_path):
        """Test that a disabled process is reported."""
        previous = self.write_snapshot(tmp_path / "previous.json", name="jdoe", is_correlated=True)
        current = self.write_snapshot(tmp_path / "current.json", name="jdoe", is_correlated=True)

        result = runner.invoke(
            cli, ["--config", str(config_file), "decide", "mover", current, "--previous", previous]
        )

        assert result.exit_code == 0
        assert "process disabled" in result.output

    def test_decide_invalid_snapshot(self, runner, config_file, tmp_path):
        """Test that an invalid snapshot exits with an error."""
        current = self.write_snapshot(tmp_path / "current.json", processing_state="unknown-state")

        result = runner.invoke(cli, ["--config", str(config_file), "decide", "joiner", current])

        assert result.exit_code == 1
        assert "Invalid snapshot" in result.output

    def test_decide_with_state_file(self, runner, config_file, tmp_path):
        """Test that the state file provides history and receives the write-back."""
        state_file = tmp_path / "snapshots.json"
        current = self.write_snapshot(tmp_path / "current.json", name="jdoe")

        result = runner.invoke(cli, [
            "--config", str(config_file), "--state-file", str(state_file),
            "decide", "joiner", current,
        ])

        assert result.exit_code == 0
        snapshot = SnapshotStore(state_file).get_snapshot("jdoe")
        assert snapshot.processing_state == ProcessingState.PROCESSED

        # Same feed again: the stored joiner marker makes the joiner idempotent
        result = runner.invoke(cli, [
            "--config", str(config_file), "--state-file", str(state_file),
            "decide", "joiner", current,
        ])

        assert result.exit_code == 0
        assert "CANCEL_IMMEDIATELY" in result.output
        assert "Do not launch joiner" in result.output

    def test_marked_skipped_identity_stays_skipped(self, runner, config_file, tmp_path):
        """Test that a skipped marker from one run cancels the same feed in the next."""
        state_file = tmp_path / "snapshots.json"
        current = self.write_snapshot(
            tmp_path / "current.json", name="jdoe", processing_state="needed", links=["HR:1"]
        )
        args = ["--config", str(config_file), "--state-file", str(state_file), "decide", "joiner", current]

        first = runner.invoke(cli, args)

        assert "SKIP_AND_MARK_SKIPPED" in first.output
        assert SnapshotStore(state_file).get_snapshot("jdoe").processing_state == ProcessingState.SKIPPED

        second = runner.invoke(cli, args)

        assert second.exit_code == 0
        assert "CANCEL_IMMEDIATELY" in second.output
        assert "SKIP_AND_MARK_SKIPPED" not in second.output
        assert SnapshotStore(state_file).get_snapshot("jdoe").processing_state == ProcessingState.SKIPPED

    def test_forced_feed_overrides_stored_marker(self, runner, config_file, tmp_path):
        """Test that a forced state in the feed is not replaced by the stored marker."""
        state_file = tmp_path / "snapshots.json"
        store = SnapshotStore(state_file)
        store.record_snapshot(IdentitySnapshot(name="jdoe", processing_state="skipped"))
        current = self.write_snapshot(tmp_path / "current.json", name="jdoe", processing_state="forced")

        result = runner.invoke(cli, [
            "--config", str(config_file), "--state-file", str(state_file), "decide", "joiner", current,
        ])

        assert "PERFORM_IMMEDIATELY" in result.output

    def test_show_config(self, runner, config_file):
        """Test the configuration overview."""
        result = runner.invoke(cli, ["--config", str(config_file), "show-config"])

        assert result.exit_code == 0
        assert "joiner" in result.output
        assert "leaver" in result.output

    def test_invalid_config_exits(self, runner, tmp_path):
        """Test that an unparseable configuration exits with an error."""
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("businessProcesses: [unclosed\n", encoding="utf-8")

        result = runner.invoke(cli, ["--config", str(config_file), "show-config"])

        assert result.exit_code == 1
        assert "Error loading configuration" in result.output

    def test_history(self, runner, config_file, tmp_path):
        """Test that decisions recorded by decide appear in history."""
        audit_dir = tmp_path / "audit"
        current = self.write_snapshot(tmp_path / "current.json", name="jdoe")
        runner.invoke(cli, [
            "--config", str(config_file), "--audit-dir", str(audit_dir), "decide", "joiner", current,
        ])

        result = runner.invoke(cli, [
            "--config", str(config_file), "--audit-dir", str(audit_dir), "history", "--identity", "jdoe",
        ])

        assert result.exit_code == 0
        assert "RUN" in result.output

    def test_history_without_audit_dir(self, runner, config_file):
        """Test the hint shown when no audit directory is configured."""
        result = runner.invoke(cli, ["--config", str(config_file), "history"])

        assert result.exit_code == 0
        assert "No audit directory configured" in result.output
