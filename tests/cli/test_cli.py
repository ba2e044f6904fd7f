"""
Tests for the reffy command line interface.
"""

import json
from unittest.mock import MagicMock

import pytest

from reffy.adapters.config.environment import ENV_KEYS
from reffy.adapters.references import ReferencesStore
from reffy.application.sync import MappingStore, PushResult
from reffy.cli.app import _cli_overrides, _exit_code, create_parser, main
from reffy.cli.exit_codes import ExitCode
from reffy.core.domain import MappingEntry
from reffy.core.exceptions import ConfigFileError, TrackerError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's LINEAR_* variables out of the tests."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("reffy.cli.app.setup_logging", lambda **kwargs: None)


@pytest.fixture
def linear(monkeypatch, gateway):
    """Route LinearGateway.from_config to the in-memory gateway."""
    gateway.client = MagicMock()
    factory = MagicMock()
    factory.from_config.return_value = gateway
    monkeypatch.setattr("reffy.cli.app.LinearGateway", factory)
    return gateway


def run_json(capsys, argv):
    code = main(argv)
    return code, json.loads(capsys.readouterr().out)


# =============================================================================
# Parser
# =============================================================================


class TestParser:
    """Tests for argument parsing."""

    def test_push_options(self):
        """Push accepts team, project and label overrides."""
        args = create_parser().parse_args(
            ["push", "--team-id", "t1", "--project-id", "p1", "--label", "docs", "--repo", "/r"]
        )

        assert args.command == "push"
        assert args.team_id == "t1"
        assert args.project_id == "p1"
        assert args.push_label == "docs"
        assert args.repo == "/r"

    def test_pull_flags_default_to_unset(self):
        """Unset pull flags do not override configuration."""
        args = create_parser().parse_args(["pull"])

        assert args.pull_create is None
        assert args.pull_create_conflicts is None
        assert _cli_overrides(args) == {}

    def test_pull_flags(self):
        """--create and --no-conflict-copies become overrides."""
        args = create_parser().parse_args(["pull", "--create", "--label", "docs", "--no-conflict-copies"])

        assert _cli_overrides(args) == {
            "pull_create": True,
            "pull_label": "docs",
            "pull_create_conflicts": False,
        }

    def test_cleanup_defaults_to_dry_run(self):
        """cleanup-conflicts needs --apply to archive."""
        assert create_parser().parse_args(["cleanup-conflicts"]).apply is False
        assert create_parser().parse_args(["cleanup-conflicts", "--apply"]).apply is True

    def test_command_required(self):
        """A command must be given."""
        with pytest.raises(SystemExit):
            create_parser().parse_args([])


# =============================================================================
# Exit codes
# =============================================================================


class TestExitCodes:
    """Tests for exit code selection."""

    def test_values(self):
        """Exit codes are stable."""
        assert ExitCode.SUCCESS == 0
        assert ExitCode.ERROR == 1
        assert ExitCode.PARTIAL == 2
        assert ExitCode.CONFIG_ERROR == 3
        assert ExitCode.SIGINT == 130

    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (KeyboardInterrupt(), ExitCode.SIGINT),
            (ConfigFileError("bad"), ExitCode.CONFIG_ERROR),
            (TrackerError("down"), ExitCode.ERROR),
        ],
    )
    def test_from_exception(self, exc, code):
        """Exceptions map to exit codes."""
        assert ExitCode.from_exception(exc) == code

    def test_run_results(self):
        """Failed, partial and clean runs map to distinct codes."""
        clean = PushResult()
        partial = PushResult()
        partial.add_error("x")
        failed = PushResult()
        failed.fail("Linear not configured")

        assert _exit_code(clean) == ExitCode.SUCCESS
        assert _exit_code(partial) == ExitCode.PARTIAL
        assert _exit_code(failed) == ExitCode.ERROR


# =============================================================================
# Local commands
# =============================================================================


class TestLocalCommands:
    """Tests for reindex and validate."""

    def test_reindex_json(self, tmp_path, capsys):
        """Reindex reports added and total counts."""
        ReferencesStore(tmp_path)
        (tmp_path / ".references" / "artifacts" / "notes.md").write_text("x")

        code, payload = run_json(capsys, ["reindex", "--repo", str(tmp_path), "--output", "json"])

        assert code == ExitCode.SUCCESS
        assert payload == {"status": "ok", "added": 1, "total": 1}

    def test_reindex_text(self, tmp_path, capsys):
        """Text mode prints a success line."""
        code = main(["reindex", "--repo", str(tmp_path), "--no-color"])

        assert code == ExitCode.SUCCESS
        assert "Indexed 0 new artifact(s), 0 total" in capsys.readouterr().out

    def test_validate_ok(self, tmp_path, capsys):
        """A fresh store validates."""
        ReferencesStore(tmp_path).create_artifact("Roadmap", content="body")

        code, payload = run_json(capsys, ["validate", "--repo", str(tmp_path), "--output", "json"])

        assert code == ExitCode.SUCCESS
        assert payload["ok"] is True
        assert payload["artifact_count"] == 1

    def test_validate_errors(self, tmp_path, capsys):
        """An invalid manifest exits with ERROR."""
        store = ReferencesStore(tmp_path)
        store.manifest_path.write_text(json.dumps({"version": 2, "artifacts": []}))

        code, payload = run_json(capsys, ["validate", "--repo", str(tmp_path), "--output", "json"])

        assert code == ExitCode.ERROR
        assert "version must be 1" in payload["errors"]


# =============================================================================
# Sync commands
# =============================================================================


class TestSyncCommands:
    """Tests for push, pull and cleanup-conflicts."""

    def test_push_without_credential(self, tmp_path, capsys):
        """Missing credentials are a configuration error."""
        code, payload = run_json(capsys, ["push", "--repo", str(tmp_path), "--output", "json"])

        assert code == ExitCode.CONFIG_ERROR
        assert payload["status"] == "error"
        assert any("Missing Linear credential" in e for e in payload["errors"])

    def test_pull_create_without_label(self, tmp_path, capsys, monkeypatch):
        """Pull create requires a pull label."""
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_test")

        code, payload = run_json(
            capsys, ["pull", "--create", "--repo", str(tmp_path), "--output", "json"]
        )

        assert code == ExitCode.CONFIG_ERROR
        assert payload["errors"] == ["LINEAR_PULL_CREATE requires LINEAR_PULL_LABEL"]

    def test_missing_config_file(self, tmp_path, capsys, monkeypatch):
        """An explicit config file that does not exist is a configuration error."""
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_test")

        code = main(["push", "--repo", str(tmp_path), "--config", str(tmp_path / "nope.yaml")])

        assert code == ExitCode.CONFIG_ERROR
        assert "Config file not found" in capsys.readouterr().err

    def test_non_integer_list_limit(self, tmp_path, capsys, monkeypatch):
        """A malformed list limit in the config file is a configuration error."""
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_test")
        (tmp_path / ".reffy.yaml").write_text("sync:\n  pull_list_limit: lots\n")

        code = main(["pull", "--repo", str(tmp_path)])

        assert code == ExitCode.CONFIG_ERROR
        assert "sync.pull_list_limit must be an integer" in capsys.readouterr().err

    def test_push(self, tmp_path, capsys, monkeypatch, linear):
        """Push creates issues, saves the mapping and closes the client."""
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_test")
        monkeypatch.setenv("LINEAR_TEAM_ID", "team-1")
        artifact = ReferencesStore(tmp_path).create_artifact("Login Flow", content="draft notes")

        code, payload = run_json(capsys, ["push", "--repo", str(tmp_path), "--output", "json"])

        assert code == ExitCode.SUCCESS
        assert payload["status"] == "ok"
        assert payload["created"] == 1
        assert payload["created_issue_identifiers"] == ["ENG-1"]
        assert MappingStore.for_repo(tmp_path).load().get(artifact.id).issue_id == "issue-1"
        linear.client.close.assert_called_once()

    def test_push_partial_failure(self, tmp_path, capsys, monkeypatch, linear):
        """A failed artifact gives the PARTIAL exit code."""
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_test")
        store = ReferencesStore(tmp_path)
        store.create_artifact("Login Flow", content="a")
        store.create_artifact("Broken", content="b")
        linear.fail_titles.add("Broken")

        code, payload = run_json(capsys, ["push", "--repo", str(tmp_path), "--output", "json"])

        assert code == ExitCode.PARTIAL
        assert payload["created"] == 1
        assert payload["skipped"] == 1
        assert len(payload["errors"]) == 1

    def test_push_quiet(self, tmp_path, capsys, monkeypatch, linear):
        """Quiet mode prints one summary line."""
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_test")
        ReferencesStore(tmp_path).create_artifact("Login Flow", content="a")

        code = main(["push", "--repo", str(tmp_path), "--quiet"])

        assert code == ExitCode.SUCCESS
        out = capsys.readouterr().out.strip()
        assert out.startswith("status=ok created=1 updated=0 reused=0")

    def test_cleanup_dry_run(self, tmp_path, capsys, monkeypatch, linear):
        """cleanup-conflicts lists candidates without archiving."""
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_test")
        store = ReferencesStore(tmp_path)
        original = store.create_artifact("Login Flow", content="a")
        copy = store.create_conflict_copy(original.id, source="linear", note="overwritten")
        mapping_store = MappingStore.for_repo(tmp_path)
        mapping = mapping_store.load()
        issue = linear.add_issue("Login Flow (conflict)")
        mapping.set(copy.id, MappingEntry(issue_id=issue.id, issue_identifier=issue.identifier))
        mapping_store.save(mapping)

        code, payload = run_json(
            capsys, ["cleanup-conflicts", "--repo", str(tmp_path), "--output", "json"]
        )

        assert code == ExitCode.SUCCESS
        assert payload["dry_run"] is True
        assert [c["issue_id"] for c in payload["candidates"]] == [issue.id]
        assert linear.archived == []
