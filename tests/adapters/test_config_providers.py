"""
Tests for EnvironmentConfigProvider.
"""

from pathlib import Path

import pytest

from reffy.adapters.config import EnvironmentConfigProvider
from reffy.core.exceptions import ConfigFileError


def make_provider(repo: Path, environ=None, **kwargs) -> EnvironmentConfigProvider:
    return EnvironmentConfigProvider(repo_root=repo, environ=environ or {}, **kwargs)


# =============================================================================
# Sources
# =============================================================================


class TestSources:
    """Tests for reading each configuration source."""

    def test_empty_defaults(self, tmp_path):
        """Without any source the defaults apply."""
        config = make_provider(tmp_path).load()

        assert config.linear.api_key is None
        assert config.linear.api_url == "https://api.linear.app/graphql"
        assert config.sync.push_label == "reffy"
        assert config.sync.pull_create is False
        assert config.sync.pull_create_conflicts is True
        assert config.repo_root == str(tmp_path)

    def test_environment(self, tmp_path):
        """LINEAR_* variables are read from the environment."""
        provider = make_provider(
            tmp_path,
            {"LINEAR_API_KEY": "lin_api_env", "LINEAR_TEAM_ID": "t1", "LINEAR_PROJECT_ID": "p1"},
        )

        config = provider.load()

        assert config.linear.api_key == "lin_api_env"
        assert config.linear.team_id == "t1"
        assert config.linear.project_id == "p1"
        assert provider.name == "Environment"

    def test_dotenv_file(self, tmp_path):
        """The repo's .env is read."""
        (tmp_path / ".env").write_text("LINEAR_API_KEY=lin_api_dotenv\nLINEAR_PULL_LABEL=docs\n")

        config = make_provider(tmp_path).load()

        assert config.linear.api_key == "lin_api_dotenv"
        assert config.sync.pull_label == "docs"

    def test_yaml_file(self, tmp_path):
        """The repo's .reffy.yaml is read with nested keys."""
        (tmp_path / ".reffy.yaml").write_text(
            "linear:\n  api_key: lin_api_yaml\n  team_id: t9\n"
            "sync:\n  pull_create: true\n  pull_label: docs\n  pull_list_limit: 25\n"
        )
        provider = make_provider(tmp_path)

        config = provider.load()

        assert config.linear.api_key == "lin_api_yaml"
        assert config.linear.team_id == "t9"
        assert config.sync.pull_create is True
        assert config.sync.pull_list_limit == 25
        assert provider.name == "Environment+.reffy.yaml"
        assert provider.get("linear.team_id") == "t9"

    def test_precedence(self, tmp_path):
        """YAML < .env < environment < CLI."""
        (tmp_path / ".reffy.yaml").write_text("linear:\n  api_key: yaml\n  team_id: yaml\n  project_id: yaml\n")
        (tmp_path / ".env").write_text("LINEAR_TEAM_ID=dotenv\nLINEAR_PROJECT_ID=dotenv\n")
        provider = make_provider(
            tmp_path,
            {"LINEAR_PROJECT_ID": "env"},
            cli_overrides={"api_key": "cli", "team_id": None},
        )

        config = provider.load()

        assert config.linear.api_key == "cli"
        assert config.linear.team_id == "dotenv"
        assert config.linear.project_id == "env"

    def test_explicit_config_file(self, tmp_path):
        """An explicit config path replaces the repo default."""
        custom = tmp_path / "custom.yaml"
        custom.write_text("linear:\n  oauth_token: tok\n")

        config = make_provider(tmp_path, config_file=custom).load()

        assert config.linear.oauth_token == "tok"


# =============================================================================
# Flags
# =============================================================================


class TestFlags:
    """Tests for label and boolean flag interpretation."""

    def test_blank_push_label_disables_labelling(self, tmp_path):
        """A set but empty push label means no label."""
        config = make_provider(tmp_path, {"LINEAR_PUSH_LABEL": "  "}).load()

        assert config.sync.push_label is None

    def test_custom_push_label(self, tmp_path):
        """A non-empty push label is used."""
        config = make_provider(tmp_path, {"LINEAR_PUSH_LABEL": "refs"}).load()

        assert config.sync.push_label == "refs"

    @pytest.mark.parametrize(("value", "expected"), [("1", True), ("true", False), ("0", False), ("", False)])
    def test_pull_create_only_on_one(self, tmp_path, value, expected):
        """Only "1" enables pull create from the environment."""
        config = make_provider(tmp_path, {"LINEAR_PULL_CREATE": value}).load()

        assert config.sync.pull_create is expected

    @pytest.mark.parametrize(("value", "expected"), [("0", False), ("1", True), ("false", True), ("", True)])
    def test_conflict_copies_off_only_on_zero(self, tmp_path, value, expected):
        """Only "0" disables conflict copies from the environment."""
        config = make_provider(tmp_path, {"LINEAR_PULL_CREATE_CONFLICTS": value}).load()

        assert config.sync.pull_create_conflicts is expected

    def test_yaml_booleans(self, tmp_path):
        """YAML booleans are used as-is."""
        (tmp_path / ".reffy.yaml").write_text("sync:\n  pull_create_conflicts: false\n")

        config = make_provider(tmp_path).load()

        assert config.sync.pull_create_conflicts is False

    def test_cli_flags(self, tmp_path):
        """CLI booleans override environment strings."""
        provider = make_provider(
            tmp_path,
            {"LINEAR_PULL_CREATE": "0"},
            cli_overrides={"pull_create": True, "pull_create_conflicts": False},
        )

        config = provider.load()

        assert config.sync.pull_create is True
        assert config.sync.pull_create_conflicts is False


# =============================================================================
# Validation and errors
# =============================================================================


class TestValidation:
    """Tests for validate() and malformed files."""

    def test_missing_credential(self, tmp_path):
        """No credential yields exactly one error."""
        errors = make_provider(tmp_path).validate()

        assert errors == ["Missing Linear credential (LINEAR_API_KEY or LINEAR_OAUTH_TOKEN)"]

    def test_pull_create_without_label(self, tmp_path):
        """Pull create needs a pull label."""
        errors = make_provider(tmp_path, {"LINEAR_API_KEY": "k", "LINEAR_PULL_CREATE": "1"}).validate()

        assert errors == ["LINEAR_PULL_CREATE requires LINEAR_PULL_LABEL"]

    def test_valid(self, tmp_path):
        """A credential alone is valid."""
        assert make_provider(tmp_path, {"LINEAR_API_KEY": "k"}).validate() == []

    def test_invalid_yaml(self, tmp_path):
        """Malformed YAML raises ConfigFileError on load."""
        (tmp_path / ".reffy.yaml").write_text("linear: [unclosed\n")

        with pytest.raises(ConfigFileError):
            make_provider(tmp_path).load()

    def test_non_mapping_yaml(self, tmp_path):
        """A YAML list is rejected."""
        (tmp_path / ".reffy.yaml").write_text("- a\n- b\n")

        with pytest.raises(ConfigFileError, match="must contain a mapping"):
            make_provider(tmp_path).load()

    @pytest.mark.parametrize("limit", ["lots", "[1, 2]"])
    def test_non_integer_list_limit(self, tmp_path, limit):
        """A list limit that is not a number is a config file error."""
        (tmp_path / ".reffy.yaml").write_text(f"sync:\n  push_list_limit: {limit}\n")
        provider = make_provider(tmp_path, {"LINEAR_API_KEY": "k"})

        with pytest.raises(ConfigFileError, match="sync.push_list_limit must be an integer"):
            provider.load()
        assert len(provider.validate()) == 1

    def test_missing_explicit_file(self, tmp_path):
        """An explicit path that does not exist is an error, reported by validate."""
        provider = make_provider(tmp_path, config_file=tmp_path / "nope.yaml")

        errors = provider.validate()

        assert len(errors) == 1
        assert "Config file not found" in errors[0]
