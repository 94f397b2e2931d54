"""
Tests for the phasetrack CLI.

Every test runs against its own temporary data directory.
"""
import json
from datetime import datetime, timedelta

import pytest
from click.testing import CliRunner

from phasetrack.cli import cli


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def invoke(runner, data_dir):
    """Invoke the CLI with --data-dir pointing at the temp directory."""

    def _invoke(*args):
        return runner.invoke(cli, ["--data-dir", str(data_dir), *args])

    return _invoke


@pytest.fixture
def scoped(invoke):
    result = invoke("project", "scope", "acme")
    assert result.exit_code == 0, result.output
    return "acme"


def add_milestone(invoke, *args):
    result = invoke("milestone", "add", *args)
    assert result.exit_code == 0, result.output
    return result.output.split("Created milestone ", 1)[1].split(":", 1)[0]


# =============================================================================
# Project commands
# =============================================================================


class TestProjectCommands:

    def test_scope(self, invoke, data_dir):
        result = invoke("project", "scope", "acme")
        assert result.exit_code == 0
        assert "Scoped project 'acme' at discovery/requirements-analysis" in result.output
        assert (data_dir / "projects" / "acme.json").exists()

    def test_scope_duplicate(self, invoke, scoped):
        result = invoke("project", "scope", "acme")
        assert result.exit_code == 1
        assert "[duplicate]" in result.output

    def test_scope_with_weights_json(self, invoke):
        result = invoke("project", "scope", "acme", "--weight", "discovery=2", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["project_id"] == "acme"
        assert data["overall_progress"] == 0

    def test_scope_bad_weight(self, invoke):
        result = invoke("project", "scope", "acme", "--weight", "discovery")
        assert result.exit_code == 2

    def test_list(self, invoke, scoped):
        invoke("project", "scope", "beta")
        result = invoke("project", "list", "--json")
        assert json.loads(result.stdout) == ["acme", "beta"]

    def test_list_empty(self, invoke):
        result = invoke("project", "list")
        assert "No projects found." in result.output

    def test_close(self, invoke, scoped):
        result = invoke("project", "close", "acme")
        assert result.exit_code == 0
        assert "Closed project 'acme'" in result.output

        result = invoke("advance", "acme")
        assert result.exit_code == 1
        assert "[invalid_operation]" in result.output

    def test_stats(self, invoke, scoped):
        invoke("project", "scope", "beta")
        invoke("set-phase", "beta", "design", "wireframing")
        result = invoke("project", "stats", "--json")
        data = json.loads(result.stdout)
        assert data["total_projects"] == 2
        assert data["phase_counts"]["design"] == 1


# =============================================================================
# Status and transitions
# =============================================================================


class TestStatusCommands:

    def test_status_text(self, invoke, scoped):
        result = invoke("status", "acme")
        assert result.exit_code == 0
        assert "Project: acme (revision 0)" in result.output
        assert "Overall: 0%" in result.output
        assert "Discovery" in result.output

    def test_status_json(self, invoke, scoped):
        invoke("set-phase", "acme", "development", "build-core")
        result = invoke("status", "acme", "--json")
        data = json.loads(result.stdout)
        assert data["current_phase"] == "development"
        assert data["current_substep"] == "build-core"
        assert data["phase_progress"]["design"] == 100
        assert data["phase_status"]["discovery"] == "completed"

    def test_status_unknown_project(self, invoke):
        result = invoke("status", "ghost")
        assert result.exit_code == 1
        assert "[not_found]" in result.output

    def test_background_status(self, invoke, scoped):
        result = invoke("status", "acme", "--background", "--revision", "0")
        assert result.exit_code == 0
        assert "No change since revision 0." in result.output

        invoke("advance", "acme")
        result = invoke("status", "acme", "--background", "--revision", "0", "--json")
        data = json.loads(result.stdout)
        assert data["changed"] is True
        assert data["mode"] == "background"
        assert data["snapshot"]["revision"] == 1

    def test_revision_requires_background(self, invoke, scoped):
        result = invoke("status", "acme", "--revision", "0")
        assert result.exit_code == 2
        assert "--revision requires --background" in result.output

    def test_advance(self, invoke, scoped):
        result = invoke("advance", "acme")
        assert result.exit_code == 0
        assert "Advanced 'acme' to discovery/market-research." in result.output

    def test_set_phase_invalid_substep(self, invoke, scoped):
        result = invoke("set-phase", "acme", "design", "build-core")
        assert result.exit_code == 1
        assert "[invalid_substep_for_phase]" in result.output

    def test_set_phase_invalid_phase(self, invoke, scoped):
        result = invoke("set-phase", "acme", "marketing", "x")
        assert result.exit_code == 2

    def test_annotate(self, invoke, scoped):
        result = invoke("annotate", "acme", "Waiting on brand assets")
        assert result.exit_code == 0
        assert "Notes: Waiting on brand assets" in invoke("status", "acme").output


# =============================================================================
# Milestone commands
# =============================================================================


class TestMilestoneCommands:

    def test_add_toggle_and_list(self, invoke, scoped):
        due = (datetime.now() + timedelta(days=30)).strftime("%Y-%m-%d")
        milestone_id = add_milestone(
            invoke, "acme", "design", "Wireframes",
            "--weight", "3", "--due", due, "--assignee", "dana", "--deliverable", "figma",
        )

        result = invoke("milestone", "toggle", milestone_id)
        assert result.exit_code == 0
        assert "is completed" in result.output

        listed = json.loads(invoke("milestone", "list", "acme", "--json").stdout)
        assert len(listed) == 1
        assert listed[0]["completed"] is True
        assert listed[0]["weight"] == 3.0
        assert listed[0]["assigned_to"] == "dana"
        assert listed[0]["deliverables"] == ["figma"]

        status = json.loads(invoke("status", "acme", "--json").stdout)
        assert status["phase_progress"]["design"] == 100
        assert status["milestones_completed"] == 1

    def test_toggle_undo(self, invoke, scoped):
        milestone_id = add_milestone(invoke, "acme", "design", "Wireframes")
        invoke("milestone", "toggle", milestone_id)
        result = invoke("milestone", "toggle", milestone_id, "--undo")
        assert "is not completed" in result.output

    def test_add_bad_due_date(self, invoke, scoped):
        result = invoke("milestone", "add", "acme", "design", "Wireframes", "--due", "someday")
        assert result.exit_code == 2
        assert "Invalid date format" in result.output

    def test_add_bad_weight(self, invoke, scoped):
        result = invoke("milestone", "add", "acme", "design", "Wireframes", "--weight", "0")
        assert result.exit_code == 1
        assert "[invalid_weight]" in result.output

    def test_add_infinite_weight(self, invoke, scoped):
        result = invoke("milestone", "add", "acme", "design", "Wireframes", "--weight", "inf")
        assert result.exit_code == 1
        assert "[invalid_weight]" in result.output

    def test_list_flags_overdue(self, invoke, scoped):
        past = (datetime.now() - timedelta(days=10)).strftime("%Y-%m-%d")
        future = (datetime.now() + timedelta(days=10)).strftime("%Y-%m-%d")
        late = add_milestone(invoke, "acme", "design", "Wireframes", "--due", past)
        add_milestone(invoke, "acme", "design", "Style guide", "--due", future)

        lines = invoke("milestone", "list", "acme").output.splitlines()
        assert [line for line in lines if "[overdue]" in line] == [
            line for line in lines if "Wireframes" in line
        ]

        invoke("milestone", "toggle", late)
        assert "[overdue]" not in invoke("milestone", "list", "acme").output

    def test_update(self, invoke, scoped):
        milestone_id = add_milestone(invoke, "acme", "design", "Wireframes", "--assignee", "dana")
        result = invoke("milestone", "update", milestone_id, "--title", "Hi-fi", "--phase", "testing")
        assert result.exit_code == 0

        listed = json.loads(invoke("milestone", "list", "acme", "--json").stdout)
        assert listed[0]["title"] == "Hi-fi"
        assert listed[0]["phase"] == "testing"
        assert listed[0]["assigned_to"] == "dana"

    def test_remove(self, invoke, scoped):
        milestone_id = add_milestone(invoke, "acme", "design", "Wireframes")
        result = invoke("milestone", "remove", milestone_id)
        assert result.exit_code == 0

        assert "No milestones found." in invoke("milestone", "list", "acme").output
        assert "[removed]" in invoke("milestone", "list", "acme", "--all").output

    def test_toggle_unknown(self, invoke, scoped):
        result = invoke("milestone", "toggle", "nope")
        assert result.exit_code == 1
        assert "[not_found]" in result.output


# =============================================================================
# Catalog and config
# =============================================================================


class TestCatalogAndConfig:

    def test_catalog_text(self, invoke):
        result = invoke("catalog")
        assert result.exit_code == 0
        assert "3. Development" in result.output
        assert "build-core: Core Backend Development" in result.output

    def test_catalog_json(self, invoke):
        data = json.loads(invoke("catalog", "--json").stdout)
        assert [p["phase"] for p in data["phases"]] == [
            "discovery", "design", "development", "testing", "launch", "support",
        ]

    def test_config_show_defaults(self, invoke):
        data = json.loads(invoke("config", "show").stdout)
        assert data["completed_threshold"] == 80
        assert data["poll_interval_seconds"] == 30

    def test_config_set_and_get(self, invoke, data_dir):
        result = invoke("config", "set", "completed_threshold", "90")
        assert result.exit_code == 0
        assert invoke("config", "get", "completed_threshold").output.strip() == "90"
        assert json.loads((data_dir / "config.json").read_text())["completed_threshold"] == 90

    def test_config_set_invalid_value(self, invoke):
        result = invoke("config", "set", "completed_threshold", "0")
        assert result.exit_code == 2

    def test_config_unknown_key(self, invoke):
        assert invoke("config", "get", "colour").exit_code == 2

    def test_config_threshold_applies_to_status(self, invoke, scoped):
        invoke("config", "set", "completed_threshold", "100")
        invoke("set-phase", "acme", "design", "wireframing")
        milestone_id = add_milestone(invoke, "acme", "discovery", "A", "--weight", "9")
        add_milestone(invoke, "acme", "discovery", "B", "--weight", "1")
        invoke("milestone", "toggle", milestone_id)

        data = json.loads(invoke("status", "acme", "--json").stdout)
        assert data["phase_progress"]["discovery"] == 90
        assert data["phase_status"]["discovery"] == "in-progress"
