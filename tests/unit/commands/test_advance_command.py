"""Unit tests for the advance command."""

import io
from unittest.mock import patch

import pytest
import typer
from rich.console import Console

from sow.commands.advance import AdvanceError, command, validate_flags
from sow.core.config import Config
from sow.core.context import ProjectContext
from sow.projects import build_registry
from sow.sdk.project import ArtifactState, PhaseStatus, TaskState, TaskStatus
from sow.state import loader


@pytest.fixture
def context(tmp_path):
    """Repository with a freshly created standard project."""
    (tmp_path / ".git").mkdir()
    ctx = ProjectContext(cwd=tmp_path, config=Config(config_dir=tmp_path / "xdg"))
    loader.create(ctx.backend(), build_registry(), "feat/login", "Add login")
    return ctx


@pytest.fixture
def output():
    """Capture everything the command prints."""
    buffer = io.StringIO()
    with patch(
        "sow.commands.advance.console", Console(file=buffer, width=200)
    ):
        yield buffer


def _run(context, event=None, list_flag=False, dry_run=False):
    with patch("sow.commands.advance.ProjectContext", return_value=context):
        command(event, list_flag=list_flag, dry_run=dry_run)


def _update(context, change):
    registry = build_registry()
    project = context.load_project(registry)
    change(project)
    context.save_project(project)


def _approve_task_list(project):
    project.phases["planning"].outputs.append(
        ArtifactState(type="task_list", path="tasks.md", approved=True)
    )


class TestValidateFlags:
    """Test flag combination checks."""

    @pytest.mark.parametrize(
        "event,list_flag,dry_run,message",
        [
            (None, True, True, "cannot use --list and --dry-run together"),
            ("go", True, True, "cannot use --list and --dry-run together"),
            ("go", True, False, "cannot specify event argument with --list flag"),
            (None, False, True, "--dry-run requires an event argument"),
        ],
    )
    def test_invalid_combinations(self, event, list_flag, dry_run, message):
        """Should reject conflicting flags."""
        with pytest.raises(AdvanceError) as exc_info:
            validate_flags(event, list_flag, dry_run)

        assert str(exc_info.value) == message

    @pytest.mark.parametrize(
        "event,list_flag,dry_run",
        [(None, False, False), ("go", False, False), (None, True, False), ("go", False, True)],
    )
    def test_valid_combinations(self, event, list_flag, dry_run):
        """Should accept the four supported modes."""
        validate_flags(event, list_flag, dry_run)

    def test_flag_error_exits(self, context, output):
        """Should exit with code 1 and print a hint."""
        with pytest.raises(typer.Exit) as exc_info:
            _run(context, list_flag=True, dry_run=True)

        assert exc_info.value.exit_code == 1
        assert "Hint:" in output.getvalue()


class TestAutoAdvance:
    """Test advancing without an event argument."""

    def test_blocked_by_guard(self, context, output):
        """Should exit without changing the saved state."""
        with pytest.raises(typer.Exit) as exc_info:
            _run(context)

        assert exc_info.value.exit_code == 1
        assert "requires task list approved" in output.getvalue()
        assert context.load_project(build_registry()).current_state == "PlanningActive"

    def test_advances_and_saves(self, context, output):
        """Should fire the determined event and persist the new state."""
        _update(context, _approve_task_list)

        _run(context)

        text = output.getvalue()
        assert "Current state: PlanningActive" in text
        assert "Advanced via complete_planning to: ImplementationPlanning" in text
        project = context.load_project(build_registry())
        assert project.current_state == "ImplementationPlanning"
        assert project.phases["planning"].status == PhaseStatus.COMPLETED

    def test_branch_without_review(self, context, output):
        """Should report that the next event cannot be determined."""

        def to_review(project):
            _approve_task_list(project)
            project.advance()
            project.phases["implementation"].metadata["tasks_approved"] = True
            project.advance()
            project.phases["implementation"].tasks.append(
                TaskState(id="010", name="Build", status=TaskStatus.COMPLETED)
            )
            project.advance()

        _update(context, to_review)

        with pytest.raises(typer.Exit):
            _run(context)

        assert "Cannot determine next event" in output.getvalue()

    def test_no_project(self, tmp_path, output):
        """Should tell the user to create a project."""
        (tmp_path / ".git").mkdir()
        empty = ProjectContext(cwd=tmp_path, config=Config(config_dir=tmp_path / "xdg"))

        with pytest.raises(typer.Exit):
            _run(empty)

        assert "No active project" in output.getvalue()


class TestExplicitAdvance:
    """Test advancing with an explicit event."""

    def test_fires_event(self, context, output):
        """Should fire the event and save."""
        _update(context, _approve_task_list)

        _run(context, event="complete_planning")

        assert "Advanced to: ImplementationPlanning" in output.getvalue()
        assert (
            context.load_project(build_registry()).current_state
            == "ImplementationPlanning"
        )

    def test_blocked_event(self, context, output):
        """Should name the unmet requirement."""
        with pytest.raises(typer.Exit):
            _run(context, event="complete_planning")

        text = output.getvalue()
        assert (
            "cannot advance from PlanningActive to ImplementationPlanning via "
            "complete_planning: requires task list approved"
        ) in text
        assert "--dry-run" in text

    def test_unknown_event(self, context, output):
        """Should reject events not configured for the state."""
        with pytest.raises(typer.Exit):
            _run(context, event="review_pass")

        assert "event not configured: review_pass" in output.getvalue()


class TestListMode:
    """Test --list output."""

    def test_lists_blocked_transition(self, context, output):
        """Should mark blocked transitions and show requirements."""
        _run(context, list_flag=True)

        text = output.getvalue()
        assert "Current state: PlanningActive" in text
        assert "sow advance complete_planning  [BLOCKED]" in text
        assert "→ ImplementationPlanning" in text
        assert "Requires: task list approved" in text
        assert "(All configured transitions are currently blocked" in text

    def test_lists_available_transition(self, context, output):
        """Should omit the blocked marker once the guard passes."""
        _update(context, _approve_task_list)

        _run(context, list_flag=True)

        text = output.getvalue()
        assert "[BLOCKED]" not in text
        assert "currently blocked" not in text

    def test_list_does_not_save(self, context, output):
        """Should leave the state file untouched."""
        before = context.state_file.read_text()

        _run(context, list_flag=True)

        assert context.state_file.read_text() == before


class TestDryRun:
    """Test --dry-run output."""

    def test_blocked(self, context, output):
        """Should explain the blocking guard and exit 1."""
        with pytest.raises(typer.Exit):
            _run(context, event="complete_planning", dry_run=True)

        text = output.getvalue()
        assert "Validating transition: PlanningActive -> complete_planning" in text
        assert "✗ Transition blocked by guard condition" in text
        assert "Guard description: task list approved" in text

    def test_valid(self, context, output):
        """Should confirm the transition without firing it."""
        _update(context, _approve_task_list)

        _run(context, event="complete_planning", dry_run=True)

        text = output.getvalue()
        assert "✓ Transition is valid and can be executed" in text
        assert "Target state: ImplementationPlanning" in text
        assert "To execute: sow advance complete_planning" in text
        assert context.load_project(build_registry()).current_state == "PlanningActive"

    def test_unconfigured(self, context, output):
        """Should point at --list for unknown events."""
        with pytest.raises(typer.Exit):
            _run(context, event="nope", dry_run=True)

        assert "✗ Event 'nope' is not configured for state PlanningActive" in (
            output.getvalue()
        )
