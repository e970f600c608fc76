"""Unit tests for phase status helpers."""

from datetime import datetime, timezone

import pytest

from sow.sdk.errors import PhaseNotFoundError, StateError
from sow.sdk.phases import (
    add_phase_input_from_output,
    increment_phase_iteration,
    mark_phase_completed,
    mark_phase_failed,
    mark_phase_in_progress,
)
from sow.sdk.project import ArtifactState, PhaseState, PhaseStatus, Project


@pytest.fixture
def project():
    """Project with review and implementation phases."""
    return Project(
        name="demo",
        type="test",
        phases={"implementation": PhaseState(), "review": PhaseState()},
    )


class TestMarkPhase:
    """Test status transitions of single phases."""

    def test_in_progress_stamps_started_once(self, project):
        """Should stamp started_at on first entry only."""
        mark_phase_in_progress(project, "review")
        first = project.phases["review"].started_at

        project.phases["review"].status = PhaseStatus.FAILED
        mark_phase_in_progress(project, "review")

        assert project.phases["review"].status == PhaseStatus.IN_PROGRESS
        assert first is not None
        assert project.phases["review"].started_at == first

    def test_in_progress_is_idempotent(self, project):
        """Should leave an in-progress phase untouched."""
        started = datetime(2026, 1, 1, tzinfo=timezone.utc)
        project.phases["review"].status = PhaseStatus.IN_PROGRESS
        project.phases["review"].started_at = started

        mark_phase_in_progress(project, "review")

        assert project.phases["review"].started_at == started

    def test_completed(self, project):
        """Should mark completed and stamp completed_at."""
        mark_phase_completed(project, "review")

        assert project.phases["review"].status == PhaseStatus.COMPLETED
        assert project.phases["review"].completed_at is not None

    def test_completed_is_idempotent(self, project):
        """Should keep the first completion time when re-marked."""
        mark_phase_completed(project, "review")
        first = project.phases["review"].completed_at

        mark_phase_completed(project, "review")

        assert project.phases["review"].completed_at == first

    def test_failed(self, project):
        """Should mark failed and stamp failed_at."""
        mark_phase_failed(project, "review")

        assert project.phases["review"].status == PhaseStatus.FAILED
        assert project.phases["review"].failed_at is not None

    @pytest.mark.parametrize(
        "helper", [mark_phase_in_progress, mark_phase_completed, mark_phase_failed]
    )
    def test_missing_phase(self, project, helper):
        """Should raise PhaseNotFoundError for a phase the project lacks."""
        with pytest.raises(PhaseNotFoundError) as exc_info:
            helper(project, "design")

        assert exc_info.value.phase == "design"


class TestIterationAndInputs:
    """Test rework helpers."""

    def test_increment_iteration(self, project):
        """Should bump and return the iteration counter."""
        assert increment_phase_iteration(project, "implementation") == 1
        assert increment_phase_iteration(project, "implementation") == 2
        assert project.phases["implementation"].iteration == 2

    def test_copies_latest_matching_output(self, project):
        """Should copy the newest output of the type into the target inputs."""
        review = project.phases["review"]
        review.outputs = [
            ArtifactState(type="review", path="review-1.md", approved=True),
            ArtifactState(type="notes", path="notes.md"),
            ArtifactState(type="review", path="review-2.md", approved=True),
        ]

        added = add_phase_input_from_output(project, "review", "implementation", "review")

        assert added.path == "review-2.md"
        assert project.phases["implementation"].inputs == [added]

    def test_predicate_filters_candidates(self, project):
        """Should skip outputs rejected by the predicate."""
        project.phases["review"].outputs = [
            ArtifactState(type="review", path="fail.md", metadata={"assessment": "fail"}),
            ArtifactState(type="review", path="pass.md", metadata={"assessment": "pass"}),
        ]

        added = add_phase_input_from_output(
            project,
            "review",
            "implementation",
            "review",
            predicate=lambda a: a.metadata.get("assessment") == "fail",
        )

        assert added.path == "fail.md"

    def test_copy_is_independent(self, project):
        """Should not share metadata between the output and the new input."""
        output = ArtifactState(type="review", path="r.md", metadata={"assessment": "fail"})
        project.phases["review"].outputs = [output]

        added = add_phase_input_from_output(project, "review", "implementation", "review")
        added.metadata["assessment"] = "changed"

        assert output.metadata["assessment"] == "fail"
        assert added is not output

    def test_no_match_raises(self, project):
        """Should raise StateError when nothing matches."""
        with pytest.raises(StateError, match="no matching artifact"):
            add_phase_input_from_output(project, "review", "implementation", "review")

    def test_missing_target_phase(self, project):
        """Should raise PhaseNotFoundError for an unknown target phase."""
        with pytest.raises(PhaseNotFoundError):
            add_phase_input_from_output(project, "review", "design", "review")
