"""Unit tests for the load/save/create pipeline."""

import logging

import pytest

from sow.projects import build_registry, standard
from sow.sdk.errors import (
    StateError,
    StateValidationError,
    UnknownProjectTypeError,
)
from sow.sdk.project import ArtifactState, PhaseStatus, TaskState
from sow.state import loader
from sow.state.backend import MemoryBackend


@pytest.fixture
def registry():
    return build_registry()


class TestDetectProjectType:
    """Test branch prefix detection."""

    @pytest.mark.parametrize(
        "branch,expected",
        [
            ("explore/caching", "exploration"),
            ("design/api", "design"),
            ("breakdown/epic", "breakdown"),
            ("feat/login", "standard"),
            ("main", "standard"),
            ("explorer/x", "standard"),
        ],
    )
    def test_prefixes(self, branch, expected):
        """Should pick the type from the branch prefix."""
        assert loader.detect_project_type(branch) == expected


class TestGenerateProjectName:
    """Test project name generation."""

    @pytest.mark.parametrize(
        "description,expected",
        [
            ("Add OAuth login_flow!", "add-oauth-login-flow"),
            ("  Fix   the   bug  ", "fix-the-bug"),
            ("already-kebab--case", "already-kebab-case"),
            ("Ünïcode & symbols", "ncode-symbols"),
            ("!!!", ""),
        ],
    )
    def test_names(self, description, expected):
        """Should produce lowercase kebab-case names."""
        assert loader.generate_project_name(description) == expected

    def test_truncates_before_normalizing(self):
        """Should cut the description at 50 characters."""
        name = loader.generate_project_name("a" * 49 + " bcdef")

        assert name == "a" * 49


class TestCreate:
    """Test creating new projects."""

    def test_creates_standard_project(self, registry):
        """Should initialize, bind and save a standard project."""
        backend = MemoryBackend()

        project = loader.create(backend, registry, "feat/login", "Add login")

        assert project.name == "add-login"
        assert project.type == "standard"
        assert project.current_state == standard.PLANNING_ACTIVE
        assert project.machine is not None
        assert list(project.phases) == ["planning", "implementation", "review", "finalize"]
        assert project.phases["planning"].status == PhaseStatus.IN_PROGRESS
        assert project.phases["implementation"].status == PhaseStatus.NOT_STARTED
        assert backend.exists()
        assert backend.load()["statechart"]["current_state"] == "PlanningActive"

    def test_initial_inputs_seeded(self, registry):
        """Should place initial inputs into the named phases."""
        context = ArtifactState(type="context", path="notes/research.md")

        project = loader.create(
            MemoryBackend(),
            registry,
            "feat/login",
            "Add login",
            initial_inputs={"planning": [context]},
        )

        assert project.phases["planning"].inputs == [context]

    def test_explicit_type_overrides_branch(self, registry):
        """Should use the explicit type instead of the branch prefix."""
        project = loader.create(
            MemoryBackend(), registry, "explore/caching", "Cache", project_type="standard"
        )

        assert project.type == "standard"

    def test_unregistered_type_from_branch_falls_back(self, registry, caplog):
        """Should use the default type when the branch prefix type is missing."""
        backend = MemoryBackend()

        with caplog.at_level(logging.WARNING, logger="sow.state.loader"):
            project = loader.create(backend, registry, "explore/caching", "Cache")

        assert project.type == "standard"
        assert backend.load()["type"] == "standard"
        assert "exploration" in caplog.text

    def test_unregistered_explicit_type(self, registry):
        """Should fail for an explicit type that is not registered."""
        backend = MemoryBackend()

        with pytest.raises(UnknownProjectTypeError) as exc_info:
            loader.create(
                backend, registry, "feat/login", "Login", project_type="exploration"
            )

        assert exc_info.value.name == "exploration"
        assert backend.exists() is False

    def test_empty_branch(self, registry):
        """Should require a branch name."""
        with pytest.raises(StateError, match="branch name required"):
            loader.create(MemoryBackend(), registry, "", "Add login")


class TestLoadAndSave:
    """Test loading and saving existing projects."""

    def test_load_binds_machine_at_saved_state(self, registry):
        """Should rebuild the machine at the persisted state."""
        backend = MemoryBackend()
        created = loader.create(backend, registry, "feat/login", "Add login")
        created.phases["planning"].outputs.append(
            ArtifactState(type="task_list", path="tasks.md", approved=True)
        )
        created.advance()
        loader.save(created, backend)

        project = loader.load(backend, registry)

        assert project.current_state == standard.IMPLEMENTATION_PLANNING
        assert project.machine.state == standard.IMPLEMENTATION_PLANNING
        assert project.config is registry.require("standard")
        assert project.phases["planning"].status == PhaseStatus.COMPLETED
        assert project.phases["implementation"].status == PhaseStatus.IN_PROGRESS

    def test_save_stamps_timestamps(self, registry):
        """Should record updated_at on save."""
        backend = MemoryBackend()
        project = loader.create(backend, registry, "feat/login", "Add login")
        first = project.updated_at

        loader.save(project, backend)

        assert project.updated_at >= first
        assert project.statechart.updated_at == project.updated_at

    def test_save_refuses_invalid_project(self, registry):
        """Should validate before writing and leave storage untouched."""
        backend = MemoryBackend()
        project = loader.create(backend, registry, "feat/login", "Add login")
        project.phases["planning"].tasks.append(TaskState(id="010", name="Oops"))

        with pytest.raises(StateValidationError):
            loader.save(project, backend)

        assert backend.load()["phases"]["planning"]["tasks"] == []

    def test_load_unknown_type(self, registry):
        """Should raise UnknownProjectTypeError for an unregistered type."""
        backend = MemoryBackend({"name": "x", "type": "mystery"})

        with pytest.raises(UnknownProjectTypeError):
            loader.load(backend, registry)

    def test_load_malformed_data(self, registry):
        """Should wrap missing required fields in a StateError."""
        backend = MemoryBackend({"type": "standard"})

        with pytest.raises(StateError, match="malformed project state"):
            loader.load(backend, registry)

    def test_load_validates(self, registry):
        """Should reject stored data that violates the type config."""
        backend = MemoryBackend()
        project = loader.create(backend, registry, "feat/login", "Add login")
        data = project.to_dict()
        data["phases"]["review"]["metadata"]["iteration"] = "two"
        backend.save(data)

        with pytest.raises(StateValidationError, match="expected int"):
            loader.load(backend, registry)
