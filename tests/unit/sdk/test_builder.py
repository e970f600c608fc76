"""Unit tests for ProjectTypeConfigBuilder."""

import pytest

from sow.sdk.branch import branch_on, when
from sow.sdk.builder import ProjectTypeConfigBuilder
from sow.sdk.errors import ConfigurationError, ConfigValidationError
from sow.sdk.options import (
    with_description,
    with_end_state,
    with_guard,
    with_inputs,
    with_metadata_schema,
    with_outputs,
    with_start_state,
    with_tasks,
)
from sow.sdk.types import NO_PROJECT, Event, State

A = State("A")
B = State("B")
C = State("C")


def _valid_builder():
    return (
        ProjectTypeConfigBuilder("test")
        .add_phase("one", with_start_state(A), with_end_state(A))
        .add_phase("two", with_start_state(B), with_end_state(C))
        .set_initial_state(A)
        .add_transition(A, B, Event("next"))
        .add_transition(B, C, Event("finish"))
    )


class TestBuild:
    """Test building configurations."""

    def test_phase_options_applied(self):
        """Should apply every phase option to the phase config."""
        config = (
            ProjectTypeConfigBuilder("test")
            .add_phase(
                "impl",
                with_start_state(A),
                with_end_state(B),
                with_inputs("context"),
                with_outputs("task_list", "notes"),
                with_tasks(),
                with_metadata_schema({"approved": bool}),
            )
            .build()
        )

        phase = config.phases["impl"]
        assert phase.start_state == A
        assert phase.end_state == B
        assert phase.allowed_input_types == ("context",)
        assert phase.allowed_output_types == ("task_list", "notes")
        assert phase.supports_tasks is True
        assert phase.metadata_schema == {"approved": bool}

    def test_transition_options_applied(self):
        """Should carry guard and description into the transition config."""
        guard = lambda p: True  # noqa: E731
        config = (
            ProjectTypeConfigBuilder("test")
            .add_transition(
                A, B, Event("go"), with_guard("ready", guard), with_description("Go on")
            )
            .build()
        )

        tc = config.transitions[0]
        assert tc.guard_template.description == "ready"
        assert tc.guard_template.func is guard
        assert tc.description == "Go on"

    def test_config_is_read_only(self):
        """Should expose phases and transitions as read-only views."""
        config = _valid_builder().build()

        with pytest.raises(TypeError):
            config.phases["three"] = None
        assert isinstance(config.transitions, tuple)

    def test_builder_changes_after_build_do_not_leak(self):
        """Should keep a built config unchanged when the builder is reused."""
        builder = _valid_builder()
        config = builder.build()

        builder.add_transition(C, A, Event("again")).add_phase("three")

        assert len(config.transitions) == 2
        assert "three" not in config.phases

    def test_on_advance_registers_determiner(self):
        """Should register a determiner for the state."""
        determiner = lambda p: Event("next")  # noqa: E731
        config = _valid_builder().on_advance(A, determiner).build()

        assert config.event_determiner(A) is determiner
        assert config.event_determiner(B) is None


class TestBuildWithValidation:
    """Test configuration consistency checks."""

    def test_valid_configuration_builds(self):
        """Should build a consistent configuration."""
        config = _valid_builder().build_with_validation()
        assert config.initial_state == A

    def test_missing_initial_state(self):
        """Should report an unset initial state."""
        builder = ProjectTypeConfigBuilder("test").add_transition(A, B, Event("go"))

        with pytest.raises(ConfigValidationError) as exc_info:
            builder.build_with_validation()

        assert "initial state is not set" in exc_info.value.issues

    def test_phase_with_only_start_state(self):
        """Should report a phase with a start but no end state."""
        builder = _valid_builder().add_phase("half", with_start_state(C))

        with pytest.raises(ConfigValidationError) as exc_info:
            builder.build_with_validation()

        assert any("half" in issue for issue in exc_info.value.issues)

    def test_dead_end_state_reported(self):
        """Should report a non-phase state that is entered but never left."""
        builder = _valid_builder().add_transition(C, State("Limbo"), Event("lost"))

        with pytest.raises(ConfigValidationError) as exc_info:
            builder.build_with_validation()

        assert any("Limbo" in issue for issue in exc_info.value.issues)

    def test_intermediate_and_no_project_states_allowed(self):
        """Should accept connected intermediate states and NoProject."""
        middle = State("Middle")
        config = (
            _valid_builder()
            .add_transition(C, middle, Event("check"))
            .add_transition(middle, NO_PROJECT, Event("close"))
            .build_with_validation()
        )

        assert len(config.transitions) == 4

    def test_ambiguous_transitions_reported(self):
        """Should report two transitions sharing a source state and event."""
        builder = _valid_builder().add_transition(A, C, Event("next"))

        with pytest.raises(ConfigValidationError) as exc_info:
            builder.build_with_validation()

        assert any("ambiguous" in issue for issue in exc_info.value.issues)

    def test_all_issues_collected(self):
        """Should list every problem rather than stopping at the first."""
        builder = (
            ProjectTypeConfigBuilder("test")
            .add_phase("half", with_end_state(A))
            .add_transition(A, B, Event("go"))
            .add_transition(A, B, Event("go"))
        )

        with pytest.raises(ConfigValidationError) as exc_info:
            builder.build_with_validation()

        assert len(exc_info.value.issues) >= 3


class TestAddBranchValidation:
    """Test add_branch configuration errors."""

    def test_requires_discriminator(self):
        """Should refuse a branch without branch_on."""
        with pytest.raises(ConfigurationError, match="branch_on"):
            ProjectTypeConfigBuilder("test").add_branch(A, when("x", Event("go"), B))

    def test_requires_paths(self):
        """Should refuse a branch without when clauses."""
        with pytest.raises(ConfigurationError, match="when"):
            ProjectTypeConfigBuilder("test").add_branch(A, branch_on(lambda p: "x"))

    def test_rejects_empty_value(self):
        """Should refuse the empty string as a path value."""
        with pytest.raises(ConfigurationError, match="empty string"):
            ProjectTypeConfigBuilder("test").add_branch(
                A, branch_on(lambda p: ""), when("", Event("go"), B)
            )

    def test_rejects_state_with_determiner(self):
        """Should refuse to branch from a state that already has a determiner."""
        builder = ProjectTypeConfigBuilder("test").on_advance(A, lambda p: Event("go"))

        with pytest.raises(ConfigurationError, match="already has"):
            builder.add_branch(A, branch_on(lambda p: "x"), when("x", Event("go"), B))
