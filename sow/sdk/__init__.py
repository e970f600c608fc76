"""Project-type state machine SDK."""

from sow.sdk.types import (
    NO_PROJECT,
    Action,
    Event,
    EventDeterminer,
    Guard,
    GuardTemplate,
    Initializer,
    PromptFunc,
    PromptGenerator,
    State,
    Validator,
)
from sow.sdk.errors import (
    BranchNotFoundError,
    ConfigurationError,
    ConfigValidationError,
    DuplicateProjectTypeError,
    EventDeterminationError,
    GuardBlockedError,
    GuardFailedError,
    InvalidTriggerError,
    NoEventDeterminerError,
    PhaseNotFoundError,
    ProjectNotFoundError,
    SowError,
    StateError,
    StateValidationError,
    TransitionActionError,
    TransitionError,
    UnknownProjectTypeError,
)
from sow.sdk.project import (
    ArtifactState,
    PhaseState,
    PhaseStatus,
    Project,
    StatechartState,
    TaskState,
    TaskStatus,
)
from sow.sdk.phases import (
    add_phase_input_from_output,
    increment_phase_iteration,
    mark_phase_completed,
    mark_phase_failed,
    mark_phase_in_progress,
)
from sow.sdk.machine import Machine, MachineBuilder
from sow.sdk.options import (
    with_description,
    with_end_state,
    with_failed_phase,
    with_guard,
    with_inputs,
    with_metadata_schema,
    with_on_entry,
    with_on_exit,
    with_outputs,
    with_start_state,
    with_tasks,
)
from sow.sdk.branch import BranchConfig, BranchPath, branch_on, when
from sow.sdk.config import (
    PhaseConfig,
    ProjectTypeConfig,
    TransitionConfig,
    TransitionInfo,
)
from sow.sdk.builder import ProjectTypeConfigBuilder
from sow.sdk.registry import Registry

__all__ = [
    "NO_PROJECT",
    "Action",
    "ArtifactState",
    "BranchConfig",
    "BranchNotFoundError",
    "BranchPath",
    "ConfigValidationError",
    "ConfigurationError",
    "DuplicateProjectTypeError",
    "Event",
    "EventDeterminationError",
    "EventDeterminer",
    "Guard",
    "GuardBlockedError",
    "GuardFailedError",
    "GuardTemplate",
    "Initializer",
    "InvalidTriggerError",
    "Machine",
    "MachineBuilder",
    "NoEventDeterminerError",
    "PhaseConfig",
    "PhaseNotFoundError",
    "PhaseState",
    "PhaseStatus",
    "Project",
    "ProjectNotFoundError",
    "ProjectTypeConfig",
    "ProjectTypeConfigBuilder",
    "PromptFunc",
    "PromptGenerator",
    "Registry",
    "SowError",
    "State",
    "StateError",
    "StateValidationError",
    "StatechartState",
    "TaskState",
    "TaskStatus",
    "TransitionActionError",
    "TransitionConfig",
    "TransitionError",
    "TransitionInfo",
    "UnknownProjectTypeError",
    "Validator",
    "add_phase_input_from_output",
    "branch_on",
    "increment_phase_iteration",
    "mark_phase_completed",
    "mark_phase_failed",
    "mark_phase_in_progress",
    "when",
    "with_description",
    "with_end_state",
    "with_failed_phase",
    "with_guard",
    "with_inputs",
    "with_metadata_schema",
    "with_on_entry",
    "with_on_exit",
    "with_outputs",
    "with_start_state",
    "with_tasks",
]
