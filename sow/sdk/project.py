"""Project data model and the generic advance() operation.

The dataclasses here mirror what the persistence layer stores. ``Project``
additionally carries two runtime-only attributes, its ``ProjectTypeConfig``
and the bound ``Machine``, which are never serialized and are rebuilt on every
load.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from sow.sdk.errors import GuardBlockedError, NoEventDeterminerError, SowError
from sow.sdk.types import Event, State

if TYPE_CHECKING:
    from sow.sdk.config import ProjectTypeConfig
    from sow.sdk.machine import Machine

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current time in UTC. Patched in tests that need fixed timestamps."""
    return datetime.now(timezone.utc)


class PhaseStatus(str, Enum):
    """Phase lifecycle states."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    ABANDONED = "abandoned"


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    NEEDS_REVIEW = "needs_review"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass
class ArtifactState:
    """An input or output artifact of a phase or task."""

    type: str
    path: str
    approved: bool = False
    created_at: Optional[datetime] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "path": self.path,
            "approved": self.approved,
            "created_at": _dump_time(self.created_at),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArtifactState:
        return cls(
            type=data["type"],
            path=data.get("path", ""),
            approved=bool(data.get("approved", False)),
            created_at=_load_time(data.get("created_at")),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class TaskState:
    """A unit of work inside a task-supporting phase."""

    id: str
    name: str
    status: TaskStatus = TaskStatus.PENDING
    iteration: int = 1
    assigned_agent: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    inputs: list[ArtifactState] = field(default_factory=list)
    outputs: list[ArtifactState] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "iteration": self.iteration,
            "assigned_agent": self.assigned_agent,
            "created_at": _dump_time(self.created_at),
            "started_at": _dump_time(self.started_at),
            "completed_at": _dump_time(self.completed_at),
            "inputs": [a.to_dict() for a in self.inputs],
            "outputs": [a.to_dict() for a in self.outputs],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskState:
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            status=TaskStatus(data.get("status", TaskStatus.PENDING.value)),
            iteration=int(data.get("iteration", 1)),
            assigned_agent=data.get("assigned_agent"),
            created_at=_load_time(data.get("created_at")),
            started_at=_load_time(data.get("started_at")),
            completed_at=_load_time(data.get("completed_at")),
            inputs=[ArtifactState.from_dict(a) for a in data.get("inputs") or []],
            outputs=[ArtifactState.from_dict(a) for a in data.get("outputs") or []],
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class PhaseState:
    """Live status of one phase of a project."""

    status: PhaseStatus = PhaseStatus.NOT_STARTED
    enabled: bool = True
    iteration: int = 0
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    inputs: list[ArtifactState] = field(default_factory=list)
    outputs: list[ArtifactState] = field(default_factory=list)
    tasks: list[TaskState] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "enabled": self.enabled,
            "iteration": self.iteration,
            "created_at": _dump_time(self.created_at),
            "started_at": _dump_time(self.started_at),
            "completed_at": _dump_time(self.completed_at),
            "failed_at": _dump_time(self.failed_at),
            "inputs": [a.to_dict() for a in self.inputs],
            "outputs": [a.to_dict() for a in self.outputs],
            "tasks": [t.to_dict() for t in self.tasks],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PhaseState:
        return cls(
            status=PhaseStatus(data.get("status", PhaseStatus.NOT_STARTED.value)),
            enabled=bool(data.get("enabled", True)),
            iteration=int(data.get("iteration", 0)),
            created_at=_load_time(data.get("created_at")),
            started_at=_load_time(data.get("started_at")),
            completed_at=_load_time(data.get("completed_at")),
            failed_at=_load_time(data.get("failed_at")),
            inputs=[ArtifactState.from_dict(a) for a in data.get("inputs") or []],
            outputs=[ArtifactState.from_dict(a) for a in data.get("outputs") or []],
            tasks=[TaskState.from_dict(t) for t in data.get("tasks") or []],
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class StatechartState:
    """Persisted position of the project's state machine."""

    current_state: State
    updated_at: Optional[datetime] = None


@dataclass
class Project:
    """A project instance: persisted state plus its bound machine.

    Attributes:
        name: Kebab-case project name
        type: Project type name, used to look up the configuration
        branch: Git branch the project lives on
        description: Human readable description
        phases: Phase states keyed by phase name
        statechart: Persisted machine position
    """

    name: str
    type: str
    branch: str = ""
    description: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    phases: dict[str, PhaseState] = field(default_factory=dict)
    statechart: StatechartState = field(
        default_factory=lambda: StatechartState(current_state=State(""))
    )

    # Runtime only, never serialized
    config: Optional[ProjectTypeConfig] = field(
        default=None, repr=False, compare=False
    )
    machine: Optional[Machine] = field(default=None, repr=False, compare=False)

    def bind(self, config: ProjectTypeConfig, state: Optional[State] = None) -> Machine:
        """Attach a project type config and build a machine at ``state``.

        Defaults to the persisted statechart position, falling back to the
        config's initial state for a fresh project.
        """
        initial = state or self.statechart.current_state or config.initial_state
        self.config = config
        self.machine = config.build_machine(self, State(initial))
        return self.machine

    @property
    def current_state(self) -> State:
        """Current state, from the machine when bound."""
        if self.machine is not None:
            return self.machine.state
        return self.statechart.current_state

    def advance(self) -> Event:
        """Determine the next event for the current state and fire it.

        Returns:
            The event that was fired

        Raises:
            NoEventDeterminerError: No determiner is configured for the state
            EventDeterminationError: The determiner could not decide (raised
                by the determiner itself and propagated unchanged)
            GuardBlockedError: The transition's guard is not satisfied
            TransitionError: Firing failed, e.g. an action raised
        """
        if self.machine is None or self.config is None:
            raise SowError(f"project {self.name} has no bound state machine")

        current_state = self.machine.state

        determiner = self.config.event_determiner(current_state)
        if determiner is None:
            raise NoEventDeterminerError(current_state)

        event = determiner(self)
        logger.debug(f"Determined event {event} from state {current_state}")

        if not self.machine.can_fire(event):
            description = self.machine.guard_description(event)
            logger.warning(
                f"Cannot fire {event} from {current_state}: "
                f"{description or 'guard not satisfied'}"
            )
            raise GuardBlockedError(current_state, event, description)

        self.config.fire_with_phase_updates(self.machine, event, self)
        return event

    # Helpers for common guard patterns. All are read-only.

    def phase_output_approved(self, phase_name: str, output_type: str) -> bool:
        """True if the phase has an approved output artifact of the given type."""
        phase = self.phases.get(phase_name)
        if phase is None:
            return False
        return any(a.type == output_type and a.approved for a in phase.outputs)

    def phase_metadata_bool(self, phase_name: str, key: str) -> bool:
        """Read a boolean from phase metadata; anything but ``True`` is False."""
        phase = self.phases.get(phase_name)
        if phase is None:
            return False
        return phase.metadata.get(key) is True

    def all_tasks_complete(self) -> bool:
        """True if every task in every phase is completed (vacuously true)."""
        return all(
            task.status == TaskStatus.COMPLETED
            for phase in self.phases.values()
            for task in phase.tasks
        )

    def latest_approved_output(
        self, phase_name: str, output_type: str
    ) -> Optional[ArtifactState]:
        """Most recently added approved output of a type, if any."""
        phase = self.phases.get(phase_name)
        if phase is None:
            return None
        for artifact in reversed(phase.outputs):
            if artifact.type == output_type and artifact.approved:
                return artifact
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize persisted fields to plain data."""
        return {
            "name": self.name,
            "type": self.type,
            "branch": self.branch,
            "description": self.description,
            "created_at": _dump_time(self.created_at),
            "updated_at": _dump_time(self.updated_at),
            "phases": {name: p.to_dict() for name, p in self.phases.items()},
            "statechart": {
                "current_state": str(self.statechart.current_state),
                "updated_at": _dump_time(self.statechart.updated_at),
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        statechart = data.get("statechart") or {}
        return cls(
            name=data["name"],
            type=data["type"],
            branch=data.get("branch", ""),
            description=data.get("description", ""),
            created_at=_load_time(data.get("created_at")),
            updated_at=_load_time(data.get("updated_at")),
            phases={
                name: PhaseState.from_dict(p or {})
                for name, p in (data.get("phases") or {}).items()
            },
            statechart=StatechartState(
                current_state=State(statechart.get("current_state", "")),
                updated_at=_load_time(statechart.get("updated_at")),
            ),
        )


def _dump_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _load_time(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
