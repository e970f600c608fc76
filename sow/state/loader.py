"""Load, save and create pipelines for project state.

Every path that produces a ``Project`` leaves it bound: the project type
config is attached and a machine is built at the persisted state.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from sow.sdk.errors import StateError
from sow.sdk.phases import mark_phase_in_progress
from sow.sdk.project import ArtifactState, Project, StatechartState, utcnow
from sow.sdk.registry import Registry
from sow.state.backend import Backend

logger = logging.getLogger(__name__)

BRANCH_PREFIX_TYPES = (
    ("explore/", "exploration"),
    ("design/", "design"),
    ("breakdown/", "breakdown"),
)
DEFAULT_PROJECT_TYPE = "standard"
MAX_NAME_LENGTH = 50


def detect_project_type(branch: str) -> str:
    """Infer the project type from the branch name prefix."""
    for prefix, project_type in BRANCH_PREFIX_TYPES:
        if branch.startswith(prefix):
            return project_type
    return DEFAULT_PROJECT_TYPE


def _detected_type(registry: Registry, branch: str) -> str:
    type_name = detect_project_type(branch)
    if type_name not in registry:
        logger.warning(
            f"Branch {branch} suggests project type {type_name}, which is not "
            f"registered; using {DEFAULT_PROJECT_TYPE}"
        )
        return DEFAULT_PROJECT_TYPE
    return type_name


def generate_project_name(description: str) -> str:
    """Turn a description into a kebab-case project name.

    The description is cut to 50 characters first; whitespace, underscores
    and hyphens become single hyphens and anything else that is not an ASCII
    letter or digit is dropped.

    Example:
        "Add OAuth login_flow!" -> "add-oauth-login-flow"
    """
    name = description[:MAX_NAME_LENGTH].lower()
    name = re.sub(r"[\s_-]+", "-", name)
    name = re.sub(r"[^a-z0-9-]", "", name)
    name = re.sub(r"-{2,}", "-", name)
    return name.strip("-")


def load(backend: Backend, registry: Registry) -> Project:
    """Read a project, attach its type config and bind a machine.

    Raises:
        ProjectNotFoundError: If the backend holds no project
        UnknownProjectTypeError: If the stored type is not registered
        StateError: If the stored data is malformed
        StateValidationError: If the project violates its type config
    """
    data = backend.load()
    try:
        project = Project.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise StateError(f"malformed project state: {e}") from e

    config = registry.require(project.type)
    project.bind(config)
    config.validate(project)

    logger.debug(f"Loaded project {project.name} in state {project.current_state}")
    return project


def save(project: Project, backend: Backend) -> None:
    """Validate and write a project.

    The persisted state is taken from the bound machine, so an unsaved
    transition is never lost. Nothing is written if validation fails.

    Raises:
        StateValidationError: If the project violates its type config
    """
    now = utcnow()
    if project.machine is not None:
        project.statechart.current_state = project.machine.state
        project.statechart.updated_at = now
    project.updated_at = now

    if project.config is not None:
        project.config.validate(project)

    backend.save(project.to_dict())
    logger.debug(f"Saved project {project.name} in state {project.current_state}")


def create(
    backend: Backend,
    registry: Registry,
    branch: str,
    description: str,
    project_type: Optional[str] = None,
    initial_inputs: Optional[dict[str, list[ArtifactState]]] = None,
) -> Project:
    """Create, initialize, bind and save a new project.

    Args:
        backend: Where the new project is written
        registry: Registry holding the project type
        branch: Git branch of the project; also selects the type when
            ``project_type`` is not given. A prefix whose type is not
            registered falls back to the default type.
        description: Description, also the source of the project name
        project_type: Explicit project type name
        initial_inputs: Artifacts to seed into phase inputs, keyed by phase

    Returns:
        The bound, saved project

    Raises:
        StateError: If the branch is empty
        UnknownProjectTypeError: If the explicit type is not registered
    """
    if not branch:
        raise StateError("branch name required")

    type_name = project_type or _detected_type(registry, branch)
    config = registry.require(type_name)

    now = utcnow()
    project = Project(
        name=generate_project_name(description),
        type=type_name,
        branch=branch,
        description=description,
        created_at=now,
        updated_at=now,
        statechart=StatechartState(current_state=config.initial_state, updated_at=now),
    )
    project.config = config

    config.initialize(project, initial_inputs or {})
    project.bind(config, config.initial_state)

    initial_phase = config.get_phase_for_state(config.initial_state)
    if (
        initial_phase is not None
        and config.is_phase_start_state(initial_phase, config.initial_state)
        and initial_phase in project.phases
    ):
        mark_phase_in_progress(project, initial_phase)

    save(project, backend)
    logger.info(f"Created {type_name} project {project.name} on branch {branch}")
    return project
