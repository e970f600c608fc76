"""Phase status helpers used by phase-status synchronization and actions.

All helpers raise ``PhaseNotFoundError`` when the project lacks the phase.
They are safe to call repeatedly: re-marking a phase with the status it
already has leaves its timestamps alone.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Optional

from sow.sdk.errors import PhaseNotFoundError, StateError
from sow.sdk.project import ArtifactState, PhaseState, PhaseStatus, Project, utcnow

logger = logging.getLogger(__name__)


def _get_phase(project: Project, phase_name: str) -> PhaseState:
    phase = project.phases.get(phase_name)
    if phase is None:
        raise PhaseNotFoundError(phase_name)
    return phase


def mark_phase_in_progress(project: Project, phase_name: str) -> None:
    """Set a phase to in_progress, stamping started_at on first entry."""
    phase = _get_phase(project, phase_name)
    if phase.status == PhaseStatus.IN_PROGRESS:
        return
    phase.status = PhaseStatus.IN_PROGRESS
    if phase.started_at is None:
        phase.started_at = utcnow()
    logger.info(f"Phase {phase_name}: in_progress")


def mark_phase_completed(project: Project, phase_name: str) -> None:
    """Set a phase to completed and record completed_at."""
    phase = _get_phase(project, phase_name)
    if phase.status == PhaseStatus.COMPLETED:
        return
    phase.status = PhaseStatus.COMPLETED
    phase.completed_at = utcnow()
    logger.info(f"Phase {phase_name}: completed")


def mark_phase_failed(project: Project, phase_name: str) -> None:
    """Set a phase to failed and record failed_at."""
    phase = _get_phase(project, phase_name)
    phase.status = PhaseStatus.FAILED
    phase.failed_at = utcnow()
    logger.info(f"Phase {phase_name}: failed")


def increment_phase_iteration(project: Project, phase_name: str) -> int:
    """Bump a phase's iteration counter and return the new value.

    Typically called from an on-entry action when a phase is re-entered after
    a downstream failure.
    """
    phase = _get_phase(project, phase_name)
    phase.iteration += 1
    return phase.iteration


def add_phase_input_from_output(
    project: Project,
    source_phase: str,
    target_phase: str,
    artifact_type: str,
    predicate: Optional[Callable[[ArtifactState], bool]] = None,
) -> ArtifactState:
    """Copy the latest matching output of one phase into another's inputs.

    Used to feed e.g. a failed review back into the next implementation
    iteration.

    Args:
        project: Project to modify
        source_phase: Phase whose outputs are searched (newest first)
        target_phase: Phase receiving the artifact as an input
        artifact_type: Artifact type to match
        predicate: Optional additional filter on candidate artifacts

    Returns:
        The artifact that was added

    Raises:
        PhaseNotFoundError: If either phase is missing
        StateError: If no output matches
    """
    source = _get_phase(project, source_phase)
    target = _get_phase(project, target_phase)

    for artifact in reversed(source.outputs):
        if artifact.type == artifact_type and (predicate is None or predicate(artifact)):
            copied = replace(artifact, metadata=dict(artifact.metadata))
            target.inputs.append(copied)
            return copied

    raise StateError(
        f"no matching artifact of type {artifact_type} found in {source_phase} outputs",
    )
