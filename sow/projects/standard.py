"""The standard project type: planning → implementation → review → finalize.

Review decides between finishing and another implementation round. A failed
review sends the project back to implementation planning, carrying the
review report forward as an implementation input.
"""

from __future__ import annotations

import logging

from sow.sdk import (
    NO_PROJECT,
    ArtifactState,
    Event,
    PhaseState,
    Project,
    ProjectTypeConfig,
    ProjectTypeConfigBuilder,
    State,
    TaskStatus,
    add_phase_input_from_output,
    branch_on,
    increment_phase_iteration,
    when,
    with_description,
    with_end_state,
    with_failed_phase,
    with_guard,
    with_inputs,
    with_metadata_schema,
    with_on_entry,
    with_outputs,
    with_start_state,
    with_tasks,
)
from sow.sdk.project import utcnow

logger = logging.getLogger(__name__)

NAME = "standard"

# States
PLANNING_ACTIVE = State("PlanningActive")
IMPLEMENTATION_PLANNING = State("ImplementationPlanning")
IMPLEMENTATION_EXECUTING = State("ImplementationExecuting")
REVIEW_ACTIVE = State("ReviewActive")
FINALIZE_DOCUMENTATION = State("FinalizeDocumentation")
FINALIZE_CHECKS = State("FinalizeChecks")
FINALIZE_DELETE = State("FinalizeDelete")

# Events
EVENT_PROJECT_INIT = Event("project_init")
EVENT_COMPLETE_PLANNING = Event("complete_planning")
EVENT_TASKS_APPROVED = Event("tasks_approved")
EVENT_ALL_TASKS_COMPLETE = Event("all_tasks_complete")
EVENT_REVIEW_PASS = Event("review_pass")
EVENT_REVIEW_FAIL = Event("review_fail")
EVENT_DOCUMENTATION_DONE = Event("documentation_done")
EVENT_CHECKS_DONE = Event("checks_done")
EVENT_PROJECT_DELETE = Event("project_delete")

IMPLEMENTATION_METADATA = {"tasks_approved": bool}
REVIEW_METADATA = {"iteration": int}
FINALIZE_METADATA = {
    "project_deleted": bool,
    "pr_url": str,
    "documentation_updates": list,
}


# Guards


def task_list_approved(project: Project) -> bool:
    return project.phase_output_approved("planning", "task_list")


def tasks_approved(project: Project) -> bool:
    return project.phase_metadata_bool("implementation", "tasks_approved")


def all_tasks_complete(project: Project) -> bool:
    return project.all_tasks_complete()


def latest_review_approved(project: Project) -> bool:
    return project.latest_approved_output("review", "review") is not None


def project_deleted(project: Project) -> bool:
    return project.phase_metadata_bool("finalize", "project_deleted")


def review_assessment(project: Project) -> str:
    """Assessment of the latest approved review, or "" when there is none."""
    review = project.latest_approved_output("review", "review")
    if review is None:
        return ""
    assessment = review.metadata.get("assessment")
    return assessment if isinstance(assessment, str) else ""


# Actions


def start_rework(project: Project) -> None:
    """Feed the failed review into a new implementation round."""
    add_phase_input_from_output(
        project,
        "review",
        "implementation",
        "review",
        predicate=lambda a: a.approved and a.metadata.get("assessment") == "fail",
    )
    iteration = increment_phase_iteration(project, "implementation")
    project.phases["implementation"].metadata["tasks_approved"] = False

    review = project.phases["review"]
    review.metadata["iteration"] = int(review.metadata.get("iteration", 1)) + 1

    logger.info(f"Project {project.name}: review failed, starting rework round {iteration}")


# Initialization


def initialize(project: Project, initial_inputs: dict[str, list[ArtifactState]]) -> None:
    """Create the four phases with their starting metadata."""
    now = utcnow()
    project.phases["planning"] = PhaseState(
        created_at=now, inputs=list(initial_inputs.get("planning", []))
    )
    project.phases["implementation"] = PhaseState(
        created_at=now,
        inputs=list(initial_inputs.get("implementation", [])),
        metadata={"tasks_approved": False},
    )
    project.phases["review"] = PhaseState(created_at=now, metadata={"iteration": 1})
    project.phases["finalize"] = PhaseState(
        created_at=now, metadata={"project_deleted": False}
    )


# Prompts


def _header(project: Project) -> list[str]:
    lines = [f"# Project: {project.name}", f"Branch: {project.branch}"]
    if project.description:
        lines.append(f"Description: {project.description}")
    lines.append("")
    return lines


def _artifact_lines(artifacts: list[ArtifactState]) -> list[str]:
    return [
        f"- {a.path} ({'approved' if a.approved else 'pending'})" for a in artifacts
    ]


def _task_summary(project: Project) -> list[str]:
    phase = project.phases.get("implementation")
    if phase is None or not phase.tasks:
        return []
    done = sum(1 for t in phase.tasks if t.status == TaskStatus.COMPLETED)
    lines = [f"## Tasks ({done}/{len(phase.tasks)} completed)", ""]
    for task in phase.tasks:
        lines.append(f"- [{task.status.value}] {task.id}: {task.name}")
    lines.append("")
    return lines


def planning_prompt(project: Project) -> str:
    lines = _header(project)
    lines += [
        "## Planning",
        "",
        "Gather context, confirm requirements with the user and produce a task",
        "list. Register it as a `task_list` output and get it approved.",
    ]
    phase = project.phases.get("planning")
    if phase is not None and phase.outputs:
        lines += ["", "## Planning Artifacts", ""]
        lines += _artifact_lines(phase.outputs)
    return "\n".join(lines) + "\n"


def implementation_planning_prompt(project: Project) -> str:
    lines = _header(project)
    planning = project.phases.get("planning")
    if planning is not None and planning.outputs:
        lines += ["## Planning Context", ""]
        lines += [f"- {a.path}" for a in planning.outputs]
        lines.append("")

    implementation = project.phases.get("implementation")
    if implementation is not None and implementation.iteration > 0:
        lines += [f"## Rework Round {implementation.iteration}", ""]
        for artifact in implementation.inputs:
            if artifact.type == "review":
                lines.append(f"Address the findings in {artifact.path}")
        lines.append("")

    lines += [
        "## Implementation Planning",
        "",
        "Break the work into concrete tasks. Set `tasks_approved` once the",
        "user has approved the task breakdown.",
    ]
    return "\n".join(lines) + "\n"


def implementation_executing_prompt(project: Project) -> str:
    lines = _header(project) + _task_summary(project)
    lines += [
        "## Implementation",
        "",
        "Work through the tasks, updating each task's status as you go.",
    ]
    return "\n".join(lines) + "\n"


def review_prompt(project: Project) -> str:
    lines = _header(project)
    review = project.phases.get("review")
    iteration = int(review.metadata.get("iteration", 1)) if review else 1
    lines += [f"## Review Iteration: {iteration}", ""]
    lines += _task_summary(project)
    lines += [
        "Review the implementation against the task list. Add a `review`",
        "output with `assessment` metadata set to `pass` or `fail` and",
        "approve it.",
    ]
    return "\n".join(lines) + "\n"


def finalize_documentation_prompt(project: Project) -> str:
    lines = _header(project)
    lines += ["## Finalize: Documentation", "", "Update documentation for the changes."]
    return "\n".join(lines) + "\n"


def finalize_checks_prompt(project: Project) -> str:
    lines = _header(project)
    lines += ["## Finalize: Checks", "", "Run the test suite and linters."]
    return "\n".join(lines) + "\n"


def finalize_delete_prompt(project: Project) -> str:
    lines = _header(project)
    lines += [
        "## Finalize: Cleanup",
        "",
        "Delete the project directory and set `project_deleted` in the",
        "finalize phase metadata.",
    ]
    return "\n".join(lines) + "\n"


def orchestrator_prompt(project: Project) -> str:
    return (
        f"You are coordinating the {NAME} project {project.name}.\n"
        "Phases run planning → implementation → review → finalize. Use the\n"
        "state prompt for the current step and run `sow advance` once its\n"
        "requirements are met.\n"
    )


def new_config() -> ProjectTypeConfig:
    """Build the standard project type configuration."""
    builder = ProjectTypeConfigBuilder(NAME)

    builder.add_phase(
        "planning",
        with_start_state(PLANNING_ACTIVE),
        with_end_state(PLANNING_ACTIVE),
        with_inputs("context"),
        with_outputs("task_list"),
    ).add_phase(
        "implementation",
        with_start_state(IMPLEMENTATION_PLANNING),
        with_end_state(IMPLEMENTATION_EXECUTING),
        with_tasks(),
        with_metadata_schema(IMPLEMENTATION_METADATA),
    ).add_phase(
        "review",
        with_start_state(REVIEW_ACTIVE),
        with_end_state(REVIEW_ACTIVE),
        with_outputs("review"),
        with_metadata_schema(REVIEW_METADATA),
    ).add_phase(
        "finalize",
        with_start_state(FINALIZE_DOCUMENTATION),
        with_end_state(FINALIZE_DELETE),
        with_metadata_schema(FINALIZE_METADATA),
    )

    builder.set_initial_state(PLANNING_ACTIVE)

    builder.add_transition(
        NO_PROJECT,
        PLANNING_ACTIVE,
        EVENT_PROJECT_INIT,
        with_description("Start planning"),
    ).add_transition(
        PLANNING_ACTIVE,
        IMPLEMENTATION_PLANNING,
        EVENT_COMPLETE_PLANNING,
        with_guard("task list approved", task_list_approved),
        with_description("Planning complete, break down implementation"),
    ).add_transition(
        IMPLEMENTATION_PLANNING,
        IMPLEMENTATION_EXECUTING,
        EVENT_TASKS_APPROVED,
        with_guard("tasks approved", tasks_approved),
        with_description("Task breakdown approved, start executing"),
    ).add_transition(
        IMPLEMENTATION_EXECUTING,
        REVIEW_ACTIVE,
        EVENT_ALL_TASKS_COMPLETE,
        with_guard("all tasks complete", all_tasks_complete),
        with_description("Implementation complete, start review"),
    )

    builder.add_branch(
        REVIEW_ACTIVE,
        branch_on(review_assessment),
        when(
            "pass",
            EVENT_REVIEW_PASS,
            FINALIZE_DOCUMENTATION,
            with_guard("review approved", latest_review_approved),
            with_description("Review passed, finalize"),
        ),
        when(
            "fail",
            EVENT_REVIEW_FAIL,
            IMPLEMENTATION_PLANNING,
            with_guard("review approved", latest_review_approved),
            with_failed_phase("review"),
            with_on_entry(start_rework),
            with_description("Review failed, rework implementation"),
        ),
    )

    builder.add_transition(
        FINALIZE_DOCUMENTATION,
        FINALIZE_CHECKS,
        EVENT_DOCUMENTATION_DONE,
        with_description("Documentation updated"),
    ).add_transition(
        FINALIZE_CHECKS,
        FINALIZE_DELETE,
        EVENT_CHECKS_DONE,
        with_description("Checks passed"),
    ).add_transition(
        FINALIZE_DELETE,
        NO_PROJECT,
        EVENT_PROJECT_DELETE,
        with_guard("project deleted", project_deleted),
        with_description("Close the project"),
    )

    for state, event in (
        (PLANNING_ACTIVE, EVENT_COMPLETE_PLANNING),
        (IMPLEMENTATION_PLANNING, EVENT_TASKS_APPROVED),
        (IMPLEMENTATION_EXECUTING, EVENT_ALL_TASKS_COMPLETE),
        (FINALIZE_DOCUMENTATION, EVENT_DOCUMENTATION_DONE),
        (FINALIZE_CHECKS, EVENT_CHECKS_DONE),
        (FINALIZE_DELETE, EVENT_PROJECT_DELETE),
    ):
        builder.on_advance(state, lambda _project, event=event: event)

    builder.set_prompt(PLANNING_ACTIVE, planning_prompt)
    builder.set_prompt(IMPLEMENTATION_PLANNING, implementation_planning_prompt)
    builder.set_prompt(IMPLEMENTATION_EXECUTING, implementation_executing_prompt)
    builder.set_prompt(REVIEW_ACTIVE, review_prompt)
    builder.set_prompt(FINALIZE_DOCUMENTATION, finalize_documentation_prompt)
    builder.set_prompt(FINALIZE_CHECKS, finalize_checks_prompt)
    builder.set_prompt(FINALIZE_DELETE, finalize_delete_prompt)
    builder.set_orchestrator_prompt(orchestrator_prompt)
    builder.set_initializer(initialize)

    return builder.build_with_validation()
