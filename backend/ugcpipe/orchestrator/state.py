"""State machine constants and transition logic for generation jobs.

Jobs and scenes move forward only: a job is created ``processing`` and ends
``completed`` or ``failed``; a scene goes pending -> processing ->
completed|failed. Terminal states are never reopened.
"""

from typing import Dict, FrozenSet

from ugcpipe.errors import InvalidTransition

# Job states
JOB_PROCESSING = "processing"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"

JOB_STATES = {
    JOB_PROCESSING: "Scenes are being generated",
    JOB_COMPLETED: "At least one scene produced an output",
    JOB_FAILED: "No scene produced an output",
}

# Scene states
SCENE_PENDING = "pending"
SCENE_PROCESSING = "processing"
SCENE_COMPLETED = "completed"
SCENE_FAILED = "failed"

SCENE_STATES = {
    SCENE_PENDING: "Created, waiting its turn",
    SCENE_PROCESSING: "Provider call in flight",
    SCENE_COMPLETED: "Output uploaded and recorded",
    SCENE_FAILED: "Provider, upload or prompt error",
}

JOB_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    JOB_PROCESSING: frozenset({JOB_COMPLETED, JOB_FAILED}),
    JOB_COMPLETED: frozenset(),
    JOB_FAILED: frozenset(),
}

# A pending scene may fail directly when its prompt cannot be built
SCENE_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    SCENE_PENDING: frozenset({SCENE_PROCESSING, SCENE_FAILED}),
    SCENE_PROCESSING: frozenset({SCENE_COMPLETED, SCENE_FAILED}),
    SCENE_COMPLETED: frozenset(),
    SCENE_FAILED: frozenset(),
}


def is_terminal(status: str) -> bool:
    return status in (JOB_COMPLETED, JOB_FAILED, SCENE_COMPLETED, SCENE_FAILED)


def check_job_transition(current: str, target: str) -> None:
    """Raise InvalidTransition unless ``current -> target`` is allowed for a job."""
    if target not in JOB_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(f"Job cannot move from {current!r} to {target!r}")


def check_scene_transition(current: str, target: str) -> None:
    """Raise InvalidTransition unless ``current -> target`` is allowed for a scene."""
    if target not in SCENE_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(f"Scene cannot move from {current!r} to {target!r}")


def final_job_status(output_count: int) -> str:
    """Aggregate job status: any output at all counts as completed."""
    return JOB_COMPLETED if output_count > 0 else JOB_FAILED
