"""Generation orchestrator: job/scene state machine and mode entry points."""

from ugcpipe.orchestrator.pipeline import Orchestrator, run_generation
from ugcpipe.orchestrator.state import (
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PROCESSING,
    SCENE_COMPLETED,
    SCENE_FAILED,
    SCENE_PENDING,
    SCENE_PROCESSING,
)

__all__ = [
    "Orchestrator",
    "run_generation",
    "JOB_COMPLETED",
    "JOB_FAILED",
    "JOB_PROCESSING",
    "SCENE_COMPLETED",
    "SCENE_FAILED",
    "SCENE_PENDING",
    "SCENE_PROCESSING",
]
