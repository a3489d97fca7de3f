"""Pre-flight validation and dry-run planning of a sequenced flow."""

from .planner import PlannedStep, RunPlan, StepAction, plan_execution
from .validation import validate_sequence, validate_step

__all__ = [
    "PlannedStep",
    "RunPlan",
    "StepAction",
    "plan_execution",
    "validate_sequence",
    "validate_step",
]
