"""Dry-run planning of a flow: validation, logic gating and skip propagation.

The planner does not build or submit transactions. It decides, step by step,
what a run would do with the chain state it can read right now.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from defi_flow.chain.protocols import ChainReader
from defi_flow.conditions.evaluator import ConditionEvaluator
from defi_flow.config.constants import ZERO_ADDRESS
from defi_flow.domain.assets import DEFAULT_REGISTRY, AssetRegistry
from defi_flow.domain.models import Edge, FlowGraph, Node, NodeKind
from defi_flow.errors import FlowError, step_label
from defi_flow.execution.validation import validate_step
from defi_flow.logging.correlation import correlation_context, step_context
from defi_flow.sequencing.reachability import mark_downstream
from defi_flow.sequencing.sequencer import ExecutionSequence
from defi_flow.utilities.logging_patterns import get_logger, log_operation, log_step_event

logger = get_logger(__name__, component="planner")


class StepAction(str, Enum):
    EXECUTE = "execute"
    SKIP = "skip"
    GATE = "gate"  # logic node; contributes no transaction
    DEFER = "defer"  # runs outside the atomic transaction


@dataclass(frozen=True)
class PlannedStep:
    rank: int
    node: Node
    action: StepAction
    condition_met: bool | None = None
    error: str | None = None

    @property
    def step(self) -> str:
        return step_label(self.rank)


@dataclass(frozen=True)
class RunPlan:
    steps: tuple[PlannedStep, ...] = ()
    skip_ranks: frozenset[int] = frozenset()
    excluded: tuple[str, ...] = ()
    correlation_id: str = ""
    errors: tuple[str, ...] = field(default_factory=tuple)

    def with_action(self, action: StepAction) -> tuple[PlannedStep, ...]:
        return tuple(step for step in self.steps if step.action is action)

    @property
    def all_skipped(self) -> bool:
        """True when nothing would reach the chain."""
        return not any(
            step.action in (StepAction.EXECUTE, StepAction.DEFER) for step in self.steps
        )


def _action_for(node: Node) -> StepAction:
    if node.kind is NodeKind.LOGIC:
        return StepAction.GATE
    if node.kind is NodeKind.BRIDGE:
        return StepAction.DEFER
    return StepAction.EXECUTE


async def plan_execution(
    sequence: ExecutionSequence,
    edges: FlowGraph | Iterable[Edge],
    reader: ChainReader,
    *,
    registry: AssetRegistry = DEFAULT_REGISTRY,
    sender: str = ZERO_ADDRESS,
    fail_closed: bool = False,
    validate: bool = True,
    correlation_id: str | None = None,
) -> RunPlan:
    """Walk ``sequence`` in rank order and decide what each step would do.

    Every step is validated first (unless ``validate`` is false). Logic nodes
    whose rank is still live are evaluated against ``reader``; a condition
    that does not hold marks everything downstream of it as skipped.

    With ``fail_closed`` an evaluation failure is treated like an unmet
    condition and recorded on the step. Otherwise it is raised with the step
    label attached.
    """
    edges = tuple(edges.edges if isinstance(edges, FlowGraph) else edges)
    evaluator = ConditionEvaluator(reader, registry=registry, sender=sender)

    with correlation_context(correlation_id, operation="plan") as run_id:
        if sequence.excluded:
            logger.warning(
                f"{len(sequence.excluded)} step(s) left out by a dependency cycle",
                excluded=list(sequence.excluded),
            )
        if validate:
            with log_operation("validate_sequence", logger, steps=len(sequence)):
                for rank, node in sequence.ranked():
                    validate_step(node, rank)

        skip: set[int] = set()
        decisions: dict[int, tuple[bool | None, str | None]] = {}
        errors: list[str] = []

        for rank, node in sequence.ranked():
            if node.kind is not NodeKind.LOGIC or rank in skip:
                continue
            step = step_label(rank)
            with step_context(step, node.id):
                try:
                    condition_met = await evaluator.evaluate(node, step)
                    error = None
                except FlowError as exc:
                    if not fail_closed:
                        raise
                    condition_met, error = False, exc.message
                except ValueError as exc:
                    # Malformed ids or targets rejected while encoding the call
                    wrapped = FlowError(
                        str(exc), error_code="INVALID_ARGUMENTS", original_error=exc, step=step
                    )
                    if not fail_closed:
                        raise wrapped from exc
                    condition_met, error = False, wrapped.message

                decisions[rank] = (condition_met, error)
                if error:
                    errors.append(error)
                    logger.warning(
                        f"{step}: Condition could not be evaluated, skipping downstream steps",
                        error=error,
                    )

                if not condition_met:
                    newly_skipped = mark_downstream(node.id, rank, sequence, edges)
                    skip.update(newly_skipped)
                    log_step_event(
                        "Condition not met, skipping downstream steps",
                        step,
                        logger,
                        skipped=sorted(newly_skipped),
                    )

        planned: list[PlannedStep] = []
        for rank, node in sequence.ranked():
            condition_met, error = decisions.get(rank, (None, None))
            action = StepAction.SKIP if rank in skip else _action_for(node)
            planned.append(PlannedStep(rank, node, action, condition_met, error))

        plan = RunPlan(
            steps=tuple(planned),
            skip_ranks=frozenset(skip),
            excluded=sequence.excluded,
            correlation_id=run_id,
            errors=tuple(errors),
        )
        if plan.all_skipped and sequence:
            logger.warning("All steps were skipped by logic conditions")
        return plan


__all__ = ["PlannedStep", "RunPlan", "StepAction", "plan_execution"]
