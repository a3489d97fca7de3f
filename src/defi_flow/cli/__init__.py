"""Click-based CLI entry point for the ``defi_flow`` package."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click
from dotenv import load_dotenv
from pydantic import ValidationError

from defi_flow.chain.protocols import ChainReader
from defi_flow.chain.sui_rpc import SuiRpcReader
from defi_flow.domain.models import FlowGraph, Node
from defi_flow.errors import ConfigurationError, FlowError
from defi_flow.execution.planner import RunPlan, StepAction, plan_execution
from defi_flow.execution.validation import validate_sequence
from defi_flow.logging import configure_logging
from defi_flow.persistence.flow_file import load_flow
from defi_flow.sequencing.sequencer import ExecutionSequence, compute_sequence
from defi_flow.settings import Settings, get_settings
from defi_flow.simulation.balances import TokenBalance, project_balances
from defi_flow.utilities.logging_patterns import get_logger
from defi_flow.utilities.parsing import parse_decimal

from .response import CliErrorCode, CliResponse, format_response

logger = get_logger(__name__, component="cli")

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

F = TypeVar("F", bound=Callable[..., Any])


def _json_option(func: F) -> F:
    return click.option(
        "--json",
        "as_json",
        is_flag=True,
        help="Print a machine-readable JSON envelope instead of text.",
    )(func)


_flow_argument = click.argument(
    "flow_path",
    metavar="FLOW",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
)


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Inspect, validate and dry-run composed DeFi flows.",
)
@click.option("--log-level", help="Override the configured log level.")
@click.pass_context
def app(ctx: click.Context, log_level: str | None) -> None:
    """CLI root group."""
    # Host-provided values win; .env only fills gaps
    load_dotenv()
    settings = _resolve_settings()
    configure_logging(
        (log_level or settings.log_level).upper(),
        log_dir=settings.log_dir,
        json_logs=settings.json_logs,
    )
    ctx.obj = settings


def _resolve_settings() -> Settings:
    """Allow dependency injection from tests without global mutation."""
    try:
        return get_settings()
    except ValidationError as exc:
        raise click.ClickException(str(ConfigurationError(f"Invalid settings: {exc}"))) from exc


def _build_reader(url: str, timeout: float) -> ChainReader:
    return SuiRpcReader(url, timeout=timeout)


def _emit(response: CliResponse, as_json: bool) -> None:
    output = format_response(response, "json" if as_json else "text")
    click.echo(output, err=not response.success and not as_json)
    if response.exit_code:
        click.get_current_context().exit(response.exit_code)


def _describe(node: Node) -> str:
    return f"{node.label} [{node.kind.value}] ({node.id})"


def _sequence_payload(name: str, sequence: ExecutionSequence) -> dict[str, Any]:
    return {
        "name": name,
        "steps": [
            {"rank": rank, "id": node.id, "kind": node.kind.value, "label": node.label}
            for rank, node in sequence.ranked()
        ],
        "excluded": list(sequence.excluded),
    }


def _sequence_warnings(graph: FlowGraph, sequence: ExecutionSequence) -> list[str]:
    warnings = []
    if not graph.has_wallet():
        warnings.append("Flow has no wallet node; nothing can be sequenced")
    if sequence.excluded:
        warnings.append(
            "Steps left out because of a dependency cycle: " + ", ".join(sequence.excluded)
        )
    return warnings


@app.command("sequence")
@_flow_argument
@click.option(
    "--strict/--lenient",
    default=None,
    help="Fail on dependency cycles instead of leaving the affected steps out.",
)
@_json_option
@click.pass_obj
def sequence_command(
    settings: Settings, flow_path: Path, strict: bool | None, as_json: bool
) -> None:
    """Print the execution order of the steps in FLOW."""
    try:
        name, graph = load_flow(flow_path)
        strict = settings.strict_cycles if strict is None else strict
        sequence = compute_sequence(graph, strict=strict)
    except FlowError as exc:
        _emit(CliResponse.from_error("sequence", exc), as_json)
        return

    warnings = _sequence_warnings(graph, sequence)
    if as_json:
        _emit(
            CliResponse.success_response("sequence", _sequence_payload(name, sequence), warnings),
            as_json,
        )
        return

    click.echo(f"{name}: {len(sequence)} step(s)")
    for rank, node in sequence.ranked():
        click.echo(f"  Step {rank}: {_describe(node)}")
    for warning in warnings:
        click.echo(f"Warning: {warning}", err=True)


def _parse_balance(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> list[TokenBalance]:
    balances = []
    for value in values:
        symbol, sep, amount = value.partition("=")
        if not sep or not symbol.strip() or parse_decimal(amount) is None:
            raise click.BadParameter(f"expected SYMBOL=AMOUNT, got {value!r}", ctx, param)
        balances.append(TokenBalance(symbol.strip(), str(parse_decimal(amount))))
    return balances


@app.command("balances")
@_flow_argument
@click.option("--node", "node_id", required=True, help="Step whose incoming balances to project.")
@click.option(
    "--balance",
    "base_balances",
    multiple=True,
    metavar="SYMBOL=AMOUNT",
    callback=_parse_balance,
    help="Wallet balance; repeat for each asset.",
)
@_json_option
def balances_command(
    flow_path: Path, node_id: str, base_balances: list[TokenBalance], as_json: bool
) -> None:
    """Project the balances available to a step after everything before it."""
    try:
        _, graph = load_flow(flow_path)
    except FlowError as exc:
        _emit(CliResponse.from_error("balances", exc), as_json)
        return

    if graph.node(node_id) is None:
        _emit(
            CliResponse.error_response(
                "balances", CliErrorCode.NODE_NOT_FOUND, f"No node with id {node_id!r} in flow"
            ),
            as_json,
        )
        return

    projected = project_balances(graph, None, node_id, base_balances)
    if as_json:
        data = {"node": node_id, "balances": {t.symbol: t.balance for t in projected}}
        _emit(CliResponse.success_response("balances", data), as_json)
        return

    for token in projected:
        click.echo(f"{token.symbol}: {token.balance}")


@app.command("validate")
@_flow_argument
@_json_option
def validate_command(flow_path: Path, as_json: bool) -> None:
    """Check that every step in FLOW has the fields it needs."""
    try:
        name, graph = load_flow(flow_path)
        sequence = compute_sequence(graph)
        validate_sequence(sequence, collect=True)
    except FlowError as exc:
        _emit(CliResponse.from_error("validate", exc), as_json)
        return

    warnings = _sequence_warnings(graph, sequence)
    message = f"{name}: {len(sequence)} step(s) valid"
    if as_json:
        data = {"name": name, "steps": len(sequence), "valid": True}
        _emit(CliResponse.success_response("validate", data, warnings), as_json)
        return
    click.echo(message)
    for warning in warnings:
        click.echo(f"Warning: {warning}", err=True)


def _plan_payload(name: str, plan: RunPlan) -> dict[str, Any]:
    return {
        "name": name,
        "correlation_id": plan.correlation_id,
        "all_skipped": plan.all_skipped,
        "skip_ranks": sorted(plan.skip_ranks),
        "excluded": list(plan.excluded),
        "steps": [
            {
                "rank": step.rank,
                "id": step.node.id,
                "kind": step.node.kind.value,
                "action": step.action.value,
                "condition_met": step.condition_met,
                "error": step.error,
            }
            for step in plan.steps
        ],
    }


async def _plan(
    graph: FlowGraph, settings: Settings, rpc_url: str, fail_closed: bool
) -> RunPlan:
    sequence = compute_sequence(graph, strict=settings.strict_cycles)
    reader = _build_reader(rpc_url, settings.http_timeout_seconds)
    if isinstance(reader, SuiRpcReader):
        async with reader:
            return await plan_execution(
                sequence, graph, reader, sender=settings.inspect_sender, fail_closed=fail_closed
            )
    return await plan_execution(
        sequence, graph, reader, sender=settings.inspect_sender, fail_closed=fail_closed
    )


@app.command("plan")
@_flow_argument
@click.option("--rpc-url", help="JSON-RPC endpoint; defaults to the configured one.")
@click.option(
    "--fail-closed",
    is_flag=True,
    help="Treat a logic gate that cannot be evaluated as not met instead of aborting.",
)
@_json_option
@click.pass_obj
def plan_command(
    settings: Settings, flow_path: Path, rpc_url: str | None, fail_closed: bool, as_json: bool
) -> None:
    """Evaluate logic gates against the chain and show which steps would run."""
    try:
        name, graph = load_flow(flow_path)
        plan = asyncio.run(_plan(graph, settings, rpc_url or settings.rpc_url, fail_closed))
    except FlowError as exc:
        logger.error(f"Planning failed: {exc.message}", error_code=exc.error_code)
        _emit(CliResponse.from_error("plan", exc), as_json)
        return

    warnings = []
    if plan.excluded:
        warnings.append(f"{len(plan.excluded)} step(s) left out by a dependency cycle")
    if plan.all_skipped and plan.steps:
        warnings.append("No step would reach the chain")
    if as_json:
        _emit(CliResponse.success_response("plan", _plan_payload(name, plan), warnings), as_json)
        return

    click.echo(f"{name}: plan {plan.correlation_id}")
    for step in plan.steps:
        line = f"  {step.step}: {step.action.value:<7} {_describe(step.node)}"
        if step.action is StepAction.GATE and step.condition_met is not None:
            line += " condition met" if step.condition_met else " condition NOT met"
        if step.error:
            line += f" ({step.error})"
        click.echo(line)
    for warning in warnings:
        click.echo(f"Warning: {warning}", err=True)


def main() -> None:
    app(prog_name="defi-flow")


__all__ = ["app", "main"]
