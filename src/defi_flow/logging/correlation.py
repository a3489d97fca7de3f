"""Correlation ID management for tracking a flow run across log records."""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

# Context variable to store the current correlation ID
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

# Context variable to store domain-specific context
domain_context_var: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "domain_context", default={}
)


def get_correlation_id() -> str:
    """Get the current correlation ID from the context."""
    return correlation_id_var.get("")


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID in the current context."""
    correlation_id_var.set(correlation_id)


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def get_domain_context() -> dict[str, Any]:
    """Get the current domain context from the context."""
    return domain_context_var.get({})


def set_domain_context(context: dict[str, Any]) -> None:
    """Replace the domain context in the current context."""
    domain_context_var.set(context)


@contextmanager
def correlation_context(correlation_id: str | None = None, **domain_fields: Any) -> Iterator[str]:
    """Context manager for setting correlation ID and domain fields.

    Args:
        correlation_id: Optional correlation ID. If None, a new one will be generated.
        **domain_fields: Domain-specific fields to include in the context.

    Yields:
        The active correlation ID.
    """
    active_id = correlation_id or generate_correlation_id()
    token_correlation = correlation_id_var.set(active_id)

    updated_domain = {**get_domain_context(), **domain_fields}
    token_domain = domain_context_var.set(updated_domain)

    try:
        yield active_id
    finally:
        correlation_id_var.reset(token_correlation)
        domain_context_var.reset(token_domain)


@contextmanager
def step_context(step: str, node_id: str, **additional_fields: Any) -> Iterator[None]:
    """Scope log records to a single step of a flow run.

    Unlike ``correlation_context`` the correlation ID is left untouched, so the
    step fields nest inside the surrounding run.
    """
    fields = {**get_domain_context(), "step": step, "node_id": node_id, **additional_fields}
    token = domain_context_var.set(fields)
    try:
        yield
    finally:
        domain_context_var.reset(token)


def get_log_context() -> dict[str, Any]:
    """Get the complete log context including correlation ID and domain fields.

    Returns:
        Dictionary with correlation_id and domain fields
    """
    context: dict[str, Any] = {}

    correlation_id = get_correlation_id()
    if correlation_id:
        context["correlation_id"] = correlation_id

    domain_context = get_domain_context()
    if domain_context:
        context.update(domain_context)

    return context


__all__ = [
    "correlation_context",
    "generate_correlation_id",
    "get_correlation_id",
    "get_domain_context",
    "get_log_context",
    "set_correlation_id",
    "set_domain_context",
    "step_context",
]
