"""Offline balance projection over an ordered flow."""

from .balances import TokenBalance, collect_predecessors, project_balances, simulate_effects

__all__ = ["TokenBalance", "collect_predecessors", "project_balances", "simulate_effects"]
