"""Logic gate evaluation."""

from .arguments import parse_contract_arguments, parse_json_array
from .evaluator import (
    ConditionEvaluator,
    decode_u64_le,
    evaluate_balance_condition,
    evaluate_contract_condition,
)

__all__ = [
    "ConditionEvaluator",
    "decode_u64_le",
    "evaluate_balance_condition",
    "evaluate_contract_condition",
    "parse_contract_arguments",
    "parse_json_array",
]
