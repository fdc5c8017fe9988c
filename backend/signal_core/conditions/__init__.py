"""Rule-based signal evaluation (conditions, groups, rules, templates)."""

from signal_core.conditions.evaluator import (
    ConditionResult,
    GroupResult,
    evaluate_condition,
    evaluate_condition_group,
    evaluate_rule,
    evaluate_rules,
    evaluate_template,
    fold_results,
)

__all__ = [
    "ConditionResult",
    "GroupResult",
    "evaluate_condition",
    "evaluate_condition_group",
    "evaluate_rule",
    "evaluate_rules",
    "evaluate_template",
    "fold_results",
]
