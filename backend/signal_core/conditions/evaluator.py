"""Condition, group, rule and template evaluation against a snapshot.

Pure functions: no I/O and no shared state. Groups referenced by a rule
are passed in by the caller, which owns loading them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from signal_core.errors import NotFoundError
from signal_core.models.conditions import (
    ConditionOperator,
    LogicalOperator,
    SignalCondition,
    SignalConditionGroup,
    SignalRule,
    SignalTemplate,
)
from signal_core.models.signal import RuleSignal, SignalType
from signal_core.models.snapshot import IndicatorSnapshot

logger = logging.getLogger(__name__)

EQ_TOLERANCE = 0.001
CROSS_BAND = 0.05
TEMPLATE_MIN_CONFIDENCE = 0.6
TEMPLATE_STRONG_CONFIDENCE = 0.8

BUY_BIASED_CATEGORIES = frozenset({"momentum", "breakout", "trend"})


@dataclass(frozen=True)
class ConditionResult:
    condition: SignalCondition
    passed: bool
    score: int
    actual_value: float
    target_value: float
    message: str = ""


@dataclass
class GroupResult:
    group: SignalConditionGroup
    passed: bool
    total_score: int = 0
    max_score: int = 0
    results: list[ConditionResult] = field(default_factory=list)
    failed_required: bool = False

    @property
    def confidence(self) -> float:
        return self.total_score / self.max_score if self.max_score > 0 else 0.0


def _fmt(value: float) -> str:
    return f"{value:.0f}" if value == int(value) else f"{value:.2f}"


def _condition_message(condition: SignalCondition, actual: float, target: float) -> str:
    indicator = condition.indicator.value
    op = condition.operator
    if op in (ConditionOperator.GT, ConditionOperator.GTE):
        return f"{indicator} > {_fmt(target)} ({_fmt(actual)})"
    if op in (ConditionOperator.LT, ConditionOperator.LTE):
        return f"{indicator} < {_fmt(target)} ({_fmt(actual)})"
    if op == ConditionOperator.BETWEEN:
        return f"{indicator} in range ({_fmt(actual)})"
    compare = condition.compare_indicator.value if condition.compare_indicator else ""
    if op == ConditionOperator.CROSS_ABOVE:
        return f"{indicator} crossed above {compare}"
    if op == ConditionOperator.CROSS_BELOW:
        return f"{indicator} crossed below {compare}"
    return f"{indicator} {op.value} {_fmt(target)}"


def _compare(condition: SignalCondition, actual: float, target: float, compare: float) -> bool:
    op = condition.operator
    if op == ConditionOperator.EQ:
        return abs(actual - target) < EQ_TOLERANCE
    if op == ConditionOperator.NEQ:
        return abs(actual - target) >= EQ_TOLERANCE
    if op == ConditionOperator.GT:
        return actual > target
    if op == ConditionOperator.GTE:
        return actual >= target
    if op == ConditionOperator.LT:
        return actual < target
    if op == ConditionOperator.LTE:
        return actual <= target
    if op == ConditionOperator.BETWEEN:
        if condition.compare_indicator is not None:
            # value/value2 bound the ratio actual / compare
            if compare == 0:
                return False
            ratio = actual / compare
            return condition.value <= ratio <= condition.value2
        return condition.value <= actual <= condition.value2
    # Crossing approximated as "just past the compare value, within 5% of it"
    if op == ConditionOperator.CROSS_ABOVE:
        return actual > compare and actual - compare < compare * CROSS_BAND
    if op == ConditionOperator.CROSS_BELOW:
        return actual < compare and compare - actual < compare * CROSS_BAND
    logger.warning(f"Unsupported operator {op!r}; condition treated as failed")
    return False


def evaluate_condition(condition: SignalCondition, snapshot: IndicatorSnapshot) -> ConditionResult:
    """Evaluate one comparison.

    When a compare indicator is set its value replaces ``value`` as the
    comparison target (except for ``between``, which bounds the ratio).
    """
    actual = snapshot.value_of(condition.indicator)
    target = condition.value
    compare = 0.0
    if condition.compare_indicator is not None:
        compare = snapshot.value_of(condition.compare_indicator)
        target = compare

    passed = _compare(condition, actual, target, compare)
    return ConditionResult(
        condition=condition,
        passed=passed,
        score=condition.weight if passed else 0,
        actual_value=actual,
        target_value=target,
        message=_condition_message(condition, actual, target) if passed else "",
    )


def fold_results(pairs: Iterable[tuple[bool, LogicalOperator]]) -> bool:
    """Left-fold (result, operator) pairs.

    The first pair seeds the fold and its operator is ignored; each later
    pair joins onto the running value with its own operator. No precedence.
    An operator that is neither AND nor OR leaves the running value as is.
    """
    acc: bool | None = None
    for passed, operator in pairs:
        if acc is None:
            acc = passed
        elif operator == LogicalOperator.OR:
            acc = acc or passed
        elif operator == LogicalOperator.AND:
            acc = acc and passed
    return True if acc is None else acc


def evaluate_condition_group(
    group: SignalConditionGroup, snapshot: IndicatorSnapshot
) -> GroupResult:
    """Evaluate a group in ascending order_index.

    Passes only if no required condition failed and the sequential fold
    of all results is true. An empty group passes with a zero score.
    """
    result = GroupResult(group=group, passed=True)
    for condition in group.ordered_conditions():
        cond_result = evaluate_condition(condition, snapshot)
        result.results.append(cond_result)
        result.max_score += condition.weight
        result.total_score += cond_result.score
        if condition.is_required and not cond_result.passed:
            result.failed_required = True

    folded = fold_results((r.passed, r.condition.logical_operator) for r in result.results)
    result.passed = folded and not result.failed_required
    return result


def _score_percent(total: int, maximum: int) -> int:
    return total * 100 // maximum if maximum > 0 else 0


def _target_and_stop(
    signal_type: SignalType, price: float, target_percent: float, stop_percent: float
) -> tuple[float | None, float | None]:
    if signal_type.is_buy_like:
        return price * (1 + target_percent / 100), price * (1 - stop_percent / 100)
    if signal_type.is_sell_like:
        return price * (1 - target_percent / 100), price * (1 + stop_percent / 100)
    return None, None


def evaluate_rule(
    rule: SignalRule,
    groups: Mapping[int, SignalConditionGroup],
    snapshot: IndicatorSnapshot,
) -> RuleSignal | None:
    """Evaluate a rule's condition groups and decide whether it fires.

    Fires when every group flagged required passed and the aggregate
    score percent (integer) reaches ``rule.min_score``. Inactive rules
    never fire.

    Raises:
        NotFoundError: a referenced group is missing from ``groups``
    """
    if not rule.is_active:
        logger.debug(f"Rule {rule.id} is inactive, skipping {snapshot.symbol}")
        return None

    total_score = 0
    max_score = 0
    required_passed = True
    reasons: list[str] = []
    for config in rule.condition_groups:
        group = groups.get(config.group_id)
        if group is None:
            raise NotFoundError("condition group", config.group_id)
        group_result = evaluate_condition_group(group, snapshot)
        total_score += group_result.total_score
        max_score += group_result.max_score
        if config.required and not group_result.passed:
            required_passed = False
        reasons.extend(r.message for r in group_result.results if r.passed and r.message)

    if not required_passed or _score_percent(total_score, max_score) < rule.min_score:
        return None

    target, stop = _target_and_stop(
        rule.signal_type,
        snapshot.current_price,
        rule.target_percent,
        rule.stop_loss_percent,
    )
    return RuleSignal(
        stock_code=snapshot.symbol,
        signal_type=rule.signal_type,
        rule_id=rule.id,
        source_name=rule.name,
        score=total_score,
        max_score=max_score,
        confidence=total_score / max_score if max_score > 0 else 0.0,
        current_price=snapshot.current_price,
        target_price=target,
        stop_loss=stop,
        reasons=reasons,
        indicators_snapshot=snapshot.key_indicators(),
    )


def evaluate_rules(
    rules: Iterable[SignalRule],
    groups: Mapping[int, SignalConditionGroup],
    snapshot: IndicatorSnapshot,
) -> list[RuleSignal]:
    """Evaluate all active rules by descending priority, collecting the ones that fire.

    A rule referencing a missing group is logged and skipped.
    """
    ordered = sorted((r for r in rules if r.is_active), key=lambda r: r.priority, reverse=True)
    signals: list[RuleSignal] = []
    for rule in ordered:
        try:
            signal = evaluate_rule(rule, groups, snapshot)
        except NotFoundError as e:
            logger.warning(f"Rule {rule.id} skipped for {snapshot.symbol}: {e}")
            continue
        if signal is not None:
            signals.append(signal)
    return signals


def evaluate_template(template: SignalTemplate, snapshot: IndicatorSnapshot) -> RuleSignal | None:
    """Evaluate a template's flat condition list.

    Fires when all required conditions pass and confidence >= 0.6. The
    signal type and target/stop come from the template category.
    """
    total_score = 0
    max_score = 0
    required_passed = True
    reasons: list[str] = []
    for condition in template.conditions:
        result = evaluate_condition(condition, snapshot)
        max_score += condition.weight
        if result.passed:
            total_score += result.score
            if result.message:
                reasons.append(result.message)
        elif condition.is_required:
            required_passed = False

    confidence = total_score / max_score if max_score > 0 else 0.0
    if not required_passed or confidence < TEMPLATE_MIN_CONFIDENCE:
        return None

    price = snapshot.current_price
    target: float | None = None
    stop: float | None = None
    category = template.category.lower()
    if category in BUY_BIASED_CATEGORIES:
        if confidence >= TEMPLATE_STRONG_CONFIDENCE:
            signal_type = SignalType.STRONG_BUY
            target, stop = price * 1.15, price * 0.95
        else:
            signal_type = SignalType.BUY
            target, stop = price * 1.10, price * 0.95
    elif category == "reversal":
        if snapshot.rsi < 40:
            signal_type = SignalType.BUY
            target, stop = snapshot.ma50, price * 0.93
        else:
            signal_type = SignalType.SELL
            target, stop = snapshot.ma50, price * 1.07
    else:
        signal_type = SignalType.ALERT

    return RuleSignal(
        stock_code=snapshot.symbol,
        signal_type=signal_type,
        template_id=template.id,
        source_name=template.name,
        score=total_score,
        max_score=max_score,
        confidence=confidence,
        current_price=price,
        target_price=target,
        stop_loss=stop,
        reasons=reasons,
        indicators_snapshot=snapshot.key_indicators(),
    )
