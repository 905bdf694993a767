"""Turn a caregiver message into validated log actions.

The completion service interprets the text generously; everything it returns
goes through ``sanitize_payload`` before anything can be persisted. Invalid
candidates are filtered out and reported in ``ParseResult.rejected``.
"""
from __future__ import annotations

import json
import logging
import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, List, Optional

from . import openai_client
from .schemas import (
    MAX_AMOUNT_ML,
    MAX_GAG_COUNT,
    MAX_WEIGHT_KG,
    CheckTime,
    GagAction,
    InputAction,
    InputFluid,
    OutputAction,
    OutputFluid,
    ParseResult,
    RejectedAction,
    WellnessAction,
    WeightAction,
)

logger = logging.getLogger(__name__)

LB_PER_KG = 2.205

_INPUT_TYPES = {member.value for member in InputFluid}
_OUTPUT_TYPES = {member.value for member in OutputFluid}
_CHECK_TIMES = {member.value for member in CheckTime}

_POUND_UNITS = {"lb", "lbs", "pound", "pounds"}
_KILO_UNITS = {"kg", "kgs", "kilo", "kilos", "kilogram", "kilograms"}
_POUND_TOKEN = re.compile(r"\d\s*(lbs?|pounds?)\b", re.IGNORECASE)
_KILO_TOKEN = re.compile(r"\d\s*(kgs?|kilos?|kilograms?)\b", re.IGNORECASE)

Completion = Callable[[str], str]


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # integer literal too large for a float
        return False


def _round_half_up(value: float, places: int) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _positive_amount(value: Any) -> Optional[float]:
    if _is_number(value) and value > 0:
        return _round_half_up(value, 1)
    return None


def _clamp_score(value: Any) -> Optional[int]:
    if not _is_number(value):
        return None
    return min(10, max(1, math.floor(value + 0.5)))


def _gag_count(value: Any) -> Optional[int]:
    """Rounded count, 1 when absent or non-positive, None when implausibly large."""

    if not _is_number(value) or value <= 0:
        return 1
    if value > MAX_GAG_COUNT:
        return None
    return max(1, math.floor(value + 0.5))


def _normalize_unit(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    unit = value.strip().lower().rstrip(".")
    if unit in _POUND_UNITS:
        return "lb"
    if unit in _KILO_UNITS:
        return "kg"
    return None


def unit_from_text(message: str) -> Optional[str]:
    """Detect a weight unit written next to a number in the caregiver's text."""

    has_pounds = bool(_POUND_TOKEN.search(message or ""))
    has_kilos = bool(_KILO_TOKEN.search(message or ""))
    if has_pounds and not has_kilos:
        return "lb"
    if has_kilos and not has_pounds:
        return "kg"
    return None


def _weight_kg(action: dict, message: str) -> Optional[float]:
    value = action.get("weight_value")
    if _is_number(value):
        unit = _normalize_unit(action.get("weight_unit")) or unit_from_text(message)
        kilograms = value / LB_PER_KG if unit == "lb" else value
    elif _is_number(action.get("weight_kg")):
        # Older response shape: the service already converted to kilograms.
        kilograms = action["weight_kg"]
    else:
        return None
    if kilograms <= 0:
        return None
    return kilograms


def sanitize_payload(payload: Any, message: str = "") -> ParseResult:
    """Validate a candidate response into typed actions.

    The result is unparseable whenever no action survives, whatever the
    service reported about itself.
    """

    if not isinstance(payload, dict) or not isinstance(payload.get("actions"), list):
        return ParseResult(
            actions=[],
            unparseable=True,
            raw_message=message,
            rejected=[RejectedAction(index=-1, reason="malformed response")],
        )

    actions: List[Any] = []
    rejected: List[RejectedAction] = []

    def reject(index: int, kind: Optional[str], reason: str) -> None:
        rejected.append(RejectedAction(index=index, kind=kind, reason=reason))

    for index, candidate in enumerate(payload["actions"]):
        if not isinstance(candidate, dict) or not isinstance(candidate.get("type"), str):
            reject(index, None, "missing action type")
            continue
        kind = candidate["type"]

        if kind in ("input", "output"):
            fluid_type = candidate.get("fluid_type")
            valid_types = _INPUT_TYPES if kind == "input" else _OUTPUT_TYPES
            if not isinstance(fluid_type, str) or fluid_type not in valid_types:
                reject(index, kind, f"unknown fluid type: {fluid_type!r}")
                continue
            raw_amount = candidate.get("amount_ml")
            if _is_number(raw_amount) and raw_amount > MAX_AMOUNT_ML:
                reject(index, kind, f"implausible amount for {fluid_type}: over {MAX_AMOUNT_ML}ml")
                continue
            amount = _positive_amount(raw_amount)
            if amount is None and fluid_type != OutputFluid.POOP.value:
                reject(index, kind, f"missing or non-positive amount for {fluid_type}")
                continue
            if kind == "input":
                actions.append(InputAction(fluid_type=fluid_type, amount_ml=amount))
            else:
                actions.append(OutputAction(fluid_type=fluid_type, amount_ml=amount))
        elif kind == "wellness":
            check_time = candidate.get("check_time")
            if not isinstance(check_time, str) or check_time not in _CHECK_TIMES:
                check_time = CheckTime.AFTERNOON
            actions.append(
                WellnessAction(
                    check_time=check_time,
                    appetite=_clamp_score(candidate.get("appetite")),
                    energy=_clamp_score(candidate.get("energy")),
                    mood=_clamp_score(candidate.get("mood")),
                    cyanosis=_clamp_score(candidate.get("cyanosis")),
                )
            )
        elif kind == "gag":
            count = _gag_count(candidate.get("count"))
            if count is None:
                reject(index, kind, f"implausible gag count: over {MAX_GAG_COUNT}")
                continue
            actions.append(GagAction(count=count))
        elif kind == "weight":
            weight = _weight_kg(candidate, message)
            if weight is None:
                reject(index, kind, "missing or non-positive weight")
                continue
            if weight > MAX_WEIGHT_KG:
                reject(index, kind, f"implausible weight: over {MAX_WEIGHT_KG}kg")
                continue
            actions.append(WeightAction(weight_kg=_round_half_up(weight, 2)))
        else:
            reject(index, kind, f"unknown action type: {kind!r}")

    offset = payload.get("date_offset")
    reported = payload.get("unparseable")
    return ParseResult(
        actions=actions,
        date_offset=-1 if _is_number(offset) and offset == -1 else 0,
        unparseable=not actions,
        raw_message=message,
        rejected=rejected,
        reported_unparseable=reported if isinstance(reported, bool) else None,
    )


def _decode(raw: str) -> Any:
    content = (raw or "").strip().strip("`").strip()
    if content.lower().startswith("json"):
        content = content[4:].strip()
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        logger.warning("completion response was not JSON", extra={"preview": content[:200]})
        return None


def parse_message(message: str, *, completion: Optional[Completion] = None) -> ParseResult:
    """Parse one caregiver message.

    ``CompletionServiceError`` from the service propagates to the caller; a
    response that cannot be read as the expected JSON becomes an unparseable
    result instead.
    """

    text = (message or "").strip()
    if not text:
        return ParseResult(
            unparseable=True,
            raw_message=message or "",
            rejected=[RejectedAction(index=-1, reason="empty message")],
        )

    complete = completion or openai_client.request_completion
    raw = complete(text)
    result = sanitize_payload(_decode(raw), text)
    if result.rejected:
        logger.warning(
            "dropped candidate actions",
            extra={
                "rejected": [item.model_dump() for item in result.rejected],
                "kept": len(result.actions),
            },
        )
    if result.reported_unparseable is False and result.unparseable:
        logger.info("service understood the message but nothing survived validation")
    return result
