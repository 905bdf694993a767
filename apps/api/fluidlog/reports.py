"""Caregiver-facing text: handoff reports, confirmations and warnings."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

from .schemas import (
    FLUID_TYPE_LABELS,
    CheckTime,
    DaySummary,
    GagAction,
    InputAction,
    InputFluid,
    OutputAction,
    OutputFluid,
    PersistFailure,
    WeightAction,
    WellnessAction,
)
from .settings import TrackerSettings
from .summary import intake_percent, latest_wellness

RULE = "━" * 23

UNPARSEABLE_HINT = (
    "🤔 I couldn't understand that. Try something like: "
    '"120ml pediasure" or "pee 80ml" or "gag x2".'
)


def format_fluid_type(fluid_type: str) -> str:
    for enum in (InputFluid, OutputFluid):
        try:
            return FLUID_TYPE_LABELS[enum(fluid_type)]
        except ValueError:
            continue
    return fluid_type.replace("_", " ").title()


def format_ml(amount: Optional[float]) -> str:
    if amount is None:
        return ""
    if float(amount).is_integer():
        return f"{int(amount)}ml"
    return f"{amount:g}ml"


def format_time(ts: datetime, tz_name: str) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    local = ts.astimezone(ZoneInfo(tz_name))
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def progress_bar(percent: int) -> str:
    filled = min(10, max(0, int(percent / 10 + 0.5)))
    return "🟦" * filled + "⬜" * (10 - filled)


def _wellness_lines(summary: DaySummary) -> List[str]:
    lines: List[str] = []
    for period in (CheckTime.AFTERNOON, CheckTime.EVENING):
        check = latest_wellness(summary.wellness, period)
        if check is None:
            continue
        lines.append(f"❤️ WELLNESS ({period.value} check):")
        for label, score in (
            ("Appetite", check.appetite),
            ("Energy", check.energy),
            ("Mood", check.mood),
            ("Cyanosis", check.cyanosis),
        ):
            if score is not None:
                lines.append(f"  {label}: {score}/10")
    if not lines:
        lines.append("❤️ WELLNESS: No check logged yet")
    return lines


def build_report(
    summary: DaySummary, settings: TrackerSettings, now: Optional[datetime] = None
) -> str:
    """Render the nurse-handoff report for one fluid day.

    The output depends only on its arguments, so the same summary, settings and
    ``now`` always produce the same text.
    """

    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(ZoneInfo(settings.timezone))
    stamp = f"{local.strftime('%a')}, {local.strftime('%b')} {local.day} {format_time(moment, settings.timezone)}"
    percent = intake_percent(summary.total_intake, settings.daily_limit_ml)

    lines = [f"📊 {settings.child_name}'s Report ({summary.day_key}) {stamp}", RULE, ""]
    lines.append(
        f"💧 FLUID INTAKE: {format_ml(summary.total_intake)} / {settings.daily_limit_ml}ml ({percent}%)"
    )
    lines.append(f"  {progress_bar(percent)}")
    if summary.intake_by_type:
        for fluid_type, amount in summary.intake_by_type.items():
            lines.append(f"  {format_fluid_type(fluid_type)}: {format_ml(amount)}")
    else:
        lines.append("  No intake logged")

    lines.extend(["", "🚽 OUTPUTS:"])
    if summary.outputs:
        for entry in summary.outputs:
            amount = f" {format_ml(entry.amount_ml)}" if entry.amount_ml else ""
            lines.append(
                f"  {format_time(entry.timestamp, settings.timezone)}: "
                f"{format_fluid_type(entry.fluid_type)}{amount}"
            )
    else:
        lines.append("  No outputs logged")

    lines.extend(["", f"🤢 Gag episodes: {summary.gag_count}", ""])
    lines.extend(_wellness_lines(summary))
    lines.append(RULE)
    return "\n".join(lines)


def _describe(action: object) -> Optional[str]:
    if isinstance(action, InputAction):
        return f"{format_ml(action.amount_ml)} {format_fluid_type(action.fluid_type.value)}"
    if isinstance(action, OutputAction):
        amount = f" {format_ml(action.amount_ml)}" if action.amount_ml else ""
        return f"{format_fluid_type(action.fluid_type.value)}{amount} (output)"
    if isinstance(action, WellnessAction):
        return f"Wellness check ({action.check_time.value})"
    if isinstance(action, GagAction):
        return f"Gag ×{action.count}"
    if isinstance(action, WeightAction):
        return f"Weight {action.weight_kg:g}kg"
    return None


def build_confirmation(
    actions: Sequence[object],
    summary: DaySummary,
    settings: TrackerSettings,
    failures: Sequence[PersistFailure] = (),
) -> str:
    """Receipt of what was saved, with a line for each action that wasn't."""

    failed = {failure.index for failure in failures}
    described = [_describe(action) for action in actions]
    parts = [text for index, text in enumerate(described) if text and index not in failed]
    logged = " + ".join(parts) if parts else "entry"
    percent = intake_percent(summary.total_intake, settings.daily_limit_ml)
    if summary.total_output_ml > 0:
        out = format_ml(summary.total_output_ml)
    else:
        count = len(summary.outputs)
        out = f"{count} event{'' if count == 1 else 's'}"
    lines = [
        f"✅ Logged: {logged}",
        f"💧 In: {format_ml(summary.total_intake)}/{settings.daily_limit_ml}ml ({percent}%) · 🚽 Out: {out}",
    ]
    for index in sorted(failed):
        if 0 <= index < len(actions):
            what = described[index] or "entry"
            lines.append(f"❌ Couldn't save: {what}. Please log it again.")
    return "\n".join(lines)


def limit_warning(summary: DaySummary, settings: TrackerSettings) -> Optional[str]:
    limit = settings.daily_limit_ml
    if summary.total_intake <= limit:
        return None
    over = round(summary.total_intake - limit, 1)
    return (
        f"⚠️ Daily limit exceeded! {settings.child_name} is {format_ml(over)} "
        f"over the {limit}ml limit."
    )
