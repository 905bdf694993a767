from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fluidlog.reports import (
    build_confirmation,
    build_report,
    format_fluid_type,
    format_ml,
    format_time,
    limit_warning,
    progress_bar,
)
from fluidlog.schemas import (
    CheckTime,
    DaySummary,
    EntryType,
    FluidLogEntry,
    GagAction,
    GagEvent,
    InputAction,
    LogSource,
    OutputAction,
    PersistFailure,
    WellnessCheck,
)
from fluidlog.settings import TrackerSettings

NOON = datetime(2025, 6, 3, 16, 0, tzinfo=timezone.utc)


def entry(entry_type: EntryType, fluid_type: str, amount, at: datetime = NOON) -> FluidLogEntry:
    return FluidLogEntry(
        timestamp=at,
        day_key="2025-06-03",
        entry_type=entry_type,
        fluid_type=fluid_type,
        amount_ml=amount,
        source=LogSource.CHAT,
    )


def sample_summary() -> DaySummary:
    return DaySummary(
        day_key="2025-06-03",
        total_intake=220,
        intake_by_type={"pediasure": 120, "water": 100},
        inputs=[entry(EntryType.INPUT, "pediasure", 120), entry(EntryType.INPUT, "water", 100)],
        outputs=[
            entry(EntryType.OUTPUT, "urine", 85, NOON - timedelta(hours=3)),
            entry(EntryType.OUTPUT, "poop", None, NOON),
        ],
        wellness=[
            WellnessCheck(id=1, timestamp=NOON, day_key="2025-06-03", check_time=CheckTime.AFTERNOON, mood=4),
            WellnessCheck(id=2, timestamp=NOON, day_key="2025-06-03", check_time=CheckTime.AFTERNOON, mood=7, energy=5),
        ],
        gags=[GagEvent(id=1, timestamp=NOON, day_key="2025-06-03")],
    )


def test_format_helpers() -> None:
    assert format_fluid_type("vitamin_water") == "Vitamin Water"
    assert format_fluid_type("pediasure") == "PediaSure"
    assert format_fluid_type("mystery_drink") == "Mystery Drink"
    assert format_ml(120.0) == "120ml"
    assert format_ml(12.5) == "12.5ml"
    assert format_time(NOON, "America/New_York") == "12:00 PM"
    assert format_time(NOON - timedelta(hours=3, minutes=55), "America/New_York") == "8:05 AM"


def test_progress_bar_is_clamped() -> None:
    assert progress_bar(0) == "⬜" * 10
    assert progress_bar(55) == "🟦" * 6 + "⬜" * 4
    assert progress_bar(140) == "🟦" * 10


def test_report_contents() -> None:
    report = build_report(sample_summary(), TrackerSettings(), now=NOON)
    lines = report.splitlines()

    assert lines[0] == "📊 Elina's Report (2025-06-03) Tue, Jun 3 12:00 PM"
    assert "💧 FLUID INTAKE: 220ml / 1200ml (18%)" in lines
    assert "  PediaSure: 120ml" in lines
    assert "  Water: 100ml" in lines
    assert "  9:00 AM: Urine 85ml" in lines
    assert "  12:00 PM: Poop" in lines
    assert "🤢 Gag episodes: 1" in lines
    assert "❤️ WELLNESS (5pm check):" in lines
    assert "  Mood: 7/10" in lines
    assert "  Mood: 4/10" not in lines
    assert "  Appetite" not in report


def test_report_is_deterministic() -> None:
    summary = sample_summary()
    assert build_report(summary, TrackerSettings(), now=NOON) == build_report(
        summary, TrackerSettings(), now=NOON
    )


def test_empty_report() -> None:
    report = build_report(DaySummary(day_key="2025-06-03"), TrackerSettings(child_name="Ari"), now=NOON)
    assert "Ari's Report" in report
    assert "  No intake logged" in report
    assert "  No outputs logged" in report
    assert "❤️ WELLNESS: No check logged yet" in report


def test_confirmation() -> None:
    text = build_confirmation(
        [InputAction(fluid_type="pediasure", amount_ml=120), OutputAction(fluid_type="poop"), GagAction(count=2)],
        sample_summary(),
        TrackerSettings(),
    )
    assert text == (
        "✅ Logged: 120ml PediaSure + Poop (output) + Gag ×2\n"
        "💧 In: 220ml/1200ml (18%) · 🚽 Out: 85ml"
    )


def test_confirmation_lists_unsaved_actions_separately() -> None:
    text = build_confirmation(
        [InputAction(fluid_type="water", amount_ml=100), InputAction(fluid_type="juice", amount_ml=50)],
        DaySummary(day_key="2025-06-03", total_intake=100),
        TrackerSettings(),
        failures=[PersistFailure(index=1, kind="input", reason="disk I/O error")],
    )
    assert text == (
        "✅ Logged: 100ml Water\n"
        "💧 In: 100ml/1200ml (8%) · 🚽 Out: 0 events\n"
        "❌ Couldn't save: 50ml Juice. Please log it again."
    )
    assert "disk I/O" not in text


def test_limit_warning_reports_excess_over_current_limit() -> None:
    summary = DaySummary(day_key="2025-06-03", total_intake=1250)
    assert limit_warning(summary, TrackerSettings()) == (
        "⚠️ Daily limit exceeded! Elina is 50ml over the 1200ml limit."
    )
    assert limit_warning(summary, TrackerSettings(daily_limit_ml=1300)) is None
    assert limit_warning(DaySummary(day_key="2025-06-03", total_intake=1200), TrackerSettings()) is None
