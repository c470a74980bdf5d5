"""Rich renderables for the terminal front end."""

from __future__ import annotations

from typing import Optional

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .timer.models import LONG_BREAK_INTERVAL, Mood, Phase, SessionHistoryEntry, TimerState, WeeklyStats
from .timer.stats import week_totals

PHASE_COPY = {
    Phase.FOCUS: {
        "label": "Focus Sprint",
        "style": "bold magenta",
        "blurb": "Write code, ship vibes. No context switching, no Slack doomscrolling.",
    },
    Phase.SHORT_BREAK: {
        "label": "Short Break",
        "style": "bold yellow",
        "blurb": "Five minutes to stretch, sip, or roast latest tech drama.",
    },
    Phase.LONG_BREAK: {
        "label": "Long Break",
        "style": "bold yellow",
        "blurb": "Fifteen to reset your brain and pretend you touch grass.",
    },
}

MOOD_DESCRIPTIONS = {
    Mood.COOL: "Confident Roast",
    Mood.SLEEPY: "Sleepy Debugger",
    Mood.ANGRY: "Spicy Sprint",
    Mood.FOCUSED: "Laser Focus",
    Mood.LOVING: "Warm Fuzzies",
}

KEY_HELP = "[p] pause/resume  [b] brew  [a] apply  [z] snooze  [m] mood  [r] reset  [q] quit"
GATE_HELP = "[g] start long break (recommended)  [s] skip (not recommended)"

LEVEL_STYLES = {
    "ERROR": "bold red",
    "WARNING": "yellow",
    "INFO": "green",
    "DEBUG": "dim",
}


def format_clock(seconds: int) -> str:
    minutes, secs = divmod(max(0, seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


def format_minutes(seconds: float) -> str:
    """Minutes with one decimal, dropping a trailing ``.0``."""
    text = f"{seconds / 60:.1f}"
    return text[:-2] if text.endswith(".0") else text


def cycle_index(state: TimerState) -> int:
    """1-based position within the four-sprint cycle."""
    if state.show_break_gate:
        return LONG_BREAK_INTERVAL
    if state.phase is Phase.FOCUS:
        return state.cycle_streak % LONG_BREAK_INTERVAL + 1
    return state.cycle_streak or 1


def mood_label(mood: Optional[Mood]) -> str:
    if mood is None:
        return "Unlogged"
    return MOOD_DESCRIPTIONS.get(mood, "Logged")


def suggestion_preview(state: TimerState) -> str:
    if state.break_suggestion:
        return state.break_suggestion
    if state.queued_suggestion:
        return state.queued_suggestion
    if state.auto_prompt_visible:
        return "Suggestion brewing…"
    return "No suggestion yet"


def render_dashboard(state: TimerState, logs: Optional[list[dict]] = None) -> Panel:
    copy = PHASE_COPY[state.phase]

    header = Text()
    header.append(copy["label"], style=copy["style"])
    header.append(f"  ·  cycle {cycle_index(state)}/{LONG_BREAK_INTERVAL}", style="dim")
    if not state.is_running and not state.show_break_gate:
        header.append("  ·  paused", style="dim")

    clock = Text(format_clock(state.seconds_remaining), style="bold white", justify="center")

    chips = Table.grid(padding=(0, 3))
    chips.add_row(
        f"{state.latest_mood.value if state.latest_mood else '☕'} {mood_label(state.latest_mood)}",
        f"Sprints: {state.completed_focus_sessions}",
        f"Focus: {format_minutes(state.total_focus_seconds)}m",
        f"Break: {format_minutes(state.total_break_seconds)}m",
        f"Auto-brew: {'on' if state.auto_brew_enabled else 'off'}",
    )

    suggestion = Text(suggestion_preview(state), style="italic cyan")
    status_lines = []
    if state.is_generating_suggestion:
        status_lines.append(Text("Brewing a suggestion…", style="dim"))
    if state.is_prefetching_auto_suggestion:
        status_lines.append(Text("Auto-brew in progress…", style="dim"))
    if state.suggestion_error:
        status_lines.append(Text(state.suggestion_error, style="red"))
    if state.auto_suggestion_error:
        status_lines.append(Text(state.auto_suggestion_error, style="red"))
    if state.auto_prompt_visible:
        status_lines.append(Text("Focus done ☕  [a] apply  [z] snooze 5 min", style="bold yellow"))

    parts = [header, Text(copy["blurb"], style="dim"), clock, chips, suggestion, *status_lines]

    if state.show_break_gate:
        parts.append(Text("Long Break Unlocked", style="bold yellow"))
        parts.append(Text(GATE_HELP))
    parts.append(Text(KEY_HELP, style="dim"))

    if logs:
        log_text = Text()
        for entry in logs:
            log_text.append(f"{entry['timestamp']} ", style="dim")
            log_text.append(f"{entry['message']}\n", style=LEVEL_STYLES.get(entry["level"], "white"))
        parts.append(log_text)

    return Panel(Group(*parts), title="BreakBuddy", border_style=copy["style"].split()[-1])


def build_stats_table(weekly: WeeklyStats) -> Table:
    table = Table(title="Last 7 days", show_header=True, header_style="bold")
    table.add_column("Day")
    table.add_column("Focus (min)", justify="right")
    table.add_column("Sprints", justify="right")
    table.add_column("Break (min)", justify="right")
    table.add_column("Breaks", justify="right")

    for day_key in sorted(weekly):
        day = weekly[day_key]
        table.add_row(
            day_key,
            format_minutes(day.focus_seconds),
            str(day.focus_count),
            format_minutes(day.break_seconds),
            str(day.break_count),
        )

    totals = week_totals(weekly)
    table.add_section()
    table.add_row(
        "Total",
        format_minutes(totals.focus_seconds),
        str(totals.focus_count),
        format_minutes(totals.break_seconds),
        str(totals.break_count),
        style="bold",
    )
    return table


def build_history_table(history: list[SessionHistoryEntry], limit: int) -> Table:
    table = Table(title="Session history", show_header=True, header_style="bold")
    table.add_column("Completed")
    table.add_column("Cycle", justify="right")
    table.add_column("Minutes", justify="right")
    table.add_column("Mood")
    table.add_column("Suggestion")

    for entry in history[:limit]:
        completed = entry.completed_at.replace("T", " ")[:16]
        table.add_row(
            completed,
            str(entry.cycle),
            f"{entry.focus_minutes:g}",
            entry.mood.value if entry.mood else "",
            entry.suggestion or "",
        )
    return table
