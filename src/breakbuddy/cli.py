#!/usr/bin/env python3
"""BreakBuddy CLI.

Usage:
    breakbuddy run                     # Live timer (keys: p b a z g s m r q)
    breakbuddy stats                   # Last seven days of focus/break time
    breakbuddy history --limit 10      # Most recent focus sprints
    breakbuddy durations --focus 45    # Show or change durations (minutes)
    breakbuddy brew                    # One-off break suggestion
    breakbuddy auto-brew off           # Toggle automatic suggestions
"""

from __future__ import annotations

import asyncio
import select
import sys
import threading
from typing import Optional

import click
from rich.console import Console
from rich.live import Live

from .config import AppConfig, get_config, verbose_option
from .logs import configure_logging, recent_logs
from .notifier import DesktopNotifier
from .scheduler import AutoBrewScheduler
from .suggest.client import GeminiClient
from .timer.engine import FocusEngine
from .timer.models import Mood
from .timer.persistence import SnapshotStore
from .timer.ticker import AsyncioTicker
from .views import build_history_table, build_stats_table, format_minutes, render_dashboard

console = Console()

SNOOZE_MINUTES = 5
MOOD_CYCLE = list(Mood)

# Keys that act on the auto-prompt itself and must not count as "user came back"
PROMPT_KEYS = {"a", "z"}


def build_engine(config: AppConfig) -> FocusEngine:
    return FocusEngine(
        generator=GeminiClient(config.gemini_api_key, config.gemini_model, config.request_timeout),
        snapshot_store=SnapshotStore(config.state_path),
        notifier=DesktopNotifier(enabled=config.notifications),
        ticker=AsyncioTicker(config.tick_ms),
        max_catch_up=config.max_catch_up,
    )


@click.group()
@verbose_option
@click.pass_context
def cli(ctx, verbose):
    """BreakBuddy - focus sprints, breaks, and witty break suggestions."""
    configure_logging(verbose)
    config = get_config()
    ctx.ensure_object(dict)
    ctx.obj["config"] = config

    if verbose:
        click.echo(f"State file: {config.state_path}")


# ---- Live timer ----

def next_mood(current: Optional[Mood]) -> Mood:
    if current is None:
        return MOOD_CYCLE[0]
    return MOOD_CYCLE[(MOOD_CYCLE.index(current) + 1) % len(MOOD_CYCLE)]


def handle_key(key: str, engine: FocusEngine, auto_brew: AutoBrewScheduler, tasks: set) -> bool:
    """Apply one keypress. Returns False when the user asked to quit."""
    key = key.lower()
    if key not in PROMPT_KEYS:
        auto_brew.user_activity()

    state = engine.snapshot()
    if key == "q":
        return False
    if key == "p":
        if state.is_running:
            engine.pause()
        elif state.target_timestamp is None and state.seconds_remaining == state.durations.for_phase(state.phase):
            engine.start()
        else:
            engine.resume()
    elif key == "b":
        task = asyncio.ensure_future(engine.generate_break_suggestion())
        tasks.add(task)
        task.add_done_callback(tasks.discard)
    elif key == "a":
        engine.apply_queued_suggestion()
    elif key == "z":
        engine.snooze_auto_suggestion(SNOOZE_MINUTES)
    elif key == "g":
        engine.accept_break_gate()
    elif key == "s":
        engine.skip_break_gate()
    elif key == "m":
        engine.set_mood(next_mood(state.latest_mood))
    elif key == "r":
        engine.reset()
    return True


def _key_reader(loop: asyncio.AbstractEventLoop, keys: asyncio.Queue, stop: threading.Event) -> None:
    """Read single keypresses in cbreak mode and hand them to the event loop."""
    import termios
    import tty

    fd = sys.stdin.fileno()
    original_settings = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        while not stop.is_set():
            if select.select([sys.stdin], [], [], 0.05)[0]:
                key = sys.stdin.read(1)
                loop.call_soon_threadsafe(keys.put_nowait, key)
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, original_settings)


async def run_dashboard(engine: FocusEngine, config: AppConfig) -> None:
    loop = asyncio.get_running_loop()
    keys: asyncio.Queue = asyncio.Queue()
    stop = threading.Event()
    tasks: set = set()

    auto_brew = AutoBrewScheduler(engine, idle_prompt_seconds=config.idle_prompt_seconds)
    auto_brew.start()
    reader = threading.Thread(target=_key_reader, args=(loop, keys, stop), daemon=True)
    reader.start()

    try:
        with Live(render_dashboard(engine.snapshot()), console=console, refresh_per_second=4, screen=True) as live:
            while True:
                try:
                    key = await asyncio.wait_for(keys.get(), timeout=config.tick_ms / 1000)
                except asyncio.TimeoutError:
                    key = None
                if key is not None and not handle_key(key, engine, auto_brew, tasks):
                    break
                live.update(render_dashboard(engine.snapshot(), recent_logs(5)))
    finally:
        stop.set()
        reader.join(timeout=0.5)
        auto_brew.shutdown()
        engine.close()
        for task in tasks:
            task.cancel()


@cli.command()
@click.pass_context
def run(ctx):
    """Run the live focus timer."""
    config = ctx.obj["config"]
    if not sys.stdin.isatty():
        raise click.ClickException("breakbuddy run needs an interactive terminal")

    engine = build_engine(config)
    try:
        asyncio.run(run_dashboard(engine, config))
    except KeyboardInterrupt:
        pass
    console.print("[dim]See you next sprint.[/dim]")


# ---- Snapshot views ----

@cli.command()
@click.pass_context
def stats(ctx):
    """Show focus and break totals for the last seven days."""
    engine = build_engine(ctx.obj["config"])
    state = engine.snapshot()
    console.print(build_stats_table(state.weekly_stats))
    console.print(
        f"All time: {state.completed_focus_sessions} sprints, "
        f"{format_minutes(state.total_focus_seconds)}m focus, "
        f"{format_minutes(state.total_break_seconds)}m break"
    )


@cli.command()
@click.option("--limit", "-n", default=10, show_default=True, type=click.IntRange(min=1), help="Entries to show")
@click.pass_context
def history(ctx, limit):
    """Show the most recent focus sprints."""
    engine = build_engine(ctx.obj["config"])
    entries = engine.snapshot().session_history
    if not entries:
        console.print("[dim]No focus sprints logged yet.[/dim]")
        return
    console.print(build_history_table(entries, limit))


@cli.command()
@click.option("--focus", type=click.IntRange(min=1), help="Focus sprint length in minutes")
@click.option("--short", "short_break", type=click.IntRange(min=1), help="Short break length in minutes")
@click.option("--long", "long_break", type=click.IntRange(min=1), help="Long break length in minutes")
@click.pass_context
def durations(ctx, focus, short_break, long_break):
    """Show or change phase durations."""
    engine = build_engine(ctx.obj["config"])
    engine.set_durations(
        focus=focus * 60 if focus else None,
        short_break=short_break * 60 if short_break else None,
        long_break=long_break * 60 if long_break else None,
    )
    current = engine.snapshot().durations
    console.print(
        f"Focus {format_minutes(current.focus)}m · "
        f"Short break {format_minutes(current.short_break)}m · "
        f"Long break {format_minutes(current.long_break)}m"
    )


@cli.command()
@click.option("--mood", type=click.Choice([m.value for m in Mood]), help="How the last sprint felt")
@click.pass_context
def brew(ctx, mood):
    """Brew a single break suggestion."""
    engine = build_engine(ctx.obj["config"])
    if mood:
        engine.set_mood(mood)

    with console.status("Brewing…"):
        asyncio.run(engine.generate_break_suggestion())

    state = engine.snapshot()
    if state.suggestion_error:
        raise click.ClickException(state.suggestion_error)
    console.print(f"[cyan]{state.break_suggestion}[/cyan]")


@cli.command("auto-brew")
@click.argument("mode", type=click.Choice(["on", "off"]))
@click.pass_context
def auto_brew(ctx, mode):
    """Turn automatic break suggestions on or off."""
    engine = build_engine(ctx.obj["config"])
    engine.set_auto_brew_enabled(mode == "on")
    console.print(f"Auto-brew {mode}")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
