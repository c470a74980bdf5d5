"""BreakBuddy: a focus/break cycle timer with witty break suggestions."""

from .timer.engine import FocusEngine
from .timer.models import Durations, Mood, Phase, TimerState

__version__ = "0.1.0"

__all__ = ["Durations", "FocusEngine", "Mood", "Phase", "TimerState", "__version__"]
