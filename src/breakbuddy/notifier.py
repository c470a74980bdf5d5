"""Best-effort desktop side effects: a soft sound and system notifications.

Nothing here may affect engine state. Each helper returns a small result dict
and never raises for ordinary failures (missing binary, timeout, ...).
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from typing import Protocol

logger = logging.getLogger("breakbuddy.notifier")

IS_MACOS = sys.platform == "darwin"
DEFAULT_SOUND = "steam-soft"

SOUND_MAP = {
    "steam-soft": "/System/Library/Sounds/Glass.aiff" if IS_MACOS
    else "/usr/share/sounds/freedesktop/stereo/complete.oga",
    "ping": "/System/Library/Sounds/Ping.aiff" if IS_MACOS
    else "/usr/share/sounds/freedesktop/stereo/message.oga",
}

APP_NAME = "BreakBuddy"


class Notifier(Protocol):
    def play_sound(self, sound: str = DEFAULT_SOUND) -> dict: ...

    def notify(self, title: str, body: str) -> dict: ...


class NullNotifier:
    """Records calls instead of touching the desktop."""

    def __init__(self) -> None:
        self.sounds: list[str] = []
        self.notifications: list[tuple[str, str]] = []

    def play_sound(self, sound: str = DEFAULT_SOUND) -> dict:
        self.sounds.append(sound)
        return {"success": True, "method": "null"}

    def notify(self, title: str, body: str) -> dict:
        self.notifications.append((title, body))
        return {"success": True, "method": "null"}


class DesktopNotifier:
    """Plays sounds with afplay/paplay and posts notify-send/osascript banners."""

    def __init__(self, enabled: bool = True, timeout: float = 10):
        self.enabled = enabled
        self.timeout = timeout

    def play_sound(self, sound: str = DEFAULT_SOUND) -> dict:
        if not self.enabled:
            return {"success": False, "error": "disabled"}
        sound_path = SOUND_MAP.get(sound, SOUND_MAP[DEFAULT_SOUND])
        player = "afplay" if IS_MACOS else "paplay"
        return self._run([player, sound_path], method=player)

    def notify(self, title: str, body: str) -> dict:
        if not self.enabled:
            return {"success": False, "error": "disabled"}
        if IS_MACOS:
            script = f"display notification {_osa_quote(body)} with title {_osa_quote(title)}"
            return self._run(["osascript", "-e", script], method="osascript")
        return self._run(["notify-send", "--app-name", APP_NAME, title, body], method="notify-send")

    def _run(self, cmd: list[str], method: str) -> dict:
        if shutil.which(cmd[0]) is None:
            return {"success": False, "error": f"{cmd[0]} not found"}
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            return {"success": False, "error": f"{method} timed out"}
        except OSError as e:
            return {"success": False, "error": str(e)}
        if result.returncode == 0:
            return {"success": True, "method": method}
        return {"success": False, "error": f"{method} failed: {result.stderr.decode(errors='replace')[:100]}"}


def _osa_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
