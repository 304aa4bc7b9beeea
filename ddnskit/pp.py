"""Leveled, indented, emoji-prefixed console messages."""

from __future__ import annotations

import dataclasses
import sys
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TextIO

INDENT_PREFIX = "   "


class Level(IntEnum):
    """Importance of a message; higher is more important."""

    DEBUG = 0  # debugging info, currently not used
    INFO = 1  # information not about actual actions
    NOTICE = 2  # information about actual actions, but not an error
    WARNING = 3  # non-fatal errors; the program keeps updating addresses
    ERROR = 4  # fatal errors; the program should stop
    DEFAULT = 1
    VERBOSE = 1
    QUIET = 2


class Emoji(str, Enum):
    """Emoji placed in front of each message."""

    STAR = "🌟"
    BULLET = "🔸"

    ENV_VARS = "📖"
    CONFIG = "🔧"
    INTERNET = "🌐"
    PRIVILEGES = "🥷"
    MUTE = "🔇"
    EXPERIMENTAL = "🧪"

    ADD_RECORD = "🐣"
    DEL_RECORD = "💀"
    UPDATE_RECORD = "📡"

    NOTIFICATION = "🔔"
    REPEAT_ONCE = "🔂"

    SIGNAL = "🚨"
    ALREADY_DONE = "🤷"
    NOW = "🏃"
    ALARM = "⏰"
    BYE = "👋"

    GOOD = "😊"
    USER_ERROR = "😡"
    USER_WARNING = "😦"
    ERROR = "😞"
    WARNING = "😐"
    IMPOSSIBLE = "🤯"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, eq=False)
class PP:
    """A pretty printer writing one line per message to ``writer``."""

    writer: TextIO = field(default_factory=lambda: sys.stdout)
    indent: int = 0
    level: Level = Level.DEFAULT

    def set_level(self, level: Level) -> PP:
        """Return a printer that shows messages at ``level`` or above."""
        return dataclasses.replace(self, level=level)

    def is_enabled_for(self, level: Level) -> bool:
        """Whether messages at ``level`` are shown."""
        return level >= self.level

    def inc_indent(self) -> PP:
        """Return a printer indented one step further."""
        return dataclasses.replace(self, indent=self.indent + 1)

    def _output(self, level: Level, emoji: Emoji | str, message: str) -> None:
        if not self.is_enabled_for(level):
            return
        line = f"{INDENT_PREFIX * self.indent}{emoji} {message}"
        line = line.removesuffix("\n")
        print(line, file=self.writer)

    def info(self, emoji: Emoji | str, message: str) -> None:
        self._output(Level.INFO, emoji, message)

    def notice(self, emoji: Emoji | str, message: str) -> None:
        self._output(Level.NOTICE, emoji, message)

    def warning(self, emoji: Emoji | str, message: str) -> None:
        self._output(Level.WARNING, emoji, message)

    def error(self, emoji: Emoji | str, message: str) -> None:
        self._output(Level.ERROR, emoji, message)