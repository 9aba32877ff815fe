"""Console command configuration."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class CommandSpec:
    """Declarative console command definition."""

    name: str
    usage: str
    description: str


class ConsoleCommand(Enum):
    """Enum of console commands (single source of truth)."""

    LIST = CommandSpec(
        "list", "list <uid> [N]", "Stored lives of an owner, or the last N"
    )
    LIST_WATCHED = CommandSpec(
        "list_watched", "list_watched", "Stored lives of every watched owner"
    )
    GET_PLAYBACK = CommandSpec(
        "getplayback", "getplayback <liveID>...", "Look up recording links"
    )
    FETCH = CommandSpec("fetch", "fetch [uid]", "Fetch the current live list")
    HELP = CommandSpec("help", "help", "Show this message")
    QUIT = CommandSpec("quit", "quit", "Stop monitoring and exit")

    @classmethod
    def lookup(cls, name: str) -> "ConsoleCommand | None":
        for entry in cls:
            if entry.value.name == name:
                return entry
        return None


def help_text() -> str:
    """Return the usage summary printed by the console."""
    width = max(len(entry.value.usage) for entry in ConsoleCommand)
    lines = ["Commands:"]
    lines.extend(
        f"  {entry.value.usage.ljust(width)}  {entry.value.description}"
        for entry in ConsoleCommand
    )
    return "\n".join(lines)
