"""statebook hosts - editor integrations generated suites run against."""

from statebook.hosts.base import Editor, Host, ReplayEditor, TextChange
from statebook.hosts.memory import MemoryEditor, MemoryHost

__all__ = [
    "Editor",
    "Host",
    "ReplayEditor",
    "TextChange",
    "MemoryEditor",
    "MemoryHost",
]
