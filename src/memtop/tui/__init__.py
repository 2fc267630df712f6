"""Terminal UI for memtop."""

from memtop.tui.app import MemtopApp, TerminalSurface, run_tui

__all__ = ["MemtopApp", "TerminalSurface", "run_tui"]
