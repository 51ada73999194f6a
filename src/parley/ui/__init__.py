"""Terminal UI module for parley.

Provides a Textual-based TUI around a ConversationController.

Module structure (each module hides a design decision):
- widgets.py: Custom widgets (input history, message rendering, log panel)
- styles.py: CSS styling (layout decisions)
- screens.py: Modal dialogs (confirmation screens)
- config.py: Log levels and display constants
- app.py: Application orchestration (user interaction flow)
"""

from .app import ParleyApp, run_textual_tui
from .config import LogLevel
from .widgets import ChatHistoryWidget, ChatInputBar, DebugPanel, TypingLine

__all__ = [
    "ChatHistoryWidget",
    "ChatInputBar",
    "DebugPanel",
    "LogLevel",
    "ParleyApp",
    "TypingLine",
    "run_textual_tui",
]
