"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Input history management
- Chat message rendering
- Reveal / waiting indicator
- Log rendering and level filtering
"""

from collections.abc import Sequence
from datetime import datetime

from rich.text import Text
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import Click
from textual.message import Message as TextualMessage
from textual.widgets import Button, RichLog, Static, TextArea

from ..conversation.models import ConversationView, Message, Phase, Role
from .config import (
    INPUT_HISTORY_MAX_SIZE,
    LOG_MAX_MESSAGE_LENGTH,
    LOG_TIMESTAMP_FORMAT,
    MESSAGE_TIMESTAMP_FORMAT,
    THINKING_TEXT,
    LogLevel,
)


class ClickableMessage(Vertical):
    """A chat message container that copies its text when clicked."""

    def __init__(self, content: str, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._content = content

    def on_click(self, event: Click) -> None:
        event.stop()
        self.app.copy_to_clipboard(self._content)
        self.app.notify("Copied to clipboard", timeout=2)


class ChatInputBar(Horizontal):
    """Chat input bar with TextArea and Send button."""

    class Submitted(TextualMessage):
        """Message sent when user submits input."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.cursor_blink = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip(
            "Submit message (Ctrl+J)"
        )

    def on_mount(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.focus()
        text_area.highlight_cursor_line = False

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            self._submit()

    def on_key(self, event) -> None:
        """Handle keyboard shortcuts.

        Note: ctrl+enter cannot work in terminals (terminal doesn't pass
        ctrl/shift modifiers with Enter). Use ctrl+j as the submit shortcut.
        """
        if event.key == "ctrl+j":
            self._submit()
            event.prevent_default()
            event.stop()
        elif event.key == "up" and self._is_cursor_at_start():
            self._navigate_history(-1)
            event.prevent_default()
            event.stop()
        elif event.key == "down" and self._is_cursor_at_end():
            self._navigate_history(1)
            event.prevent_default()
            event.stop()

    def _is_cursor_at_start(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        return text_area.cursor_location == (0, 0)

    def _is_cursor_at_end(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        lines = text_area.text.split("\n")
        last_row = len(lines) - 1
        last_col = len(lines[-1]) if lines else 0
        return text_area.cursor_location == (last_row, last_col)

    def _navigate_history(self, direction: int) -> None:
        if not self._history:
            return
        text_area = self.query_one("#chat-input", TextArea)
        if direction < 0:  # Up
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        else:  # Down
            if self._history_index < len(self._history) - 1:
                self._history_index += 1
            else:
                self._history_index = -1
                text_area.text = ""
                return
        text_area.text = self._history[self._history_index]

    def _submit(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        value = text_area.text.strip()
        if value:
            if not self._history or self._history[-1] != value:
                self._history.append(value)
                del self._history[:-INPUT_HISTORY_MAX_SIZE]
            self._history_index = -1
            text_area.text = ""
            self.post_message(self.Submitted(value))

    def focus_input(self) -> None:
        """Focus the text input."""
        self.query_one("#chat-input", TextArea).focus()


class ChatHistoryWidget(VerticalScroll):
    """Scrollable conversation display.

    Renders only messages it has not shown yet; a conversation that no longer
    starts with the rendered messages (e.g. after a clear) is redrawn.
    """

    BORDER_TITLE = "Chat"
    BORDER_SUBTITLE = "Conversation history"
    ALLOW_SELECT = True

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._messages: list[Message] = []
        self._showing_empty = False

    def show_messages(self, messages: Sequence[Message]) -> None:
        """Bring the display in line with ``messages``."""
        rendered_ids = [m.id for m in self._messages]
        if [m.id for m in messages[:len(rendered_ids)]] != rendered_ids:
            self._reset()

        new_messages = list(messages[len(self._messages):])
        if not messages:
            if not self._showing_empty:
                self._reset()
                self.mount(Static(
                    "Start a conversation. Ask anything.",
                    classes="empty-state",
                ))
                self._showing_empty = True
            return

        if self._showing_empty:
            self._reset()
            new_messages = list(messages)

        for msg in new_messages:
            self._messages.append(msg)
            self._render_message(msg)

        self.border_subtitle = f"{len(self._messages)} messages"
        if new_messages:
            self.scroll_end(animate=False)

    def get_last_response(self) -> str | None:
        """Get the last assistant response."""
        for msg in reversed(self._messages):
            if msg.role is Role.ASSISTANT:
                return msg.text
        return None

    def _reset(self) -> None:
        self._messages = []
        self._showing_empty = False
        self.remove_children()
        self.border_subtitle = "Conversation history"

    def _render_message(self, msg: Message) -> None:
        """Render a single message to the display."""
        if msg.role is Role.USER:
            prefix, border_class, icon = "You", "user-message", ">"
        elif msg.role is Role.ASSISTANT:
            prefix, border_class, icon = "Assistant", "assistant-message", "<"
        else:
            prefix, border_class, icon = "Notice", "system-message", "!"

        timestamp = msg.created_at.astimezone().strftime(MESSAGE_TIMESTAMP_FORMAT)
        header_text = f"{icon} {prefix} [{timestamp}]"

        container = ClickableMessage(content=msg.text, classes=f"chat-message {border_class}")
        container.compose_add_child(Static(Text(header_text), classes="message-header"))
        if msg.image:
            size_kb = max(1, len(msg.image) // 1024)
            container.compose_add_child(Static(Text(f"[image, {size_kb} KB]", style="dim")))
        container.compose_add_child(Static(Text(msg.text), classes="message-content"))
        self.mount(container)


class TypingLine(Static):
    """Shows the answer being revealed, or what the controller is waiting for."""

    def show_view(self, view: ConversationView) -> None:
        self.remove_class("-retrying")
        if view.phase is Phase.SENDING:
            text = THINKING_TEXT
        elif view.phase is Phase.REVEALING:
            text = view.typing_text
        elif view.phase is Phase.RETRYING:
            text = f"Waiting for the service to come back (attempt {view.retry.attempt})..."
            self.add_class("-retrying")
        else:
            self.remove_class("-visible")
            self.update("")
            return
        self.add_class("-visible")
        self.update(Text(text))


class DebugPanel(RichLog):
    """Log panel with level filtering.

    Shows timestamped log messages from all components.
    Supports standard log levels: DEBUG < INFO < WARNING < ERROR.
    Hidden by default, shown with --log-level flag or toggled with Ctrl+D.
    """

    BORDER_TITLE = "Log"
    BORDER_SUBTITLE = "Trace log"

    LEVEL_COLORS = {
        LogLevel.DEBUG: "dim white",
        LogLevel.INFO: "cyan",
        LogLevel.WARNING: "yellow",
        LogLevel.ERROR: "red",
    }

    COMPONENT_COLORS = {
        "TUI": "cyan",
        "Controller": "green",
        "Transport": "magenta",
        "Recovery": "yellow",
        "Memory": "bright_green",
    }

    def __init__(self, *args, log_level: int = LogLevel.DEBUG, **kwargs) -> None:
        super().__init__(
            *args,
            markup=True,
            highlight=False,
            auto_scroll=True,
            wrap=False,
            **kwargs
        )
        self._log_level = log_level

    @property
    def log_level(self) -> int:
        """Current log level threshold."""
        return self._log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        self._log_level = level
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self.display:
            self.border_subtitle = f"Level: {LogLevel.name(self._log_level)}"
        else:
            self.border_subtitle = "Hidden"

    def on_mount(self) -> None:
        """Hide by default."""
        self.display = False

    def add_entry(self, level: int, component: str, message: str) -> None:
        """Add a log entry if it meets the current level threshold."""
        if level < self._log_level:
            return

        if len(message) > LOG_MAX_MESSAGE_LENGTH:
            message = message[:LOG_MAX_MESSAGE_LENGTH] + "..."

        timestamp = datetime.now().strftime(LOG_TIMESTAMP_FORMAT)
        level_color = self.LEVEL_COLORS.get(level, "white")
        comp_color = self.COMPONENT_COLORS.get(component, "white")

        line = Text.assemble(
            (timestamp, "dim"),
            " ",
            (f"{LogLevel.name(level):<7}", level_color),
            " ",
            (f"[{component}]", comp_color),
            " ",
            message,
        )
        self.write(line)

    def show(self) -> None:
        self.display = True
        self._update_subtitle()

    def hide(self) -> None:
        self.display = False
        self.border_subtitle = "Hidden"

    def toggle(self) -> bool:
        """Toggle visibility. Returns new state."""
        if self.display:
            self.hide()
            return False
        self.show()
        return True
