"""Main Textual TUI application.

Hosts a ConversationController: forwards user input to it and renders the
views it publishes. All conversation logic lives in the controller.
"""

import asyncio
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header

from ..conversation import ConversationController, ConversationView
from .config import DETACH_COMMAND, IMAGE_COMMAND, LogLevel
from .screens import ConfirmationScreen
from .styles import APP_CSS
from .widgets import ChatHistoryWidget, ChatInputBar, DebugPanel, TypingLine


class ParleyApp(App):
    """Textual TUI for a parley conversation."""

    CSS = APP_CSS
    TITLE = "Parley"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("ctrl+k", "clear_chat", "Clear Chat", priority=True),
        Binding("ctrl+r", "copy_last_response", "Copy Response"),
        Binding("ctrl+d", "toggle_debug", "Log"),
    ]

    def __init__(
        self,
        controller: ConversationController,
        log_level: str | None = None,
    ) -> None:
        super().__init__()
        self._controller = controller
        self._log_level = log_level

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield ChatHistoryWidget(id="chat-history")
        yield TypingLine(id="typing-line")
        yield DebugPanel(id="debug-panel")
        yield ChatInputBar(id="chat-input-bar")
        yield Footer()

    async def on_mount(self) -> None:
        """Wire the controller to the widgets and load the conversation."""
        if self._log_level is not None:
            log_panel = self.query_one("#debug-panel", DebugPanel)
            log_panel.log_level = LogLevel.from_string(self._log_level)
            log_panel.show()
            log_panel.add_entry(LogLevel.INFO, "TUI", f"Log panel enabled with level: {self._log_level.upper()}")

        self._controller.set_change_callback(self._on_change)
        self._controller.set_debug_callback(self._on_debug)
        await self._controller.start()
        self._on_change(self._controller.view())
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def _on_change(self, view: ConversationView) -> None:
        self.query_one("#chat-history", ChatHistoryWidget).show_messages(view.messages)
        self.query_one("#typing-line", TypingLine).show_view(view)
        attachment = " | image attached" if self._controller.attachment else ""
        self.sub_title = f"{view.phase.value}{attachment}"

    def _on_debug(self, level: str, component: str, message: str) -> None:
        log_panel = self.query_one("#debug-panel", DebugPanel)
        log_panel.add_entry(LogLevel.from_string(level), component, message)

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        """Handle user input submission."""
        value = event.value

        if value == DETACH_COMMAND:
            self._controller.detach_image()
            self.notify("Attachment removed", timeout=2)
            self._on_change(self._controller.view())
            return

        if value.startswith(IMAGE_COMMAND + " "):
            self._attach_file(Path(value[len(IMAGE_COMMAND):].strip()).expanduser())
            return

        if not self._controller.submit(value):
            self.notify("Please wait for the current reply", severity="warning", timeout=2)

    def _attach_file(self, path: Path) -> None:
        try:
            data = path.read_bytes()
        except OSError as e:
            self.notify(f"Cannot read {path}: {e.strerror}", severity="error", timeout=4)
            return
        if not data:
            self.notify(f"{path.name} is empty", severity="warning", timeout=3)
            return
        self._controller.attach_image(data)
        self.notify(f"Attached {path.name}", timeout=2)
        self._on_change(self._controller.view())

    def action_clear_chat(self) -> None:
        """Ask for confirmation, then clear the conversation."""
        def _on_confirm(confirmed: bool | None) -> None:
            if confirmed:
                self._controller.clear()
                self.notify("Chat cleared", timeout=2)

        self.push_screen(ConfirmationScreen("Clear the full chat?"), _on_confirm)

    def action_toggle_debug(self) -> None:
        """Toggle the log panel visibility."""
        log_panel = self.query_one("#debug-panel", DebugPanel)
        is_visible = log_panel.toggle()
        self.notify(f"Log panel {'shown' if is_visible else 'hidden'}", timeout=2)

    def action_copy_last_response(self) -> None:
        """Copy last assistant response to clipboard."""
        chat = self.query_one("#chat-history", ChatHistoryWidget)
        response = chat.get_last_response()
        if response:
            self.copy_to_clipboard(response)
            self.notify("Response copied")
        else:
            self.notify("No response to copy", severity="warning")


async def run_textual_tui(
    controller: ConversationController,
    log_level: str | None = None,
) -> None:
    """Run the Textual TUI until the user quits.

    Args:
        controller: Controller for the conversation (closed on exit)
        log_level: Log level for panel (debug/info/warning/error), None to hide
    """
    app = ParleyApp(controller=controller, log_level=log_level)
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        controller.set_change_callback(None)
        controller.set_debug_callback(None)
        await controller.close()
