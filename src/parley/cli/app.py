"""Main CLI application using Typer."""
import asyncio
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from ..conversation import ConversationController, ConversationView, Role
from ..ui.config import LogLevel
from .providers import get_settings, get_store, get_transport

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="parley",
    help="Chat with a backend service, with persistent history and outage recovery",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()

ROLE_STYLES = {
    Role.USER: "bold cyan",
    Role.ASSISTANT: "bold green",
    Role.SYSTEM: "yellow",
}


def _log_printer(log_level: str):
    """Build a debug callback that prints entries at or above ``log_level``."""
    threshold = LogLevel.from_string(log_level)

    def _print(level: str, component: str, message: str) -> None:
        value = LogLevel.from_string(level)
        if value >= threshold:
            console.print(f"[dim]{LogLevel.name(value):<7} [{component}] {message}[/dim]")

    return _print


@app.command()
def send(
    text: str = typer.Argument("", help="Message to send"),
    image: Path | None = typer.Option(
        None,
        "--image",
        "-i",
        exists=True,
        dir_okay=False,
        help="Image file to attach"
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Print log entries with level: debug (all), info, warning, or error"
    ),
):
    """Send one message and print the reply as it is revealed."""
    async def _send():
        image_data = image.read_bytes() if image else None
        controller = ConversationController(
            get_transport(console),
            get_store(console),
            get_settings(console),
        )
        shown = len(controller.messages)
        revealed = 0

        def _on_change(view: ConversationView) -> None:
            nonlocal shown, revealed
            if len(view.typing_text) > revealed:
                console.print(view.typing_text[revealed:], end="", markup=False, highlight=False)
                revealed = len(view.typing_text)
            for msg in view.messages[shown:]:
                if msg.role is Role.ASSISTANT and revealed:
                    console.print()
                    revealed = 0
                elif msg.role is not Role.USER:
                    style = ROLE_STYLES[msg.role]
                    console.print(f"[{style}]{msg.role.value}:[/{style}] {msg.text}")
            shown = len(view.messages)

        async with controller:
            shown = len(controller.messages)
            controller.set_change_callback(_on_change)
            if log_level:
                controller.set_debug_callback(_log_printer(log_level))

            if not controller.submit(text, image=image_data):
                console.print("[yellow]Nothing to send[/yellow]")
                raise typer.Exit(code=1)
            await controller.wait_idle()

    try:
        asyncio.run(_send())
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")


@app.command()
def history(
    limit: int = typer.Option(
        0,
        "--limit",
        "-n",
        help="Show only the last N messages (0 for all)"
    ),
):
    """Show the stored conversation."""
    async def _history():
        store = get_store(console)
        try:
            await store.connect()
            messages = await store.load()
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await store.disconnect()

        if not messages:
            console.print("[dim]No messages yet[/dim]")
            return

        if limit > 0:
            messages = messages[-limit:]

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Time", style="dim", width=19)
        table.add_column("Role", width=9)
        table.add_column("Message")

        for msg in messages:
            style = ROLE_STYLES[msg.role]
            text = msg.text + (" [dim][image][/dim]" if msg.has_image else "")
            table.add_row(
                msg.created_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
                f"[{style}]{msg.role.value}[/{style}]",
                text,
            )

        console.print(table)

    asyncio.run(_history())


@app.command()
def clear(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt"
    )
):
    """Delete the stored conversation."""
    async def _clear():
        if not yes:
            confirm = typer.confirm("Clear full chat?")
            if not confirm:
                console.print("[dim]Aborted.[/dim]")
                return

        store = get_store(console)
        try:
            await store.connect()
            await store.clear()
            console.print("[green]Conversation cleared.[/green]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await store.disconnect()

    asyncio.run(_clear())


@app.command()
def probe():
    """Check whether the chat service is reachable."""
    async def _probe():
        async with get_transport(console) as transport:
            ok = await transport.probe()
        if ok:
            console.print("[green]+[/green] Chat service: OK")
        else:
            console.print("[red]x[/red] Chat service: UNREACHABLE")
            raise typer.Exit(code=1)

    asyncio.run(_probe())


@app.command(name="tui")
def tui_command(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Show log panel with level: debug (all), info, warning, or error"
    ),
):
    """Launch interactive TUI chat interface."""
    async def _tui():
        from ..ui import run_textual_tui

        controller = ConversationController(
            get_transport(console),
            get_store(console),
            get_settings(console),
        )
        try:
            await run_textual_tui(controller, log_level=log_level)
        finally:
            console.print("\n[dim]Goodbye![/dim]")

    try:
        asyncio.run(_tui())
    except KeyboardInterrupt:
        pass


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
