"""Provider factory functions for CLI.

Centralizes creation of transport, store and controller settings from
environment variables. Hides configuration details from command
implementations.
"""

import os

import typer
from pydantic import ValidationError
from rich.console import Console

from ..config import (
    DEFAULT_API_URL,
    DEFAULT_JSON_STORE_PATH,
    DEFAULT_PROBE_URL,
    DEFAULT_SQLITE_STORE_PATH,
    DEFAULT_TIMEOUT,
    ControllerSettings,
)
from ..memory import MessageStore, create_message_store
from ..transport import ChatTransport, create_transport

# Default console for output
_console = Console()


def get_transport(console: Console | None = None) -> ChatTransport:
    """Create chat transport from environment variables.

    Args:
        console: Optional Rich console for output

    Returns:
        Transport instance

    Raises:
        SystemExit: If the transport is unknown or misconfigured

    Environment variables:
        PARLEY_TRANSPORT: Transport type (http, openai; default: http)
        PARLEY_API_URL: Chat endpoint for http (default: http://127.0.0.1:8000/api/chat/)
        PARLEY_PROBE_URL: Liveness endpoint for http (default: http://127.0.0.1:8000/)
        PARLEY_TIMEOUT: Seconds before a send is abandoned (default: 60)
        OPENAI_API_KEY: OpenAI API key (for openai transport)
        PARLEY_MODEL: OpenAI model (default: gpt-4o-mini)
        PARLEY_BASE_URL: OpenAI-compatible base URL (optional)
    """
    con = console or _console
    kind = os.getenv("PARLEY_TRANSPORT", "http").lower()
    timeout = _float_env("PARLEY_TIMEOUT", DEFAULT_TIMEOUT, con)

    if kind == "http":
        return create_transport(
            "http",
            endpoint=os.getenv("PARLEY_API_URL", DEFAULT_API_URL),
            probe_endpoint=os.getenv("PARLEY_PROBE_URL", DEFAULT_PROBE_URL),
            timeout=timeout,
        )

    elif kind == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            con.print("[red]Error: OPENAI_API_KEY not set in environment[/red]")
            raise typer.Exit(code=1)
        return create_transport(
            "openai",
            api_key=api_key,
            model=os.getenv("PARLEY_MODEL", "gpt-4o-mini"),
            base_url=os.getenv("PARLEY_BASE_URL") or None,
            timeout=timeout,
        )

    con.print(f"[red]Error: Unknown transport: {kind}[/red]")
    raise typer.Exit(code=1)


def get_store(console: Console | None = None) -> MessageStore:
    """Create snapshot store from environment variables.

    Environment variables:
        PARLEY_STORE: Backend (json, sqlite, memory; default: json)
        PARLEY_STORE_PATH: File path for json/sqlite backends
    """
    con = console or _console
    backend = os.getenv("PARLEY_STORE", "json").lower()
    path = os.getenv("PARLEY_STORE_PATH")

    if backend == "memory":
        return create_message_store("memory")
    if backend == "json":
        return create_message_store("json", path=path or DEFAULT_JSON_STORE_PATH)
    if backend == "sqlite":
        try:
            return create_message_store("sqlite", path=path or DEFAULT_SQLITE_STORE_PATH)
        except ImportError as e:
            con.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)

    con.print(f"[red]Error: Unknown store backend: {backend}[/red]")
    raise typer.Exit(code=1)


def get_settings(console: Console | None = None) -> ControllerSettings:
    """Create controller settings from environment variables.

    Environment variables:
        PARLEY_CONTEXT_WINDOW: Prior messages sent as context (default: 12)
        PARLEY_PROBE_INTERVAL: Seconds between recovery probes (default: 4)
    """
    con = console or _console
    overrides: dict[str, str] = {}
    if os.getenv("PARLEY_CONTEXT_WINDOW"):
        overrides["context_window"] = os.environ["PARLEY_CONTEXT_WINDOW"]
    if os.getenv("PARLEY_PROBE_INTERVAL"):
        overrides["probe_interval"] = os.environ["PARLEY_PROBE_INTERVAL"]

    try:
        return ControllerSettings.model_validate(overrides)
    except ValidationError as e:
        con.print(f"[red]Error: Invalid settings: {e}[/red]")
        raise typer.Exit(code=1)


def _float_env(name: str, default: float, console: Console) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        console.print(f"[red]Error: {name} must be a number, got {raw!r}[/red]")
        raise typer.Exit(code=1)
