import asyncio
import uuid
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from wilson import __version__
from wilson.client.api import BackendClient
from wilson.client.conversation import Conversation
from wilson.client.display import ConsoleInteraction, display_event
from wilson.config import WilsonSettings, load_settings
from wilson.core.constants import SEQUENTIAL_TOOLS, ToolName
from wilson.core.events import ErrorEvent
from wilson.logging import configure_logging
from wilson.runtime import AgentRuntime
from wilson.stream.cursor import CancellationToken
from wilson.tools.local import LocalToolBackend
from wilson.tools.protocols import NonInteractiveUser, UserInteraction


console = Console()

app = typer.Typer(help="Wilson: an interactive CLI agent.")

_EXIT_COMMANDS = frozenset({"/exit", "/quit"})
_INTERNAL_TOOLS = frozenset({ToolName.TODO_WRITE, ToolName.ASK_USER})
_LOCAL_TOOLS = frozenset({ToolName.READ, ToolName.WRITE, ToolName.EDIT, ToolName.LS, ToolName.BASH})


@app.callback()
def main_callback() -> None:
    """
    Wilson: an interactive CLI agent.
    """
    configure_logging()


def _safe_load_settings(settings_path: Path | None) -> WilsonSettings:
    """Load settings with error handling.

    Returns:
        Settings from YAML and the environment.

    Raises:
        typer.Exit: If the settings file is missing or invalid.
    """
    try:
        return load_settings(settings_path)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from None
    except Exception as e:
        console.print(f"[red]Error loading settings:[/red] {e}")
        raise typer.Exit(code=1) from None


def build_conversation(
    settings: WilsonSettings,
    working_directory: str,
    interaction: UserInteraction,
    skip_permissions: bool = False,
) -> Conversation:
    """Wire a runtime, local tools, a coordinator and a backend client together.

    Args:
        settings: Loaded settings.
        working_directory: Directory the tools operate in.
        interaction: User capability for the coordinator.
        skip_permissions: Run dangerous shell commands without asking.

    Returns:
        A ready-to-use Conversation.
    """
    runtime = AgentRuntime(working_directory, file_read_ttl=settings.file_read_ttl_seconds)
    backend = LocalToolBackend(runtime.working_directory)
    coordinator = runtime.create_coordinator(
        backend,
        interaction,
        conversation_id=str(uuid.uuid4()),
        skip_permissions=skip_permissions or settings.skip_permissions,
        max_parallel=settings.max_parallel_tools,
    )
    client = BackendClient(
        settings.api_url,
        access_token=settings.access_token,
        anon_key=settings.anon_key,
        timeout_seconds=settings.request_timeout_seconds,
    )
    return Conversation(
        runtime,
        client,
        coordinator,
        backend.tool_schemas(),
        store_id=settings.store_id,
        provider=settings.provider,
        model=settings.model,
        history_limit=settings.history_limit,
        max_loop_depth=settings.max_loop_depth,
        retry=settings.retry,
    )


async def _send(conversation: Conversation, message: str) -> bool:
    """Send one message, rendering events. Returns False if the turn failed."""
    ok = True
    async for event in conversation.send(message, CancellationToken()):
        display_event(console, event)
        if isinstance(event, ErrorEvent):
            ok = False
    return ok


async def _repl(conversation: Conversation) -> None:
    console.print("[dim]Type /exit to quit, /clear to reset the conversation.[/dim]")
    while True:
        line = await asyncio.to_thread(Prompt.ask, "[bold cyan]>[/bold cyan]", console=console)
        command = line.strip()
        if not command:
            continue
        if command in _EXIT_COMMANDS:
            return
        if command == "/clear":
            conversation.clear()
            console.print("[dim]Conversation cleared.[/dim]")
            continue
        await _send(conversation, command)


@app.command()
def chat(
    message: Annotated[
        str | None,
        typer.Argument(help="Message to send. Starts an interactive session when omitted."),
    ] = None,
    settings_path: Annotated[
        Path | None,
        typer.Option("--settings", "-s", help="Path to a settings YAML file"),
    ] = None,
    skip_permissions: Annotated[
        bool,
        typer.Option("--skip-permissions", help="Run dangerous shell commands without asking"),
    ] = False,
    non_interactive: Annotated[
        bool,
        typer.Option("--non-interactive", help="Never prompt; questions get a fixed answer"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
    cwd: Annotated[
        Path | None,
        typer.Option("--cwd", help="Working directory for tools (default: current directory)"),
    ] = None,
) -> None:
    """Chat with the agent."""
    settings = _safe_load_settings(settings_path)
    configure_logging("DEBUG" if verbose else settings.log_level)

    working_directory = (cwd or Path.cwd()).resolve()
    if not working_directory.is_dir():
        console.print(f"[red]Error:[/red] Not a directory: {working_directory}")
        raise typer.Exit(code=1)

    interaction: UserInteraction = (
        NonInteractiveUser() if non_interactive else ConsoleInteraction(console)
    )
    conversation = build_conversation(settings, str(working_directory), interaction, skip_permissions)

    try:
        if message is not None:
            if not asyncio.run(_send(conversation, message)):
                raise typer.Exit(code=1)
        else:
            asyncio.run(_repl(conversation))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(code=130) from None


@app.command()
def tools() -> None:
    """List the canonical tools and how they are executed."""
    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Execution", style="green")
    table.add_column("Handled by", style="blue")
    for tool in ToolName:
        execution = "sequential" if tool in SEQUENTIAL_TOOLS else "parallel"
        if tool in _INTERNAL_TOOLS:
            handler = "coordinator"
        elif tool in _LOCAL_TOOLS:
            handler = "local"
        else:
            handler = "backend"
        table.add_row(tool.value, execution, handler)
    console.print(table)


@app.command()
def version() -> None:
    """Show the Wilson version."""
    console.print(f"wilson {__version__}")
