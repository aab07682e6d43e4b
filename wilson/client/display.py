"""Terminal presentation of stream events and interactive prompts."""
import asyncio
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from wilson.core.events import (
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TextEvent,
    ToolCallStartedEvent,
    ToolResultEvent,
    ToolsPendingBatchEvent,
    UsageEvent,
)
from wilson.core.types import Todo


_TODO_MARKERS = {"completed": "[green]✓[/green]", "in_progress": "[yellow]▸[/yellow]", "pending": "[dim]○[/dim]"}


def _result_summary(result: Any) -> str:
    if isinstance(result, dict):
        if result.get("error"):
            summary = str(result["error"])
            if result.get("suggestion"):
                summary += f" (hint: {result['suggestion']})"
            return summary
        content = result.get("content")
        if isinstance(content, str) and content:
            first_line = content.strip().splitlines()[0] if content.strip() else ""
            return first_line[:120]
    return ""


def display_event(console: Console, event: StreamEvent) -> None:
    """Display a stream event in the terminal with Rich formatting.

    Text is written inline as it streams; everything else goes on its own
    line.

    Args:
        console: Rich Console instance for formatted output.
        event: Event to render.
    """
    if isinstance(event, TextEvent):
        console.print(event.text, end="", markup=False, highlight=False)
    elif isinstance(event, ToolCallStartedEvent):
        console.print(f"\n[cyan]⏺ {escape(event.name)}[/cyan]")
    elif isinstance(event, ToolResultEvent):
        summary = escape(_result_summary(event.result))
        if event.is_error:
            cancelled = isinstance(event.result, dict) and event.result.get("cancelled")
            style = "yellow" if cancelled else "red"
            console.print(f"  [{style}]✗ {escape(event.name)}[/{style}] [dim]{summary}[/dim]")
        else:
            elapsed = f" ({event.elapsed_ms}ms)" if event.elapsed_ms is not None else ""
            console.print(f"  [green]✓ {escape(event.name)}[/green][dim]{elapsed} {summary}[/dim]")
    elif isinstance(event, ToolsPendingBatchEvent):
        console.print(f"[dim]{len(event.calls)} tool call(s) pending[/dim]")
    elif isinstance(event, UsageEvent):
        # Totals are shown once the turn completes
        pass
    elif isinstance(event, ErrorEvent):
        console.print(f"\n[bold red]Error: {escape(event.message)}[/bold red]")
    elif isinstance(event, DoneEvent):
        console.print()
        if event.usage is not None and event.usage.total_tokens:
            console.print(
                f"[dim]{event.usage.input_tokens} in / {event.usage.output_tokens} out tokens[/dim]"
            )


def display_todos(console: Console, todos: list[Todo]) -> None:
    """Render a todo list."""
    if not todos:
        return
    console.print("[bold]Todos[/bold]")
    for todo in todos:
        console.print(f"  {_TODO_MARKERS.get(todo.status, '○')} {escape(todo.content)}")


class ConsoleInteraction:
    """UserInteraction backed by Rich prompts on the terminal.

    Prompts block on stdin, so they run in a worker thread.
    """

    def __init__(self, console: Console):
        self._console = console

    async def ask_user(self, question: str, options: list[str] | None = None) -> str:
        self._console.print(f"\n[bold cyan]?[/bold cyan] {escape(question)}")
        if options:
            for index, option in enumerate(options, start=1):
                self._console.print(f"  {index}. {escape(option)}")
        answer = await asyncio.to_thread(Prompt.ask, "Answer", console=self._console)
        if options and answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]
        return answer

    async def request_permission(self, operation: str, command: str) -> bool:
        self._console.print(
            f"\n[yellow bold]Dangerous operation: {escape(operation)}[/yellow bold]\n"
            f"  [dim]{escape(command)}[/dim]"
        )
        return await asyncio.to_thread(
            Confirm.ask, "Allow this command?", console=self._console, default=False
        )

    async def update_todos(self, todos: list[Todo]) -> None:
        display_todos(self._console, todos)
