from __future__ import annotations
import os
import signal
import sys
import threading
from typing import Optional

import typer
from dotenv import load_dotenv
from rich import print
from rich.console import Console
from rich.markup import escape

from .config import MODEL_PRESETS, AgentConfig, configure_logging, debug_enabled
from .grammar import AGENT_GRAMMAR
from .llm_registry import load_backend
from .runtime import Agent, AgentObserver, AgentState
from .tools import ToolInterpreter, ToolResult

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(add_completion=False)

COMMANDS = ["run", "tool", "models", "grammar", "--help"]


class ConsoleObserver(AgentObserver):
    """Prints agent events to a rich Console."""

    def __init__(self, console: Optional[Console] = None, stream: bool = False):
        self.console = console or Console()
        self.stream = stream

    def on_progress(self, message: str) -> None:
        self.console.print(f"[dim]{escape(message)}[/dim]", highlight=False)

    def on_thought(self, thought: str) -> None:
        if self.stream:
            self.console.print()
        self.console.print(f"[cyan]THOUGHT:[/cyan] {escape(thought)}", highlight=False)

    def on_command(self, command: str) -> None:
        self.console.print(f"[bold yellow]CMD:[/bold yellow] {escape(command)}", highlight=False)

    def on_tool_result(self, result: ToolResult) -> None:
        print_result(result, self.console)

    def on_finish(self, summary: str) -> None:
        self.console.print(f"\n[bold green]Done:[/bold green] {escape(summary)}", highlight=False)

    def on_error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {escape(message)}", highlight=False)

    def on_stream(self, token: str) -> None:
        if self.stream:
            self.console.print(token, end="", style="dim", markup=False, highlight=False)


def print_result(result: ToolResult, console: Console) -> None:
    if result.success:
        console.print(result.output.rstrip("\n"), markup=False, highlight=False)
    else:
        console.print(f"[red]ERROR ({result.error_code.value}):[/red] {escape(result.error)}", highlight=False)


@app.command()
def models():
    for k, v in MODEL_PRESETS.items():
        print(f"[bold]{k}[/bold] -> {v.id} (ctx {v.context_window})")


@app.command()
def grammar():
    """Print the GBNF grammar every model turn must follow."""
    typer.echo(AGENT_GRAMMAR.strip())


@app.command()
def tool(command: str = typer.Argument(..., help="Raw command, e.g. 'READ_LINES main.py 1-20'"),
         repo: str = typer.Option(".", help="Working root the command is confined to")):
    """Run one tool command against REPO and print the result."""
    if not os.path.isdir(repo):
        raise typer.BadParameter("repo must be a directory")
    # Shells make multi-line WRITE/INSERT bodies awkward; accept literal \n
    if "\n" not in command:
        command = command.replace("\\n", "\n")
    result = ToolInterpreter(repo).execute(command)
    print_result(result, Console())
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def run(goal: str = typer.Option(None, help="Task for the agent"),
        repo: str = typer.Option(".", help="Directory the agent works in"),
        model: str = typer.Option(None, help="Preset name (see `models`) or Hugging Face model id"),
        max_steps: int = typer.Option(None, help="Max agent steps"),
        max_tokens: int = typer.Option(None, help="Max generated tokens per step"),
        stream: bool = typer.Option(False, help="Echo model tokens as they are generated"),
        debug: bool = typer.Option(False, help="Write a debug log to bounded_coder_debug.log")):
    if not os.path.isdir(repo):
        raise typer.BadParameter("repo must be a directory")
    configure_logging(debug or debug_enabled())

    try:
        config = AgentConfig.from_env(model=model, max_steps=max_steps,
                                      max_tokens_per_step=max_tokens)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    if goal is None:
        goal = typer.prompt("Task")
    if not goal.strip():
        raise typer.BadParameter("goal must not be empty")

    console = Console()
    backend = load_backend(config.model, context_window=config.context_window)
    agent = Agent(config, backend, observer=ConsoleObserver(console, stream=stream), working_dir=repo)
    if not agent.init():
        raise typer.Exit(code=1)

    cancel = threading.Event()

    def _interrupt(signum, frame):
        if cancel.is_set():
            raise KeyboardInterrupt
        console.print("\n[yellow]Stopping after the current step... (Ctrl-C again to abort)[/yellow]")
        cancel.set()

    previous = signal.signal(signal.SIGINT, _interrupt)
    try:
        agent.start_task(goal, repo)
        message = agent.run(cancel)
    finally:
        signal.signal(signal.SIGINT, previous)
        agent.unload()

    if agent.state is AgentState.INTERRUPTED:
        console.print(f"[yellow]{message}[/yellow]")
    if agent.state is not AgentState.FINISHED:
        raise typer.Exit(code=1)


def main():
    # If no arguments provided or no recognized command, default to 'run'
    if len(sys.argv) == 1 or (len(sys.argv) > 1 and sys.argv[1] not in COMMANDS):
        # Insert 'run' as the default command
        sys.argv.insert(1, 'run')
    app()


if __name__ == "__main__":
    main()
