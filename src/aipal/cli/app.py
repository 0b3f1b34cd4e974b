"""Main CLI application using Typer."""
import logging

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..config import ProviderKind, models_for_provider
from ..execution import WorkerPool
from ..llm import CancellationToken, Message, StreamSink, has_valid_config
from ..llm.providers import CliAgentClient
from .providers import get_settings, require_llm, resolve_provider

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="aipal",
    help="Send prompts and captured traffic to LLM backends",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show adapter log output"
    )
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@app.command()
def providers():
    """List backends with their models and configuration status."""
    settings = get_settings(console)

    table = Table(title="LLM Backends")
    table.add_column("Provider", style="cyan")
    table.add_column("Id", style="dim")
    table.add_column("Model", style="green")
    table.add_column("Known models", justify="right")
    table.add_column("Configured")

    for kind in ProviderKind:
        active = " (active)" if kind is settings.active_provider else ""
        configured = "[green]yes[/green]" if has_valid_config(settings, kind) else "[red]no[/red]"
        table.add_row(
            kind.display_name + active,
            kind.value,
            settings.model_for(kind),
            str(len(models_for_provider(kind))),
            configured,
        )

    console.print(table)


@app.command()
def test(
    provider: str = typer.Argument(
        None,
        help="Provider to test (default: AIPAL_PROVIDER)"
    )
):
    """Check that a backend is reachable and accepts our credentials."""
    settings = get_settings(console)
    kind = resolve_provider(settings, provider, console)
    client = require_llm(settings, kind, console)

    console.print(f"[dim]Testing {client.provider_name} ({client.model})...[/dim]")
    with WorkerPool() as pool:
        if isinstance(client, CliAgentClient):
            version = pool.submit(client.get_version).result()
            if version:
                console.print(f"[dim]Version: {version}[/dim]")
        ok = pool.submit(client.test_connection).result()

    if ok:
        console.print(f"[green]{client.provider_name} connection OK[/green]")
    else:
        console.print(f"[red]{client.provider_name} connection failed[/red]")
        raise typer.Exit(code=1)


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Prompt to send"),
    provider: str = typer.Option(
        None,
        "--provider",
        "-p",
        help="Provider to use (default: AIPAL_PROVIDER)"
    ),
    system: str = typer.Option(
        None,
        "--system",
        "-s",
        help="System prompt"
    ),
    stream: bool = typer.Option(
        False,
        "--stream",
        help="Print the answer as it arrives (Ctrl-C cancels)"
    )
):
    """Send one prompt to a backend and print the answer."""
    settings = get_settings(console)
    kind = resolve_provider(settings, provider, console)
    client = require_llm(settings, kind, console)

    if stream:
        _ask_streaming(client, prompt, system)
        return

    with WorkerPool() as pool:
        response = pool.submit(lambda: client.complete(prompt, system)).result()

    if not response.success:
        console.print(f"[red]Error: {response.error_message}[/red]")
        raise typer.Exit(code=1)

    console.print(Panel(response.content, title=f"{client.provider_name} · {client.model}"))
    console.print(f"[dim]Tokens: {response.tokens_used}[/dim]")


def _ask_streaming(client, prompt: str, system: str | None) -> None:
    """Stream an answer to the terminal; Ctrl-C cancels the call."""
    history = [Message.system(system)] if system else []
    outcome: dict[str, object] = {}
    token = CancellationToken()
    sink = StreamSink.from_callbacks(
        on_chunk=lambda text: console.print(text, end="", markup=False, highlight=False),
        on_complete=lambda tokens: outcome.update(tokens=tokens),
        on_error=lambda message: outcome.update(error=message),
        cancel_token=token,
    )

    with WorkerPool() as pool:
        future = pool.submit(lambda: client.chat_streaming(history, prompt, sink))
        try:
            future.result()
        except KeyboardInterrupt:
            token.cancel()
            console.print("\n[yellow]Cancelled[/yellow]")
            raise typer.Exit(code=130)

    console.print()
    if "error" in outcome:
        console.print(f"[red]Error: {outcome['error']}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[dim]Tokens: {outcome.get('tokens', 0)}[/dim]")


if __name__ == "__main__":
    app()
