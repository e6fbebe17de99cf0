"""Main CLI entry point for ask-finance.

This module provides the command-line interface: one-shot chat, the HTTP
server, and inspection of the declared tools and the loop state graph.
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from pydantic import ValidationError
from tabulate import tabulate

from .. import __version__
from ..config import EngineConfig, get_default_config_dir, load_engine_config
from ..errors import RequestValidationError
from ..models import (
    CanvasEvent,
    CitationsEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TextEvent,
    ThreadEvent,
    ToolResultEvent,
    ToolStartEvent,
)
from ..service import ChatService, build_service
from ..services import JsonFileConversationStore
from ..utils import get_logger, setup_logging

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path), help="Configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """Ask Finance CLI.

    A financial assistant that answers questions by calling tools and
    streaming its progress.
    """
    load_dotenv()
    setup_logging(level="DEBUG" if verbose else "WARNING")

    try:
        config = load_engine_config(config_path)
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose


def threads_file(config: EngineConfig) -> Path:
    """File the CLI keeps its threads in."""
    return config.threads_file or get_default_config_dir() / "threads.json"


def render_event(event: StreamEvent, verbose: bool = False) -> None:
    """Print one stream event to the terminal."""
    if isinstance(event, TextEvent):
        click.echo(event.content, nl=False)
    elif isinstance(event, ThreadEvent):
        if verbose:
            click.secho(f"[thread {event.thread_id}]", fg="bright_black")
    elif isinstance(event, ToolStartEvent):
        click.secho(f"[tool] {event.tool}", fg="cyan")
    elif isinstance(event, ToolResultEvent):
        if event.result.type == "error":
            click.secho(f"[tool] {event.tool} failed: {event.result.error}", fg="yellow")
        elif verbose:
            click.secho(f"[tool] {event.tool} -> {event.result.type}", fg="bright_black")
    elif isinstance(event, CitationsEvent):
        for citation in event.citations:
            page = f", p.{citation.page_number}" if citation.page_number else ""
            click.secho(f"[source] {citation.document_name}{page}", fg="green")
    elif isinstance(event, CanvasEvent):
        click.secho(f'[canvas] {event.artifact.type}: "{event.artifact.data.title}"', fg="magenta")
    elif isinstance(event, DoneEvent):
        click.echo()
        if verbose:
            click.secho(
                f"[done] {event.iterations} tool round(s), {event.usage.total_tokens} tokens",
                fg="bright_black",
            )
    elif isinstance(event, ErrorEvent):
        click.echo()
        click.secho(f"Error ({event.kind}): {event.message}", fg="red", err=True)


async def _run_chat(
    service: ChatService,
    message: str,
    thread_id: Optional[str],
    user_id: str,
    verbose: bool,
    json_output: bool,
) -> bool:
    succeeded = False
    async for event in service.stream({"message": message, "threadId": thread_id}, user_id):
        if json_output:
            click.echo(json.dumps({"event": event.event, "data": event.payload()}, ensure_ascii=False))
        else:
            render_event(event, verbose)
        succeeded = isinstance(event, DoneEvent)
    return succeeded


@main.command()
@click.argument("message")
@click.option("--thread", "thread_id", help="Continue an existing thread")
@click.option("--user", "user_id", default="local", show_default=True, help="User ID")
@click.option("--json", "json_output", is_flag=True, help="Print raw events as JSON lines")
@click.pass_context
def chat(ctx: click.Context, message: str, thread_id: Optional[str], user_id: str, json_output: bool) -> None:
    """Ask one question and stream the answer.

    Threads are kept in a JSON file, so --thread continues a conversation
    started by an earlier run.
    """
    config: EngineConfig = ctx.obj["config"]
    try:
        store = JsonFileConversationStore(threads_file(config))
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    service = build_service(config, store=store)
    try:
        succeeded = asyncio.run(
            _run_chat(service, message, thread_id, user_id, ctx.obj["verbose"], json_output)
        )
    except RequestValidationError as e:
        raise click.UsageError(str(e)) from e
    if not succeeded:
        ctx.exit(1)


@main.command()
@click.option("--host", help="Bind address (overrides configuration)")
@click.option("--port", type=int, help="Bind port (overrides configuration)")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Run the HTTP server."""
    from ..api import run_server

    config: EngineConfig = ctx.obj["config"]
    updates = {k: v for k, v in {"host": host, "port": port}.items() if v is not None}
    if updates:
        config = config.model_copy(update={"server": config.server.model_copy(update=updates)})
    run_server(config)


@main.command()
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table", help="Output format")
@click.pass_context
def tools(ctx: click.Context, output_format: str) -> None:
    """List the tools offered to the model."""
    service = build_service(ctx.obj["config"])
    declared = service.registry.list_all()

    if output_format == "json":
        click.echo(json.dumps(service.registry.to_llm_list(), indent=2))
        return

    rows = []
    for tool in declared:
        required = tool.parameters.get("required", [])
        summary = tool.description.split(". ")[0]
        rows.append([tool.name, ", ".join(required), summary[:70]])
    click.echo(tabulate(rows, headers=["Name", "Required", "Description"], tablefmt="grid"))


@main.command()
@click.option("--user", "user_id", default="local", show_default=True, help="User ID")
@click.pass_context
def threads(ctx: click.Context, user_id: str) -> None:
    """List saved threads, most recent first."""
    try:
        store = JsonFileConversationStore(threads_file(ctx.obj["config"]))
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    saved = asyncio.run(store.list_threads(user_id))
    if not saved:
        click.echo("No threads found.")
        return

    rows = [[t.id, t.title, t.updated_at.strftime("%Y-%m-%d %H:%M")] for t in saved]
    click.echo(tabulate(rows, headers=["ID", "Title", "Updated"], tablefmt="grid"))


@main.command()
def graph() -> None:
    """Print the loop state graph as a Mermaid diagram."""
    from ..agent import LoopStateMachine

    click.echo(LoopStateMachine().visualize())


if __name__ == "__main__":
    main()
