"""Switchboard command line.

Previews an inbox's execution plan or runs the pipeline for one message
against the agents and inboxes declared in switchboard.yaml.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load_config(config_path: Optional[str], log_level: Optional[str]) -> dict:
    from ..core.config import get_effective_config

    overrides = {"logging": {"level": log_level}} if log_level else None
    config = get_effective_config(Path(config_path) if config_path else None, overrides=overrides)
    _configure_logging(config.get("logging", {}).get("level", "INFO"))
    return config


@click.group()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="Path to switchboard.yaml")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.pass_context
def switchboard_cli(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """Switchboard - run AI agent pipelines for support inboxes."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = _load_config(config_path, log_level)


@switchboard_cli.command()
@click.argument("inbox_id")
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON")
@click.pass_context
def preview(ctx: click.Context, inbox_id: str, as_json: bool) -> None:
    """Show which agents would run for INBOX_ID, stage by stage."""
    from ..core.errors import ConfigurationFault
    from ..core.orchestrator import PipelineOrchestrator
    from ..core.sources import YamlConfigSource

    config = ctx.obj["config"]
    orchestrator = PipelineOrchestrator.from_config(config, YamlConfigSource(config), generator=None)

    try:
        plan = asyncio.run(orchestrator.preview(inbox_id))
    except ConfigurationFault as e:
        console.print(f"  [red]CONFIG ERROR[/red] {e}")
        sys.exit(1)

    if as_json:
        click.echo(plan.model_dump_json(indent=2))
        return

    state = "[green]active[/green]" if plan.is_active else "[yellow]inactive[/yellow]"
    console.print(f"\n  [bold cyan]{plan.inbox.name or plan.inbox.id}[/bold cyan] ({state})")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Stage")
    table.add_column("Agent")
    table.add_column("Type")
    table.add_column("Priority", justify="right")
    table.add_column("Mode")

    for agent in plan.pre_process:
        table.add_row("pre-process", agent.name, agent.agent_type, str(agent.priority), "sequential")
    if plan.response_agent:
        table.add_row("response", plan.response_agent.name, plan.response_agent.agent_type, "-", "reply")
    for agent in plan.main_process:
        table.add_row("main", agent.name, agent.agent_type, str(agent.priority), "parallel")
    for agent in plan.post_process:
        table.add_row("post-process", agent.name, agent.agent_type, str(agent.priority), "sequential")

    console.print(table)


async def _run_pipeline(orchestrator, inbox_id: str, message):
    try:
        return await orchestrator.run(inbox_id, message)
    finally:
        await orchestrator.background.drain(timeout=30)


@switchboard_cli.command()
@click.argument("inbox_id")
@click.option("--message", "-m", required=True, help="Inbound message text")
@click.option("--conversation-id", type=int, help="Messaging-platform conversation ID")
@click.option("--account-id", type=int, help="Messaging-platform account ID")
@click.option("--message-id", type=str, help="ID of the inbound message")
@click.option("--ai-provider", type=click.Choice(["openai", "anthropic"]))
@click.option("--ai-model", type=str, help="Model override")
@click.option("--ai-endpoint", type=str, help="Endpoint override")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def run(
    ctx: click.Context,
    inbox_id: str,
    message: str,
    conversation_id: int | None,
    account_id: int | None,
    message_id: str | None,
    ai_provider: str | None,
    ai_model: str | None,
    ai_endpoint: str | None,
    as_json: bool,
) -> None:
    """Run the agent pipeline of INBOX_ID for one message."""
    from ..core.errors import ConfigurationFault
    from ..core.orchestrator import PipelineOrchestrator
    from ..core.sources import YamlConfigSource
    from ..messaging.chatwoot import ChatwootClient
    from ..models.message import InboundMessage
    from ..providers.base import get_ai_provider

    config = ctx.obj["config"]

    try:
        provider = get_ai_provider(
            config,
            provider_override=ai_provider,
            model_override=ai_model,
            endpoint_override=ai_endpoint,
        )
    except ValueError as e:
        console.print(f"  [red]ERROR[/red] Failed to initialize AI provider: {e}")
        sys.exit(13)

    orchestrator = PipelineOrchestrator.from_config(
        config,
        YamlConfigSource(config),
        provider,
        ChatwootClient.from_config(config),
    )
    inbound = InboundMessage(
        content=message,
        message_id=message_id,
        conversation_id=conversation_id,
        account_id=account_id,
    )

    try:
        result = asyncio.run(_run_pipeline(orchestrator, inbox_id, inbound))
    except ConfigurationFault as e:
        console.print(f"  [red]CONFIG ERROR[/red] {e}")
        sys.exit(1)

    if as_json:
        click.echo(result.model_dump_json(indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Stage")
    table.add_column("Agent")
    table.add_column("Status")
    table.add_column("Time", justify="right")
    table.add_column("Detail")

    for r in result.results:
        status = "[green]OK[/green]" if r.success else "[red]FAILED[/red]"
        detail = r.error or (r.response or "")
        if r.message_sent is False:
            detail = f"not sent: {r.send_error}"
        table.add_row(r.stage.value, r.agent_name, status, f"{r.duration_ms / 1000:.1f}s", detail[:80])

    console.print(table)
    console.print(
        f"  {result.successful_agents}/{result.total_agents} agents succeeded | "
        f"reply generated: {'yes' if result.summary.response_generated else 'no'} | "
        f"sent: {'yes' if result.summary.message_sent else 'no'}"
    )
    console.print()


@switchboard_cli.command(name="inboxes")
@click.pass_context
def list_inboxes(ctx: click.Context) -> None:
    """List inbox IDs declared in the config file."""
    from ..core.sources import YamlConfigSource

    for inbox_id in YamlConfigSource(ctx.obj["config"]).inbox_ids:
        click.echo(inbox_id)


def main() -> None:
    switchboard_cli()


if __name__ == "__main__":
    main()
