"""CLI commands for relaybot."""

from __future__ import annotations

import asyncio
import json

import typer
from rich.table import Table

from relaybot import __logo__
from relaybot.cli.core import app, console

_EXIT_COMMANDS = {"/quit", "/exit", "exit", "quit"}
_PEER_INBOX = "local-peer"
_PEER_ADDRESS = "0xl0ca1"


@app.command("config")
def show_config(
    as_json: bool = typer.Option(False, "--json", help="Print the raw camelCase JSON"),
) -> None:
    """Show the effective configuration."""
    from relaybot.config.loader import convert_to_camel, get_config_path, load_config

    config_path = get_config_path()
    config = load_config()

    if as_json:
        console.print_json(json.dumps(convert_to_camel(config.model_dump(mode="json"))))
        return

    source = config_path if config_path.exists() else "defaults (no config file)"
    console.print(f"{__logo__} relaybot configuration from [cyan]{source}[/cyan]\n")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Setting")
    table.add_column("Value")
    for section in ("agent", "reconnect", "telemetry", "logging"):
        for key, value in getattr(config, section).model_dump(mode="json").items():
            table.add_row(f"{section}.{key}", str(value))
    console.print(table)


@app.command()
def chat(
    logs: bool = typer.Option(False, "--logs", help="Show agent logs while chatting"),
) -> None:
    """Chat with a local echo agent over the in-memory client."""
    from loguru import logger

    from relaybot.adapters.memory import MemoryClient
    from relaybot.agent.loop import Agent
    from relaybot.config.loader import load_config
    from relaybot.core.context import AgentContext
    from relaybot.core.models import ConversationKind, EventCategory, LifecycleEvent
    from relaybot.core.pipeline import NextFn, Outcome
    from relaybot.pipeline import DeduplicationMiddleware, RateLimitMiddleware
    from relaybot.utils.logging import configure_logging

    config = load_config()
    if logs:
        configure_logging(config.logging.level)
    else:
        logger.disable("relaybot")

    client = MemoryClient("relaybot-cli")
    client.register_identity(_PEER_INBOX, _PEER_ADDRESS)
    conversation = client.add_conversation("cli", ConversationKind.DM)

    agent = Agent(client, config=config.agent)
    processed = asyncio.Event()

    async def mark_processed(ctx: AgentContext, next: NextFn) -> Outcome:
        try:
            return await next()
        finally:
            processed.set()

    agent.use(mark_processed)
    agent.use(DeduplicationMiddleware())
    agent.use(RateLimitMiddleware(max_messages=20, window_seconds=60))

    @agent.handler(EventCategory.TEXT)
    async def echo(ctx: AgentContext) -> None:
        text = ctx.message.text or ""
        if text.strip() == "/whoami":
            await ctx.send(f"You are {await ctx.get_sender_address()}")
            return
        await ctx.send(f"echo: {text}")
        await ctx.react("👀")

    agent.on_event(LifecycleEvent.ERROR, lambda e: console.print(f"[red]Error: {e}[/red]"))

    console.print(f"{__logo__} Interactive mode (type /quit or Ctrl+C to exit)\n")

    async def run_interactive() -> None:
        task = asyncio.create_task(agent.start())
        try:
            while True:
                try:
                    user_input = console.input("[bold blue]You:[/bold blue] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\nGoodbye!")
                    break
                if user_input.strip().lower() in _EXIT_COMMANDS:
                    console.print("Goodbye!")
                    break
                if not user_input.strip():
                    continue

                seen = len(conversation.sent)
                processed.clear()
                client.push_text(_PEER_INBOX, conversation.id, user_input)
                await processed.wait()
                for sent in conversation.sent[seen:]:
                    if sent.type_id == "text":
                        console.print(f"\n{__logo__} {sent.content}\n")
        finally:
            agent.stop()
            client.close()
            await task

    asyncio.run(run_interactive())
