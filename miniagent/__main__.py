"""miniagent CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import sys


def main(argv: list[str] | None = None) -> None:

    import importlib.metadata

    try:
        version = importlib.metadata.version("miniagent")
    except importlib.metadata.PackageNotFoundError:
        from miniagent import __version__ as version

    parser = argparse.ArgumentParser(
        prog="miniagent",
        description="miniagent — natural-language diagnostics with human-confirmed shell tools",
    )
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {version}")
    parser.add_argument("--config", default=None, help="Path to custom configuration file (default: ~/.miniagent/config.json)")
    parser.add_argument("--verbose", action="store_true", help="Mirror log output to stderr")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    subparsers.add_parser("chat", help="Start an interactive session (default)")
    subparsers.add_parser("tools", help="List the tools and what the security policy allows")
    subparsers.add_parser("status", help="Check that the model provider is reachable")

    args = parser.parse_args(argv)

    from rich.console import Console
    from rich.text import Text

    from miniagent.config import get_config
    from miniagent.errors import ConfigError
    from miniagent.logger import setup_logging

    console = Console()
    try:
        cfg = get_config(args.config)
    except ConfigError as e:
        console.print(Text.assemble(("Error loading config: ", "bold red"), str(e)))
        sys.exit(1)

    setup_logging(cfg.log_file, level=cfg.log_level.upper(), verbose=args.verbose)

    if args.command == "tools":
        _run_tools(console, cfg)
    elif args.command == "status":
        _run_status(console, cfg)
    else:
        _run_chat(console, cfg)


def _build_dispatcher(cfg):
    from miniagent.agent import ToolDispatcher, ToolPolicy, select_executor

    policy = ToolPolicy(cfg.allowed, cfg.denied)
    executor = select_executor(policy=policy)
    return ToolDispatcher(executor, policy)


def _run_chat(console, cfg) -> None:
    """Run the interactive Thought/Action/Observation session."""
    from miniagent.agent import AgentLoop
    from miniagent.console import ConsoleConfirmation, EventRenderer, read_user_input
    from miniagent.llm import build_client

    async def session() -> None:
        client = build_client(cfg)
        agent = AgentLoop(client, _build_dispatcher(cfg), ConsoleConfirmation(console))
        try:
            await agent.run(lambda: read_user_input(console), EventRenderer(console))
        finally:
            await client.close()

    console.print("[bold]miniagent started...[/] (type 'exit' or 'quit' to leave)")
    try:
        asyncio.run(session())
    except KeyboardInterrupt:
        pass
    console.print("\nAgent session ended.")


def _run_tools(console, cfg) -> None:
    """Print the tool catalog with the policy decision for each tool."""
    from rich.table import Table

    from miniagent.agent.policy import Decision
    from miniagent.agent.tool_defs import get_tool_definitions

    dispatcher = _build_dispatcher(cfg)
    table = Table(title=f"Tools ({dispatcher.executor.platform} executor)")
    table.add_column("Tool", style="bold")
    table.add_column("Policy")
    table.add_column("Description")
    for tool in get_tool_definitions():
        fn = tool["function"]
        decision = dispatcher.policy.decide(fn["name"])
        style = "green" if decision is Decision.ALLOWED else "red"
        table.add_row(fn["name"], f"[{style}]{decision.value}[/]", fn["description"])
    console.print(table)


def _run_status(console, cfg) -> None:
    """Check that the configured model provider answers."""
    from miniagent.llm import build_client

    async def check() -> bool:
        client = build_client(cfg)
        try:
            return await client.health_check()
        finally:
            await client.close()

    online = asyncio.run(check())
    where = cfg.base_url if cfg.provider == "openai" else cfg.ollama_url
    state = "[green]● online[/]" if online else "[red]● offline[/]"
    console.print(f"{cfg.provider} ({cfg.model}) at {where}: {state}")
    if not online:
        sys.exit(1)


if __name__ == "__main__":
    main()
