"""
Command-line interface for managing agent extensions.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import yaml
from rich.console import Console
from rich.table import Table

from agent_extensions.config import ExtensionsConfig
from agent_extensions.errors import ExtensionError
from agent_extensions.events import StateTransition
from agent_extensions.logging import setup_logging
from agent_extensions.manager import ExtensionUpdateService
from agent_extensions.models import ExtensionInstallMetadata, InstallType
from agent_extensions.state import ExtensionUpdateState

console = Console()

_STATE_STYLES = {
    ExtensionUpdateState.NOT_UPDATABLE: "dim",
    ExtensionUpdateState.CHECKING_FOR_UPDATES: "yellow",
    ExtensionUpdateState.UP_TO_DATE: "green",
    ExtensionUpdateState.UPDATE_AVAILABLE: "cyan",
    ExtensionUpdateState.UPDATING: "yellow",
    ExtensionUpdateState.UPDATED_NEEDS_RESTART: "magenta",
    ExtensionUpdateState.ERROR: "red",
}


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Agent extension manager",
        prog="agent-ext",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (debug logging)",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to a YAML config file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("list", help="List installed extensions")
    subparsers.add_parser("check", help="Check installed extensions for updates")

    update_parser = subparsers.add_parser("update", help="Update extensions")
    update_parser.add_argument("names", nargs="*", help="Extensions to update")
    update_parser.add_argument(
        "--all",
        action="store_true",
        help="Update every extension with an update available",
    )

    install_parser = subparsers.add_parser("install", help="Install an extension")
    install_parser.add_argument("source", help="Git URL or local path")
    install_parser.add_argument(
        "-t",
        "--type",
        choices=[t.value for t in InstallType],
        default=None,
        help="Install type (default: git for URLs, local for paths)",
    )
    install_parser.add_argument("--ref", default=None, help="Branch, tag or commit")
    install_parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Overwrite an existing installation",
    )

    uninstall_parser = subparsers.add_parser("uninstall", help="Uninstall an extension")
    uninstall_parser.add_argument("name", help="Extension name")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    config_subparsers.add_parser("show", help="Show current configuration")
    config_init_parser = config_subparsers.add_parser("init", help="Write a default config file")
    config_init_parser.add_argument(
        "-o",
        "--output",
        default="extensions-config.yaml",
        help="Output file path",
    )

    args = parser.parse_args(argv)

    if getattr(args, "verbose", False):
        setup_logging("DEBUG")
    else:
        setup_logging("WARNING")

    if args.command is None:
        parser.print_help()
        return

    config = _load_config(args.config)
    if args.command == "config":
        cmd_config(args, config)
        return

    service = ExtensionUpdateService(config)
    try:
        if args.command == "list":
            cmd_list(service)
        elif args.command == "check":
            asyncio.run(cmd_check(service))
        elif args.command == "update":
            asyncio.run(cmd_update(service, args))
        elif args.command == "install":
            asyncio.run(cmd_install(service, args))
        elif args.command == "uninstall":
            asyncio.run(service.uninstall(args.name))
            console.print(f"[green]Uninstalled {args.name}[/green]")
    except ExtensionError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


def _load_config(path: str | None) -> ExtensionsConfig:
    if path:
        return ExtensionsConfig.from_yaml(Path(path))
    return ExtensionsConfig()


def _render_state(state: ExtensionUpdateState | None) -> str:
    if state is None:
        return "[dim]unknown[/dim]"
    style = _STATE_STYLES[state]
    return f"[{style}]{state.value}[/{style}]"


def cmd_list(service: ExtensionUpdateService) -> None:
    """List installed extensions."""
    extensions = service.list_extensions()

    table = Table(title="Installed Extensions")
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Type", style="dim")
    table.add_column("Source", style="dim")

    for ext in extensions:
        table.add_row(
            ext.name,
            ext.version,
            ext.type.value if ext.type else "?",
            ext.source or "",
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(extensions)} extensions[/dim]")


async def cmd_check(service: ExtensionUpdateService) -> None:
    """Check all extensions for updates."""

    def on_state(event: StateTransition) -> None:
        if event.state.is_in_flight:
            console.print(f"[dim]{event.name}: {event.state.value}...[/dim]")

    service.event_bus.on_transition(on_state)
    states = await service.check_all()

    table = Table(title="Extension Updates")
    table.add_column("Name", style="cyan")
    table.add_column("State")
    for name, state in states.items():
        table.add_row(name, _render_state(state))
    console.print(table)


async def cmd_update(service: ExtensionUpdateService, args: argparse.Namespace) -> None:
    """Update named extensions, or every updatable one with --all."""
    if args.all or not args.names:
        await service.check_all()
        infos = await service.update_all()
    else:
        infos = []
        for name in args.names:
            info = await service.update(name)
            if info is not None:
                infos.append(info)

    if not infos:
        console.print("[dim]No extensions were updated.[/dim]")
        return

    for info in infos:
        console.print(
            f"[green]Updated {info.name}[/green] "
            f"{info.original_version} -> {info.updated_version}"
        )
    console.print("[magenta]Restart the agent to use the updated extensions.[/magenta]")


async def cmd_install(service: ExtensionUpdateService, args: argparse.Namespace) -> None:
    """Install an extension."""
    install_type = InstallType(args.type) if args.type else _guess_install_type(args.source)
    metadata = ExtensionInstallMetadata(type=install_type, source=args.source, ref=args.ref)
    extension = await service.install(metadata, force=args.force)
    console.print(f"[green]Installed {extension.name} {extension.version}[/green]")


def _guess_install_type(source: str) -> InstallType:
    if Path(source).expanduser().is_dir():
        return InstallType.LOCAL
    return InstallType.GIT


def cmd_config(args: argparse.Namespace, config: ExtensionsConfig) -> None:
    """Show or initialize configuration."""
    if args.config_command == "init":
        output = Path(args.output)
        if output.exists():
            console.print(f"[red]File already exists: {output}[/red]")
            sys.exit(1)
        output.write_text(yaml.safe_dump(ExtensionsConfig().to_dict(), sort_keys=False))
        console.print(f"[green]Wrote {output}[/green]")
    else:
        console.print(yaml.safe_dump(config.to_dict(), sort_keys=False), soft_wrap=True)


if __name__ == "__main__":
    main()
