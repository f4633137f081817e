"""
Command line entry point for TeamSync.

    teamsync serve              run the central copy server
    teamsync sync [--user ID]   run a syncing client until interrupted
    teamsync view --user ID     summarise the local replica for one viewer
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from . import __version__
from .access import AccessScopeResolver, report_overdue, unread_count
from .models import Snapshot
from .server import CentralServer
from .sync import SyncCoordinator
from .transport import LocalFileStore, ReplicaTransport
from .utils.config import TeamSyncConfig, load_config
from .utils.errors import TeamSyncError, ValidationError
from .utils.logging import get_logger, setup_logging


logger = get_logger("teamsync.cli")
console = Console()


def summarise(view: Snapshot, title: str = "Workspace") -> Table:
    """Entity counts of a (filtered) snapshot."""
    viewer = view.current_user
    table = Table(title=f"{title} ({viewer.display_name if viewer else 'no session'})")
    table.add_column("Collection")
    table.add_column("Count", justify="right")

    table.add_row("users", str(len(view.users)))
    table.add_row("teams", str(len(view.teams)))
    table.add_row("projects", str(sum(len(t.projects) for t in view.teams)))
    table.add_row("meetings", str(len(view.meetings)))
    table.add_row("weekly reports", str(len(view.weekly_reports)))
    table.add_row("notes", str(len(view.notes)))
    table.add_row("working groups", str(len(view.working_groups)))
    table.add_row("unread notifications", str(unread_count(view)))
    if viewer is not None:
        table.add_row("report overdue", "yes" if report_overdue(view) else "no")
    table.caption = f"lastUpdated={view.last_updated}"
    return table


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="teamsync", description="TeamSync workspace sync")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=str, action="append", help="Config file path")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the central copy server")
    serve.add_argument("--host", type=str, help="Host to bind to")
    serve.add_argument("--port", type=int, help="Port to bind to")
    serve.add_argument("--db", type=Path, help="Path of the central JSON document")

    sync = sub.add_parser("sync", help="Run a syncing client until interrupted")
    sync.add_argument("--remote", type=str, help="Central server base URL")
    sync.add_argument("--local", type=Path, help="Local replica path")
    sync.add_argument("--user", type=str, help="Log in as this user id")

    view = sub.add_parser("view", help="Summarise the local replica for one viewer")
    view.add_argument("--user", type=str, required=True, help="Viewer user id")
    view.add_argument("--local", type=Path, help="Local replica path")

    return parser


async def run_server(config: TeamSyncConfig, args: argparse.Namespace) -> None:
    if args.db:
        config.server.db_path = args.db.expanduser().absolute()

    server = CentralServer(config.server)
    await server.start(args.host, args.port)
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


async def run_client(config: TeamSyncConfig, args: argparse.Namespace) -> None:
    if args.remote:
        config.sync.remote_url = args.remote.rstrip("/")

    coordinator = SyncCoordinator(
        ReplicaTransport.from_config(config, local_path=args.local),
        config.sync,
    )

    def on_snapshot(snapshot: Snapshot) -> None:
        console.print(summarise(coordinator.view(), title="Workspace updated"))

    def on_connectivity(event: str, data: dict) -> None:
        console.print("[green]online[/green]" if data["online"] else "[red]offline[/red]")

    snapshot = await coordinator.bootstrap()

    if args.user:
        user = snapshot.find_user(args.user)
        if user is None:
            raise ValidationError("user", args.user, "must exist in the workspace")
        await coordinator.login(user)

    console.print(summarise(coordinator.view()))
    unsubscribe = coordinator.store.subscribe(on_snapshot)
    coordinator.register_event_handler("connectivity", on_connectivity)

    await coordinator.start()
    try:
        await asyncio.Event().wait()
    finally:
        unsubscribe()
        await coordinator.stop()


def show_view(config: TeamSyncConfig, args: argparse.Namespace) -> int:
    snapshot = LocalFileStore(args.local or config.storage.local_path).load()
    viewer = snapshot.find_user(args.user)
    if viewer is None:
        console.print(f"[red]Unknown user id: {args.user}[/red]")
        return 1

    view = AccessScopeResolver().resolve(snapshot.evolve(current_user_id=viewer.id), viewer)
    console.print(summarise(view))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = asyncio.run(load_config(config_paths=args.config))
    except TeamSyncError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 2

    setup_logging(
        app_name=config.app_name,
        log_level="DEBUG" if args.debug or config.debug else config.logging.level,
        log_dir=config.logging.directory,
        enable_json=config.logging.format == "json",
        enable_sentry=config.logging.enable_sentry,
        sentry_dsn=config.logging.sentry_dsn,
    )

    try:
        if args.command == "serve":
            asyncio.run(run_server(config, args))
        elif args.command == "sync":
            asyncio.run(run_client(config, args))
        elif args.command == "view":
            return show_view(config, args)
    except KeyboardInterrupt:
        logger.info("stopped_by_user", command=args.command)
    except TeamSyncError as e:
        logger.error("command_failed", command=args.command, **e.to_dict()["error"])
        console.print(f"[red]{e.message}[/red]")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
