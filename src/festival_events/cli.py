"""Command-line interface for the festival events service."""

import argparse
import asyncio
import logging
import sys

from festival_events.config import get_settings

logger = logging.getLogger(__name__)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "festival_events.api:create_app",
        factory=True,
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


async def _init_db() -> None:
    from festival_events.database.connection import close_db, create_tables, init_db

    await init_db()
    try:
        await create_tables()
    finally:
        await close_db()


async def _reconcile(user_ids: list[str]) -> int:
    from festival_events.database.connection import close_db, get_db, init_db
    from festival_events.services.collection_engine import CollectionEngine

    await init_db()
    changed = 0
    try:
        for user_id in user_ids:
            async with get_db() as session:
                repair = await CollectionEngine(session).reconcile_ownership(user_id)
            if repair.changed:
                changed += 1
                print(
                    f"{user_id}: events +{repair.added_events} -{repair.removed_events}, "
                    f"microevents +{repair.added_microevents} -{repair.removed_microevents}"
                )
            else:
                print(f"{user_id}: ok")
    finally:
        await close_db()

    logger.info(f"Reconciled {len(user_ids)} users, {changed} changed")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Festival Events - festival discovery API"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", help="Bind address (default from HOST)")
    serve_parser.add_argument("--port", type=int, help="Port (default from PORT)")
    serve_parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes"
    )

    # Init-db command
    subparsers.add_parser("init-db", help="Create database tables")

    # Reconcile command
    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="Rebuild users' created sets from event and microevent ownership",
    )
    reconcile_parser.add_argument("user_ids", nargs="+", metavar="USER_ID")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        return _serve(args)
    if args.command == "init-db":
        asyncio.run(_init_db())
        return 0
    if args.command == "reconcile":
        return asyncio.run(_reconcile(args.user_ids))

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
