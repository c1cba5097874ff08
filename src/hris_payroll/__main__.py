"""Run the payroll API server, or create the database schema."""

import argparse
import asyncio
import logging

import uvicorn

from hris_payroll.config import configure_logging, get_settings
from hris_payroll.database import create_schema, dispose_db

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m hris_payroll",
        description="HRIS payroll service",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")
    subparsers.add_parser("serve", help="Run the API server (default)")
    subparsers.add_parser("create-schema", help="Create missing database tables")
    return parser


async def _create_schema() -> None:
    try:
        await create_schema()
    finally:
        await dispose_db()


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    if args.command == "create-schema":
        asyncio.run(_create_schema())
        logger.info("Database schema created")
        return

    uvicorn.run(
        "hris_payroll.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
