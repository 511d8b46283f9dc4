"""Offline image reconciliation.

    python -m app.cli diagnose
    python -m app.cli repair [--dedupe] [--dry-run]

Shares the lock file with the scheduled worker, so a manual run never
overlaps a scheduled one.
"""

import argparse
import asyncio
import json
import sys
from collections.abc import Iterable

from loguru import logger

from app.core.config import get_settings
from app.db import models_registry  # noqa: F401 - Import to register models
from app.db.session import async_session_maker, engine
from app.imagestore.layout import StorageLayout
from app.imagestore.lock import ReconcileLockError
from app.imagestore.repair import RepairPolicy
from app.services.reconciliation_service import ReconciliationService


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Diagnose and repair store and product images.")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("diagnose", help="Report divergences without changing anything")

    repair = commands.add_parser("repair", help="Diagnose, then repair what can be repaired")
    repair.add_argument(
        "--dedupe",
        action="store_true",
        help="Delete losing duplicate primaries instead of demoting them",
    )
    repair.add_argument("--dry-run", action="store_true", help="Print the plan without applying it")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    layout = StorageLayout.from_settings(settings)

    async with async_session_maker() as db:
        service = ReconciliationService(db, layout, settings.reconcile_lock_file)
        if args.command == "diagnose":
            report = await service.diagnose()
            response = service.to_diagnose_response(report)
            exit_code = 0 if report.is_clean else 1
        else:
            try:
                reconcile_run = await service.reconcile(
                    RepairPolicy(dedupe=args.dedupe), dry_run=args.dry_run
                )
            except ReconcileLockError as e:
                logger.error(str(e))
                return 2
            response = service.to_repair_response(reconcile_run)
            exit_code = 1 if reconcile_run.outcome.failed else 0

    await engine.dispose()
    sys.stdout.write(json.dumps(response.model_dump(by_alias=True), indent=2) + "\n")
    return exit_code


def main(argv: Iterable[str] | None = None) -> int:
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
