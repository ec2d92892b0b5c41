from __future__ import annotations

import argparse
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from stockmirror.catalog.client import CatalogClient
from stockmirror.core.config import get_settings
from stockmirror.core.errors import StockMirrorError
from stockmirror.core.logging import configure_logging
from stockmirror.db.base import Base
from stockmirror.db.session import SessionLocal, engine
from stockmirror.matching.engine import MatchMethod
from stockmirror.matching.vendors import VENDOR_RULES
from stockmirror.services.mirror import MirrorStore
from stockmirror.services.reconciliation import open_session
from stockmirror.services.stock import BulkStockApplier
from stockmirror.services.sync import FullSyncOrchestrator
from stockmirror.services.tags import list_tags

logger = logging.getLogger("stockmirror.cli")


def run_sync(args: argparse.Namespace) -> int:
    with CatalogClient.from_settings() as client, SessionLocal() as db:
        summary = FullSyncOrchestrator(db, client).run()
        print(
            f"run={summary.run.id} status={summary.run.status} fetched={summary.items_fetched} "
            f"new={summary.items_created} updated={summary.items_updated} deleted={summary.items_deleted}"
        )
    return 0


def run_tags(args: argparse.Namespace) -> int:
    with CatalogClient.from_settings() as client:
        listing = list_tags(client)
    for tag in listing.tags:
        print(f"{tag.id}\t{tag.name}")
    return 0


def run_reconcile(args: argparse.Namespace) -> int:
    csv_text = Path(args.csv).read_bytes()
    with CatalogClient.from_settings() as client, SessionLocal() as db:
        store = MirrorStore(db)
        session = open_session(
            store,
            client,
            tag_id=args.tag,
            csv_text=csv_text,
            vendor=args.vendor,
            method=MatchMethod(args.method),
            identifier_column=args.id_column,
            stock_column=args.stock_column,
        )
        if session.mapping_error:
            print(f"mapping error: {session.mapping_error}")
            return 2

        result = session.result
        for row in result.matched:
            print(f"match\t{row.item.id}\t{row.item.name}\t{row.current_stock} + {row.delta} = {row.new_stock}")
        for row in result.unmatched:
            hint = f"\tdid you mean {row.suggestion.name}?" if row.suggestion else ""
            print(f"unmatched\t{row.search_value}{hint}")
        for item in result.missing_tag:
            print(f"missing-tag\t{item.item_id}\t{item.name}")
        print(
            f"matched={len(result.matched)} unmatched={len(result.unmatched)} "
            f"missing_tag={len(result.missing_tag)} total_delta={result.total_delta}"
        )

        if not args.apply:
            return 0
        report = session.apply(BulkStockApplier(client, store))
        print(report.message)
        for failure in report.failures:
            print(f"failed\t{failure.item_id}\t{failure.item_name}\t{failure.error_message}")
        return 0 if report.all_succeeded else 1


@dataclass(frozen=True)
class Command:
    handler: Callable[[argparse.Namespace], int]
    help: str


COMMANDS: dict[str, Command] = {
    "sync": Command(handler=run_sync, help="Mirror the full remote catalog into the local database"),
    "tags": Command(handler=run_tags, help="List remote tags"),
    "reconcile": Command(handler=run_reconcile, help="Match a vendor CSV against a tag and optionally apply stock"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="StockMirror catalog sync and stock reconciliation")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, command in COMMANDS.items():
        subparsers.add_parser(name, help=command.help)

    reconcile = subparsers.choices["reconcile"]
    reconcile.add_argument("--csv", required=True, help="Path to the vendor CSV file")
    reconcile.add_argument("--tag", required=True, help="Vendor tag id")
    reconcile.add_argument("--vendor", default="default", choices=[rule.name for rule in VENDOR_RULES])
    reconcile.add_argument("--method", default=MatchMethod.UPC.value, choices=[method.value for method in MatchMethod])
    reconcile.add_argument("--id-column", default=None, help="CSV column holding the UPC or name")
    reconcile.add_argument("--stock-column", default=None, help="CSV column holding the quantity")
    reconcile.add_argument("--apply", action="store_true", help="Write the new stock levels to the remote catalog")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(get_settings().log_level)
    Base.metadata.create_all(bind=engine)
    try:
        return COMMANDS[args.command].handler(args)
    except (StockMirrorError, ValueError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
