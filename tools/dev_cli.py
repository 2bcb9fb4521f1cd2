from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from tradelog.config.paths import data_dir, default_db_path, ensure_data_dirs
from tradelog.config.settings import get_settings
from tradelog.ingest.brokers import BROKER_PROFILES, IMPORT_BROKERS, get_broker_profile

DEFAULT_OWNER = "local"


def _store(args: argparse.Namespace):
    from tradelog.db.migrate import migrate
    from tradelog.db.repository import SqlTradeStore

    return SqlTradeStore(migrate(args.database_url))


def _cmd_init_db(args: argparse.Namespace) -> int:
    from tradelog.db.migrate import migrate

    migrate(args.database_url)
    print("Initialized database schema.")
    return 0


def _cmd_paths(_: argparse.Namespace) -> int:
    ensure_data_dirs()
    settings = get_settings()
    print(f"DATA_DIR={data_dir()}")
    print(f"DB_PATH={default_db_path()}")
    print(f"DATABASE_URL={settings.database_url}")
    print(f"INSTRUMENTS_FILE={settings.instruments_file or ''}")
    return 0


def _cmd_brokers(args: argparse.Namespace) -> int:
    profiles = [get_broker_profile(args.name)] if args.name else list(BROKER_PROFILES.values())
    for profile in profiles:
        flag = "fills (FIFO PnL)" if profile.reports_fills else "reported PnL"
        marker = " [import]" if profile.name in IMPORT_BROKERS else ""
        print(f"{profile.name}{marker}: {flag}, sides {profile.side_convention.value}")
        if profile.file_pattern:
            print(f"  file: {profile.file_pattern}")
        if profile.notes:
            print(f"  {profile.notes}")
        for column in profile.columns:
            required = "*" if column.required else " "
            target = f" -> {column.maps_to}" if column.maps_to else ""
            print(f"  {required} {column.label}{target}: {column.description}")
        for step, instruction in enumerate(profile.instructions, start=1):
            print(f"  {step}. {instruction}")
    return 0


def _cmd_import(args: argparse.Namespace) -> int:
    from tradelog.ingest.importer import import_statement

    text = Path(args.file).expanduser().read_text(encoding="utf-8-sig")
    result = import_statement(
        _store(args),
        owner=args.owner,
        broker=args.broker,
        account=args.account or args.broker,
        text=text,
        fee_override=args.fee,
        earliest_date=args.since,
    )
    print(result.message)
    return 0


def _cmd_sources(args: argparse.Namespace) -> int:
    sources = _store(args).list_sources(args.owner)
    if not sources:
        print("No imported sources yet.")
        return 0
    for source in sources:
        latest = source.latest_entry_ts.isoformat(sep=" ") if source.latest_entry_ts else "no timestamps"
        print(f"{source.account}\t{source.broker}\t{source.trade_count} trades\t{latest}")
    return 0


def _cmd_delete_source(args: argparse.Namespace) -> int:
    deleted = _store(args).delete(args.owner, args.account)
    print(f"Deleted {deleted} trades from {args.account}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Trade log developer CLI")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL.")
    parser.add_argument("--owner", default=DEFAULT_OWNER, help="Owner id the trades belong to.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sp_init_db = subparsers.add_parser("init-db", help="Create/update local database schema")
    sp_init_db.set_defaults(func=_cmd_init_db)

    sp_paths = subparsers.add_parser("paths", help="Print configured project paths")
    sp_paths.set_defaults(func=_cmd_paths)

    sp_brokers = subparsers.add_parser("brokers", help="Print broker profiles and their CSV schema")
    sp_brokers.add_argument("name", nargs="?", default="", help="Only show this broker.")
    sp_brokers.set_defaults(func=_cmd_brokers)

    sp_import = subparsers.add_parser("import", help="Import a broker statement CSV")
    sp_import.add_argument("file", help="Path to the statement CSV.")
    sp_import.add_argument("--broker", choices=list(IMPORT_BROKERS), default=IMPORT_BROKERS[0])
    sp_import.add_argument(
        "--account", default="", help="Account name to file trades under (defaults to the broker)."
    )
    sp_import.add_argument("--fee", type=float, default=None, help="Extra fee per futures contract.")
    sp_import.add_argument("--since", default=None, help="Skip trades before this date (YYYY-MM-DD).")
    sp_import.set_defaults(func=_cmd_import)

    sp_sources = subparsers.add_parser("sources", help="List imported accounts")
    sp_sources.set_defaults(func=_cmd_sources)

    sp_delete = subparsers.add_parser("delete-source", help="Delete every trade for an account")
    sp_delete.add_argument("account", help="Account name to delete.")
    sp_delete.set_defaults(func=_cmd_delete_source)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
