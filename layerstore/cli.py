from __future__ import annotations

import argparse
import json
import sys
import textwrap
from importlib.metadata import PackageNotFoundError, version as dist_version
from pathlib import Path
from typing import Any

from .errors import StoreError
from .io_utils import atomic_write_bytes
from .logging import configure_cli_logger
from .records import dump_records
from .settings import open_store
from .store import LayeredRecordStore

_LOG_MODE_CHOICES = ("warning", "info", "debug")


def _resolve_version() -> str:
    try:
        return dist_version("Layer-Store")
    except PackageNotFoundError:
        return "dev"


class _StoreHelpFormatter(argparse.RawDescriptionHelpFormatter):
    """Hide argparse subparser metavar line and keep only concrete commands."""

    def _format_action(self, action: argparse.Action) -> str:
        if isinstance(action, argparse._SubParsersAction):
            parts: list[str] = []
            self._indent()
            for subaction in self._iter_indented_subactions(action):
                parts.append(self._format_action(subaction))
            self._dedent()
            return "".join(parts)
        return super()._format_action(action)


def _root_card() -> str:
    return textwrap.dedent(
        """
        Layer-Store CLI

        Start here:
          lstore list
          lstore get "HSQLDB"
          lstore insert --field name=HSQLDB --field port=9001
          lstore delete "Derby Network Client"
          lstore info

        Defaults:
          --defaults layerstore:defaults/database_drivers.json
          --defaults ./defaults.json

        Use 'lstore --help' for full options.
        """
    ).strip()


def _decode_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _parse_kv_arg(raw: str) -> tuple[str, Any]:
    if "=" not in raw:
        raise argparse.ArgumentTypeError(
            f"Invalid --field '{raw}'. Use key=value format."
        )
    key, raw_value = raw.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Field name cannot be empty.")

    return key, _decode_value(raw_value)


def _build_record(raw_json: str | None, fields: list[tuple[str, Any]]) -> dict[str, Any]:
    record: dict[str, Any] = {}
    if raw_json:
        parsed = json.loads(raw_json)
        if not isinstance(parsed, dict):
            raise ValueError("--record must decode to a JSON object")
        record.update(parsed)

    for key, value in fields:
        record[key] = value

    if not record:
        raise ValueError("insert needs --record or at least one --field")
    return record


def _print_value(value: Any, as_json: bool) -> None:
    if as_json or isinstance(value, (dict, list, tuple)):
        print(json.dumps(value, ensure_ascii=False, indent=2, default=str))
        return
    print(value)


def _store_from_args(args: argparse.Namespace) -> LayeredRecordStore:
    return open_store(args.dir, args.defaults, args.primary_key)


def _print_list_human(store: LayeredRecordStore, records: list[dict[str, Any]]) -> None:
    if not records:
        print("No records found.")
        return

    defaults = [key for key in store.default_keys() if not store.is_deleted(key)]
    lines = [f"Records ({len(records)})"]
    for position, record in enumerate(records):
        origin = "default" if position < len(defaults) else "user"
        lines.append(f"  - {record.get(store.primary_key)}\t{origin}")
    print("\n".join(lines))


def _cmd_list(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    records = store.records()
    if args.json:
        _print_value(records, as_json=True)
    else:
        _print_list_human(store, records)
    return 0


def _cmd_get(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    record = store.get(args.key)
    if record is None:
        print(f"Record '{args.key}' not found.", file=sys.stderr)
        return 1
    _print_value(record, as_json=True)
    return 0


def _cmd_insert(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    record = _build_record(args.record, args.field)
    if record.get(store.primary_key) is None:
        raise ValueError(f"record must carry primary key field '{store.primary_key}'")
    store.insert(record)
    _print_value(record, as_json=True)
    return 0


def _cmd_delete(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    existed = args.key in store
    store.delete(args.key)
    if not existed:
        print(f"Record '{args.key}' not found; nothing deleted.", file=sys.stderr)
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    payload = dump_records(store).encode("utf-8")
    atomic_write_bytes(Path(args.path).expanduser(), payload, fsync=True)
    print(f"Exported to {args.path}")
    return 0


def _cmd_info(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    info = {
        "directory": str(store.directory),
        "data_file": str(store.data_file.path),
        "deleted_file": str(store.deleted_file.path),
        "primary_key": store.primary_key,
        "defaults": repr(store.source) if store.source is not None else None,
        "default_count": len(store.default_keys()),
        "deleted_count": len(store.deleted_keys()),
        "record_count": len(store.records()),
    }
    if args.json:
        _print_value(info, as_json=True)
        return 0

    lines = [
        f"Directory:\t{info['directory']}",
        f"Data:\t{info['data_file']}",
        f"Deleted:\t{info['deleted_file']}",
        f"PrimaryKey:\t{info['primary_key']}",
        f"Defaults:\t{info['defaults'] or '<none>'}",
        f"DefaultCount:\t{info['default_count']}",
        f"DeletedCount:\t{info['deleted_count']}",
        f"RecordCount:\t{info['record_count']}",
    ]
    print("\n".join(lines))
    return 0


def _add_store_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dir",
        default=None,
        help="Store directory (default: $LAYERSTORE_DIR or ~/.layerstore/store).",
    )
    parser.add_argument(
        "--defaults",
        default=None,
        help="Default records: JSON file path or 'package:resource.json' (default: $LAYERSTORE_DEFAULTS).",
    )
    parser.add_argument(
        "--primary-key",
        default=None,
        help="Primary key field (default: $LAYERSTORE_PRIMARY_KEY or 'name').",
    )
    parser.add_argument(
        "--log-mode",
        choices=_LOG_MODE_CHOICES,
        default=None,
        help="Console log verbosity (default: $LAYERSTORE_LOG_MODE or warning).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lstore",
        description=textwrap.dedent(
            """
            Layer-Store CLI
            Inspect and edit a layered record store.
            """
        ).strip(),
        formatter_class=_StoreHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_resolve_version()}",
        help="Show lstore version and exit.",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging (equivalent to --log-mode debug).",
    )
    subparsers = parser.add_subparsers(
        dest="command",
        required=False,
        title="commands",
    )

    parser_list = subparsers.add_parser("list", help="List records in view order")
    parser_list.add_argument("--json", action="store_true", help="Output JSON records.")
    _add_store_args(parser_list)
    parser_list.set_defaults(func=_cmd_list)

    parser_get = subparsers.add_parser("get", help="Show one record by key")
    parser_get.add_argument("key", type=_decode_value, help="Primary key value (JSON-decoded when possible)")
    _add_store_args(parser_get)
    parser_get.set_defaults(func=_cmd_get)

    parser_insert = subparsers.add_parser("insert", help="Insert or replace a record")
    parser_insert.add_argument(
        "--record",
        default=None,
        help="JSON object for the record, e.g. '{\"name\": \"HSQLDB\"}'",
    )
    parser_insert.add_argument(
        "--field",
        action="append",
        type=_parse_kv_arg,
        default=[],
        help="Record field as key=value. Value uses JSON decode when possible.",
    )
    _add_store_args(parser_insert)
    parser_insert.set_defaults(func=_cmd_insert)

    parser_delete = subparsers.add_parser("delete", help="Delete a record by key")
    parser_delete.add_argument("key", type=_decode_value, help="Primary key value (JSON-decoded when possible)")
    _add_store_args(parser_delete)
    parser_delete.set_defaults(func=_cmd_delete)

    parser_export = subparsers.add_parser("export", help="Write the merged records to a JSON file")
    parser_export.add_argument("path", help="Destination file")
    _add_store_args(parser_export)
    parser_export.set_defaults(func=_cmd_export)

    parser_info = subparsers.add_parser("info", help="Show store locations and counts")
    parser_info.add_argument("--json", action="store_true", help="Output JSON summary.")
    _add_store_args(parser_info)
    parser_info.set_defaults(func=_cmd_info)

    return parser


def main(argv: list[str] | None = None) -> int:
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    force_debug = False
    parse_argv: list[str] = []
    for token in raw_argv:
        if token in ("-d", "--debug"):
            force_debug = True
            continue
        parse_argv.append(token)

    parser = build_parser()
    args = parser.parse_args(parse_argv)

    if args.command is None:
        print(_root_card())
        return 0

    selected_mode = "debug" if force_debug else args.log_mode
    configure_cli_logger(selected_mode)

    try:
        return args.func(args)
    except (StoreError, ValueError) as exc:
        print(f"lstore error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
