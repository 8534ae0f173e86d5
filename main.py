"""Command-line interface for the storefront service."""

from __future__ import annotations
import argparse
import logging
import sys
from typing import Sequence

from storefront.admin import ensure_master_code
from storefront.application import create_application, create_storage
from storefront.config import Settings, load_settings
from storefront.storage import DuplicateCodeError, Storage

logger = logging.getLogger("storefront.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Shoe storefront backend utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise storage and the master access code")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument("--port", type=int, default=5000, help="Port for the API (default: 5000)")

    add_parser = subparsers.add_parser("add-code", help="Create a non-master admin access code")
    add_parser.add_argument("code", help="Secret value presented at login")
    add_parser.add_argument("label", help="Display name of the code holder")

    subparsers.add_parser("list-codes", help="List admin access codes")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "add-code", "list-codes"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_storage(settings: Settings) -> Storage:
    storage = create_storage(settings)
    master = ensure_master_code(storage, settings.master_code)
    logger.info("Storage initialised; master access code is #%s", master.id)
    return storage


def _serve(settings: Settings, *, host: str, port: int) -> None:
    import uvicorn

    logger.info("Starting storefront API on http://%s:%s", host, port)
    app = create_application(settings=settings)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _add_code(settings: Settings, code: str, label: str) -> int:
    cleaned_code = code.strip()
    cleaned_label = label.strip()
    if not cleaned_code or not cleaned_label:
        print("Error: code and label must not be empty", file=sys.stderr)
        return 1
    storage = _initialise_storage(settings)
    try:
        created = storage.create_access_code(cleaned_code, cleaned_label)
    except DuplicateCodeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Created access code #{created.id} for {created.label}")
    return 0


def _list_codes(settings: Settings) -> int:
    storage = _initialise_storage(settings)
    for access_code in storage.list_access_codes():
        role = "master" if access_code.is_master else "admin"
        print(f"#{access_code.id}\t{role}\t{access_code.label}\t{access_code.created_at.isoformat()}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = _parse_args(argv)
    settings = load_settings()

    if args.command == "init-db":
        _initialise_storage(settings)
        return 0
    if args.command == "add-code":
        return _add_code(settings, args.code, args.label)
    if args.command == "list-codes":
        return _list_codes(settings)

    _serve(settings, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
