"""Command-line front door for livetree.

Usage:
    livetree serve [PATH] [--host H] [--port P] [--debounce-ms N] [--show-hidden] [--create-root]
    livetree snapshot [PATH] [--show-hidden] [--indent N]
    livetree browse [PATH | --url URL]
    livetree config [--set KEY=VALUE ...]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, fields
from pathlib import Path

from .errors import LiveTreeError
from .runtime.config import LiveTreeSettings, load_config, load_settings, save_config

logger = logging.getLogger(__name__)

SETTING_KEYS = tuple(f.name for f in fields(LiveTreeSettings))


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _setting_assignment(value: str) -> tuple[str, object]:
    """argparse type for ``KEY=VALUE``; VALUE is parsed as JSON when possible."""
    key, sep, raw = value.partition("=")
    key = key.strip()
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    if key not in SETTING_KEYS:
        raise argparse.ArgumentTypeError(f"unknown setting {key!r} (choose from {', '.join(SETTING_KEYS)})")
    try:
        parsed: object = json.loads(raw)
    except json.JSONDecodeError:
        parsed = raw
    return key, parsed


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_root(raw: str | None, *, create: bool = False) -> Path:
    root = Path(raw or Path.cwd()).expanduser()
    if not root.exists() and create:
        root.mkdir(parents=True)
        logger.info("Created watch root %s", root)
    if not root.is_dir():
        raise SystemExit(f"Directory not found: {root}")
    return root.resolve()


def cmd_serve(args: argparse.Namespace) -> None:
    from .server.app import create_app
    from .server.service import LiveTreeService

    _configure_logging(args.verbose)
    root = _resolve_root(args.path, create=args.create_root)
    settings = load_settings().with_overrides(
        debounce_ms=args.debounce_ms,
        show_hidden=True if args.show_hidden else None,
    )
    service = LiveTreeService(root, settings, root_name=args.root_name)
    app = create_app(service)
    logger.info("Serving %s on http://%s:%d", root, args.host, args.port)
    try:
        app.run(host=args.host, port=args.port, threaded=True, use_reloader=False)
    finally:
        service.close()


def cmd_snapshot(args: argparse.Namespace) -> None:
    from .file_tree_model import build_file_tree, node_to_payload

    root = _resolve_root(args.path)
    tree = build_file_tree(root, show_hidden=args.show_hidden, root_name=args.root_name)
    json.dump(node_to_payload(tree), sys.stdout, indent=args.indent)
    sys.stdout.write("\n")


def cmd_browse(args: argparse.Namespace) -> None:
    from .runtime import browse_local, browse_remote

    if args.verbose:
        _configure_logging(True)
    settings = load_settings().with_overrides(show_hidden=True if args.show_hidden else None)
    if args.url:
        if args.path is not None:
            raise SystemExit("Cannot combine a PATH with --url.")
        if args.show_hidden:
            raise SystemExit("--show-hidden applies to local browsing; the server decides what --url shows.")
        browse_remote(args.url, settings)
        return
    browse_local(_resolve_root(args.path), settings)


def cmd_config(args: argparse.Namespace) -> None:
    if args.assignments:
        data = load_config()
        for key, value in args.assignments:
            data[key] = value
        save_config(data)
    print(json.dumps(asdict(load_settings()), indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="livetree",
        description="Watch a directory and keep remote tree views in sync.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Serve the snapshot and live-update stream over HTTP")
    p_serve.add_argument("path", nargs="?", default=None, help="Directory to watch. Defaults to cwd.")
    p_serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1).")
    p_serve.add_argument("--port", type=_positive_int, default=3000, help="Port (default: 3000).")
    p_serve.add_argument("--debounce-ms", type=_positive_int, default=None, help="Quiet window before a re-read.")
    p_serve.add_argument("--show-hidden", action="store_true", help="Include dot-prefixed entries.")
    p_serve.add_argument("--root-name", default=None, help="Display name for the root folder.")
    p_serve.add_argument("--create-root", action="store_true", help="Create the directory if it is missing.")
    p_serve.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    p_serve.set_defaults(func=cmd_serve)

    p_snapshot = sub.add_parser("snapshot", help="Print one snapshot as JSON")
    p_snapshot.add_argument("path", nargs="?", default=None, help="Directory to read. Defaults to cwd.")
    p_snapshot.add_argument("--show-hidden", action="store_true", help="Include dot-prefixed entries.")
    p_snapshot.add_argument("--root-name", default=None, help="Display name for the root folder.")
    p_snapshot.add_argument("--indent", type=int, default=2, help="JSON indent (default: 2).")
    p_snapshot.set_defaults(func=cmd_snapshot)

    p_browse = sub.add_parser("browse", help="Browse a live tree in the terminal")
    p_browse.add_argument("path", nargs="?", default=None, help="Directory to browse locally. Defaults to cwd.")
    p_browse.add_argument("--url", default=None, help="Base URL of a running `livetree serve`.")
    p_browse.add_argument("--show-hidden", action="store_true", help="Include dot-prefixed entries (local PATH only).")
    p_browse.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    p_browse.set_defaults(func=cmd_browse)

    p_config = sub.add_parser("config", help="Show or update persisted settings")
    p_config.add_argument(
        "--set",
        dest="assignments",
        action="append",
        type=_setting_assignment,
        default=[],
        metavar="KEY=VALUE",
        help="Persist a setting (repeatable).",
    )
    p_config.set_defaults(func=cmd_config)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the chosen subcommand."""
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except LiveTreeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
