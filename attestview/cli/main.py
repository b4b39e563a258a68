from __future__ import annotations

import argparse
import json
import sys
from typing import Any, List

from attestview.certs import collect_certificates, parse_certificates
from attestview.config import Settings, load_settings
from attestview.core.normalization import PayloadNormalizer
from attestview.core.patterns import recognize
from attestview.core.pipeline import analyze, parse_document
from attestview.errors import InvalidJsonError, ShareTokenError
from attestview.history import HistoryStore, format_timestamp, preview
from attestview.sharing import decompress_from_url, is_compressed_url_too_long, share_url


def _json_default(o):
    # Lazy import keeps CLI startup light
    from attestview.utils.json_safe import to_jsonable

    return to_jsonable(o)


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False, default=_json_default))


def _read_input(path: str) -> str:
    """Read raw document text from a file path or '-' (stdin)."""

    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _settings(args: argparse.Namespace) -> Settings:
    return load_settings(history_db=getattr(args, "db", None) or getattr(args, "history", None))


def _history_store(cfg: Settings) -> HistoryStore:
    if cfg.history_db is None:
        raise SystemExit("error: no history database (use --db or ATTESTVIEW_HISTORY_DB)")
    return HistoryStore(cfg.history_db, limit=cfg.history_limit)


def cmd_unwrap(args: argparse.Namespace) -> int:
    """Print the normalized tree and its transformation log."""

    cfg = _settings(args)
    document = parse_document(_read_input(args.path))
    result = PayloadNormalizer(
        max_depth=cfg.max_depth, max_chain_depth=cfg.max_chain_depth
    ).normalize(document)
    if args.tree_only:
        _print_json(result.tree)
    else:
        _print_json(result.to_dict())
    return 0


def cmd_recognize(args: argparse.Namespace) -> int:
    """Classify a document by envelope shape."""

    document = parse_document(_read_input(args.path))
    _print_json(recognize(document).to_dict())
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    """Normalize + recognize, optionally recording the document in history."""

    cfg = _settings(args)
    raw = _read_input(args.path)
    res = analyze(raw, settings=cfg)
    if args.history:
        _history_store(cfg).add(raw, pattern_type=res.pattern.type.value)
    _print_json(res.to_dict())
    return 0


def cmd_history_list(args: argparse.Namespace) -> int:
    cfg = _settings(args)
    items = _history_store(cfg).load()
    if args.json:
        _print_json([it.to_dict() for it in items])
        return 0
    for i, it in enumerate(items):
        tag = f" [{it.pattern_type}]" if it.pattern_type else ""
        print(f"{i:>2}  {format_timestamp(it.timestamp)}{tag}  {preview(it)}")
    return 0


def cmd_history_show(args: argparse.Namespace) -> int:
    cfg = _settings(args)
    items = _history_store(cfg).load()
    if not 0 <= args.index < len(items):
        print(f"error: no history entry {args.index}", file=sys.stderr)
        return 1
    print(items[args.index].json)
    return 0


def cmd_history_remove(args: argparse.Namespace) -> int:
    cfg = _settings(args)
    try:
        _history_store(cfg).remove(args.index)
    except IndexError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_history_clear(args: argparse.Namespace) -> int:
    cfg = _settings(args)
    _history_store(cfg).clear()
    return 0


def cmd_share(args: argparse.Namespace) -> int:
    """Print a share URL for a document (compressed into the query string)."""

    cfg = _settings(args)
    raw = _read_input(args.path)
    # Sharing an invalid document is pointless; fail the same way as analyze.
    parse_document(raw)
    base_url = args.base_url or cfg.share_base_url
    max_length = args.max_length or cfg.share_max_url_length
    if is_compressed_url_too_long(raw, max_length, base_url=base_url):
        print(f"warning: share URL exceeds {max_length} characters", file=sys.stderr)
    print(share_url(raw, base_url=base_url))
    return 0


def cmd_unshare(args: argparse.Namespace) -> int:
    """Decode a share token back into the original document text."""

    token = args.token
    if "=" in token and "?" in token:
        token = token.split("=", 1)[1]
    try:
        print(decompress_from_url(token))
    except ShareTokenError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0


def cmd_certs(args: argparse.Namespace) -> int:
    """Summarize certificates embedded in a DSSE envelope or Sigstore bundle."""

    document = parse_document(_read_input(args.path))
    _print_json([s.to_dict() for s in parse_certificates(collect_certificates(document))])
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the attestview API server."""

    try:
        import uvicorn
    except ImportError as e:
        print(f"error: uvicorn is required to serve the API: {e}", file=sys.stderr)
        return 2

    from attestview.api.server import create_app

    app = create_app(settings=load_settings(history_db=args.db))
    uvicorn.run(app, host=args.host, port=int(args.port), log_level=args.log_level)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="attestview",
        description="Unwrap nested JSON/Base64/epoch payloads and recognize attestation envelopes",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    un = sub.add_parser("unwrap", help="Recursively decode encoded payloads in a JSON document")
    un.add_argument("path", help="Path to JSON file ('-' for stdin)")
    un.add_argument("--tree-only", action="store_true", help="Print only the normalized tree")
    un.set_defaults(func=cmd_unwrap)

    rc = sub.add_parser("recognize", help="Classify a document (DSSE, Sigstore, in-toto)")
    rc.add_argument("path", help="Path to JSON file ('-' for stdin)")
    rc.set_defaults(func=cmd_recognize)

    an = sub.add_parser("analyze", help="Unwrap and recognize in one pass")
    an.add_argument("path", help="Path to JSON file ('-' for stdin)")
    an.add_argument("--history", default=None, help="SQLite DB path to record the document in")
    an.set_defaults(func=cmd_analyze)

    hi = sub.add_parser("history", help="Inspect or edit the document history")
    hsub = hi.add_subparsers(dest="history_cmd", required=True)

    hl = hsub.add_parser("list", help="List recent documents (newest first)")
    hl.add_argument("--db", default=None, help="Path to SQLite DB file")
    hl.add_argument("--json", action="store_true", help="Print JSON")
    hl.set_defaults(func=cmd_history_list)

    hs = hsub.add_parser("show", help="Print the raw text of one history entry")
    hs.add_argument("index", type=int, help="Entry index (0 = newest)")
    hs.add_argument("--db", default=None, help="Path to SQLite DB file")
    hs.set_defaults(func=cmd_history_show)

    hr = hsub.add_parser("remove", help="Remove one history entry")
    hr.add_argument("index", type=int, help="Entry index (0 = newest)")
    hr.add_argument("--db", default=None, help="Path to SQLite DB file")
    hr.set_defaults(func=cmd_history_remove)

    hc = hsub.add_parser("clear", help="Remove all history entries")
    hc.add_argument("--db", default=None, help="Path to SQLite DB file")
    hc.set_defaults(func=cmd_history_clear)

    sh = sub.add_parser("share", help="Print a compressed share URL for a document")
    sh.add_argument("path", help="Path to JSON file ('-' for stdin)")
    sh.add_argument("--base-url", default=None, help="Base URL the token is appended to")
    sh.add_argument("--max-length", type=int, default=None, help="Warn above this URL length")
    sh.set_defaults(func=cmd_share)

    us = sub.add_parser("unshare", help="Decode a share token (or share URL) into text")
    us.add_argument("token", help="Share token or full share URL")
    us.set_defaults(func=cmd_unshare)

    ce = sub.add_parser("certs", help="Summarize embedded X.509 certificates")
    ce.add_argument("path", help="Path to JSON file ('-' for stdin)")
    ce.set_defaults(func=cmd_certs)

    sv = sub.add_parser("serve", help="Run the attestview FastAPI server")
    sv.add_argument("--host", default="127.0.0.1", help="Bind host (default: 127.0.0.1)")
    sv.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    sv.add_argument("--db", default=None, help="Optional SQLite DB path for history endpoints")
    sv.add_argument("--log-level", default="info", help="Uvicorn log level")
    sv.set_defaults(func=cmd_serve)

    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except InvalidJsonError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
