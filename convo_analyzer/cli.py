"""CLI harness: list features, preview transcript/schema, run an analysis."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from convo_analyzer.errors import AnalyzerError
from convo_analyzer.features import FEATURE_REGISTRY, category_of, resolve_requested
from convo_analyzer.formatter import format_conversation
from convo_analyzer.schema_builder import build_dynamic_schema
from convo_analyzer.service import analyze_conversation, coerce_request
from convo_analyzer.settings import AnalyzerSettings
from convo_analyzer.types import AnalyzerProvider


def _split_features(raw: str | None) -> list[str] | str:
    if not raw or raw.strip() == "all":
        return "all"
    return [k.strip() for k in raw.split(",") if k.strip()]


def _load_payload(path: str) -> dict[str, Any]:
    """A JSON file holding either a request object or a bare list of messages."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, list):
        return {"messages": data}
    return data


def _request_from_args(args: argparse.Namespace) -> dict[str, Any]:
    payload = _load_payload(args.file)
    if args.features is not None or not any(k in payload for k in ("requestedFeatures", "requested_features", "requested")):
        payload["requestedFeatures"] = _split_features(args.features)
    if args.goal is not None:
        payload["goal"] = args.goal
    if args.product is not None:
        payload["productOrService"] = args.product
    if args.next_action:
        payload["includeNextAction"] = True
    return payload


def _cmd_features(args: argparse.Namespace) -> int:
    for key, label in FEATURE_REGISTRY.items():
        print(f"{key:<24} {category_of(key).value:<9} {label}")
    return 0


def _cmd_format(args: argparse.Namespace) -> int:
    payload = _load_payload(args.file)
    payload.setdefault("requestedFeatures", "all")
    req = coerce_request(payload)
    print(format_conversation(req.messages))
    return 0


def _cmd_schema(args: argparse.Namespace) -> int:
    keys = resolve_requested(_split_features(args.features))
    print(json.dumps(build_dynamic_schema(keys, args.next_action), indent=2, ensure_ascii=False))
    return 0


def _cmd_analyze(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {}
    if args.provider:
        overrides["provider"] = AnalyzerProvider(args.provider)
    try:
        settings = AnalyzerSettings(**overrides)
    except ValidationError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1
    result = asyncio.run(analyze_conversation(_request_from_args(args), settings=settings))
    print(json.dumps(result.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Conversation feature analyzer")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_features = sub.add_parser("features", help="List registered feature keys")
    p_features.set_defaults(func=_cmd_features)

    p_format = sub.add_parser("format", help="Print the formatted transcript of a request/messages JSON file")
    p_format.add_argument("file", help="Path to JSON file")
    p_format.set_defaults(func=_cmd_format)

    p_schema = sub.add_parser("schema", help="Print the JSON schema sent to the model")
    p_schema.add_argument("--features", "-f", default="all", help="Comma-separated keys or 'all' (default: all)")
    p_schema.add_argument("--next-action", action="store_true", help="Include the nextAction property")
    p_schema.set_defaults(func=_cmd_schema)

    p_analyze = sub.add_parser("analyze", help="Analyze a conversation and print the result JSON")
    p_analyze.add_argument("file", help="Path to JSON file (request object or list of messages)")
    p_analyze.add_argument("--features", "-f", default=None, help="Comma-separated keys or 'all'")
    p_analyze.add_argument("--goal", default=None, help="Conversation goal")
    p_analyze.add_argument("--product", default=None, help="Product or service discussed")
    p_analyze.add_argument("--next-action", action="store_true", help="Ask for a recommended next action")
    p_analyze.add_argument(
        "--provider",
        choices=[p.value for p in AnalyzerProvider],
        default=None,
        help="Override ANALYZER_PROVIDER",
    )
    p_analyze.set_defaults(func=_cmd_analyze)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except AnalyzerError as e:
        print(f"Error [{e.code}]: {e}", file=sys.stderr)
        return 1
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
