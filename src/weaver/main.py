"""CLI entrypoint for weaver.

Every command prints JSON on stdout. Logs go to stderr.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from weaver import __version__
from weaver.config import WeaverSettings
from weaver.core.models import GateCondition, KnotInput, Position, ThreadInput
from weaver.core.serialization import to_serialized
from weaver.errors import WeaveError
from weaver.logging import configure_logging
from weaver.service import WeaveService
from weaver.store import WeaveStore

logger = logging.getLogger(__name__)


def _json_object(value: str) -> dict[str, Any]:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return parsed


def _thread_input(args: argparse.Namespace) -> ThreadInput | None:
    if args.thread_id is None and args.label is None:
        return None
    return ThreadInput(id=args.thread_id, label=args.label)


def _emit(value: object) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weaver",
        description="Build, validate and trace weave workflow graphs",
    )
    parser.add_argument("--version", action="version", version=f"weaver {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create an empty weave")
    create.add_argument("name", help="Human-readable weave name")
    create.add_argument("--id", dest="weave_id", default=None, help="Explicit weave id")
    create.add_argument("--description", default=None, help="Optional description")

    subparsers.add_parser("list", help="List persisted weaves")

    for name, help_text in (
        ("show", "Print a weave as JSON"),
        ("validate", "Run structural checks on a weave"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("weave_id", help="Weave id")

    mark = subparsers.add_parser("mark", help="Add a knot")
    mark.add_argument("weave_id", help="Weave id")
    mark.add_argument("label", help="Knot label")
    mark.add_argument("--id", dest="knot_id", default=None, help="Explicit knot id")
    mark.add_argument("--type", default="default", help="Knot type (default: 'default')")
    mark.add_argument("--x", type=float, default=0.0, help="X position")
    mark.add_argument("--y", type=float, default=0.0, help="Y position")
    mark.add_argument(
        "--data", type=_json_object, default=None, help="Knot data as a JSON object"
    )

    thread = subparsers.add_parser("thread", help="Connect two knots")
    thread.add_argument("weave_id", help="Weave id")
    thread.add_argument("source", help="Source knot id")
    thread.add_argument("target", help="Target knot id")

    branch = subparsers.add_parser("branch", help="Fan out from one knot to several")
    branch.add_argument("weave_id", help="Weave id")
    branch.add_argument("source", help="Source knot id")
    branch.add_argument("targets", nargs="+", help="Target knot ids")

    join = subparsers.add_parser("join", help="Fan in from several knots to one")
    join.add_argument("weave_id", help="Weave id")
    join.add_argument("target", help="Target knot id")
    join.add_argument("sources", nargs="+", help="Source knot ids")

    for p in (thread, branch, join):
        p.add_argument("--id", dest="thread_id", default=None, help="Explicit thread id")
        p.add_argument("--label", default=None, help="Thread label")

    snip = subparsers.add_parser("snip", help="Remove a thread")
    snip.add_argument("weave_id", help="Weave id")
    snip.add_argument("thread_id", help="Thread id")

    cut = subparsers.add_parser("cut", help="Remove a knot and every thread touching it")
    cut.add_argument("weave_id", help="Weave id")
    cut.add_argument("knot_id", help="Knot id")

    gate = subparsers.add_parser("gate", help="Set or clear a thread's gate")
    gate.add_argument("weave_id", help="Weave id")
    gate.add_argument("thread_id", help="Thread id")
    gate.add_argument(
        "expression", nargs="?", default=None, help="Gate expression; omit to remove the gate"
    )
    gate.add_argument("--fallback", default=None, help="Fallback knot id (stored only)")

    veil = subparsers.add_parser("veil", help="Collapse knots into one composite knot")
    veil.add_argument("weave_id", help="Weave id")
    veil.add_argument("knot_ids", nargs="+", help="Knot ids to veil")
    veil.add_argument("--id", dest="composite_id", default=None, help="Explicit composite id")

    reveal = subparsers.add_parser("reveal", help="Expand a composite knot")
    reveal.add_argument("weave_id", help="Weave id")
    reveal.add_argument("composite_id", help="Composite knot id")

    trace = subparsers.add_parser("trace", help="Run a trace from a start knot")
    trace.add_argument("weave_id", help="Weave id")
    trace.add_argument("start_knot", help="Start knot id")
    trace.add_argument(
        "--payload", type=_json_object, default=None, help="Initial wave payload (JSON object)"
    )
    trace.add_argument(
        "--max-steps", type=int, default=None, help="Step budget (default: WEAVER_MAX_STEPS)"
    )

    return parser


def _run(service: WeaveService, args: argparse.Namespace) -> object:
    command = args.command

    if command == "create":
        weave = service.create(args.name, weave_id=args.weave_id, description=args.description)
        return to_serialized(weave)
    if command == "list":
        return [s.model_dump(mode="json") for s in service.list()]
    if command == "show":
        return to_serialized(service.load(args.weave_id))
    if command == "validate":
        return service.validate(args.weave_id).to_json()
    if command == "mark":
        input = KnotInput(
            id=args.knot_id,
            label=args.label,
            type=args.type,
            position=Position(x=args.x, y=args.y),
            data=args.data or {},
        )
        return to_serialized(service.mark(args.weave_id, input))
    if command == "thread":
        weave = service.thread(args.weave_id, args.source, args.target, _thread_input(args))
        return to_serialized(weave)
    if command == "branch":
        weave = service.branch(args.weave_id, args.source, args.targets, _thread_input(args))
        return to_serialized(weave)
    if command == "join":
        weave = service.join(args.weave_id, args.sources, args.target, _thread_input(args))
        return to_serialized(weave)
    if command == "snip":
        return to_serialized(service.snip(args.weave_id, args.thread_id))
    if command == "cut":
        return to_serialized(service.cut(args.weave_id, args.knot_id))
    if command == "gate":
        condition = (
            GateCondition(expression=args.expression, fallback=args.fallback)
            if args.expression is not None
            else None
        )
        return to_serialized(service.gate(args.weave_id, args.thread_id, condition))
    if command == "veil":
        return to_serialized(service.veil(args.weave_id, args.knot_ids, args.composite_id))
    if command == "reveal":
        return to_serialized(service.reveal(args.weave_id, args.composite_id))
    if command == "trace":
        result = service.trace(
            args.weave_id, args.start_knot, args.payload, max_steps=args.max_steps
        )
        return result.to_json()

    raise ValueError(f"Unknown command: {command}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = WeaverSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    service = WeaveService(
        store=WeaveStore(settings.graphs_path),
        max_steps=settings.max_steps,
        braid_workers=settings.braid_workers,
    )

    try:
        _emit(_run(service, args))
        return 0

    except WeaveError as e:
        logger.warning(e.message, extra={"operation": e.operation, "command": args.command})
        print(json.dumps(e.to_json(), ensure_ascii=False), file=sys.stderr)
        return 3

    except Exception:
        logger.exception("Command failed", extra={"command": args.command})
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
