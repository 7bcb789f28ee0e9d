#!/usr/bin/env python3
"""Programmatic weave example.

This demonstrates using the weaver components directly:

* load settings from `.env`
* build a small gated workflow with copy-on-write operations
* persist it to `WEAVER_GRAPHS_PATH`
* trace it with a payload and print the arrived paths
"""

from __future__ import annotations

import argparse
import json
from typing import Sequence

from weaver.config import WeaverSettings
from weaver.core.models import GateCondition, KnotInput, ThreadInput
from weaver.errors import WeaveError
from weaver.logging import configure_logging
from weaver.service import WeaveService
from weaver.store import WeaveStore


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build and trace a weave (programmatic example).")
    parser.add_argument("--id", default="example", help="Weave id to create")
    parser.add_argument("--count", type=int, default=5, help="Value of `count` in the payload")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = WeaverSettings()
    configure_logging(settings.log_level)

    service = WeaveService(store=WeaveStore(settings.graphs_path), max_steps=settings.max_steps)

    try:
        service.create("Example", weave_id=args.id)
        for knot_id in ("start", "big", "small"):
            service.mark(args.id, KnotInput(id=knot_id, label=knot_id.title()))
        service.thread(
            args.id,
            "start",
            "big",
            ThreadInput(gate=GateCondition(expression="count > 1")),
        )
        service.thread(
            args.id,
            "start",
            "small",
            ThreadInput(gate=GateCondition(expression="count <= 1")),
        )
    except WeaveError as exc:
        print(exc.message)
        return 3

    result = service.trace(args.id, "start", {"count": args.count})
    print(json.dumps([w.path for w in result.arrived]))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
