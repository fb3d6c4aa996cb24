#!/usr/bin/env python3
"""
FlowForge Command Line
======================

Usage:
    flowforge validate snapshot.json
    flowforge context snapshot.json NODE_ID            # Markdown context
    flowforge context snapshot.json NODE_ID --json     # JSON payload
    flowforge context snapshot.json NODE_ID --max-depth 2 --max-items 5
    flowforge chat snapshot.json "What should the hero say?" --node NODE_ID --save
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from .chat import ChatSession
from .config import Settings
from .context import ContextBudget, build_context
from .errors import FlowForgeError
from .lifecycle import lifecycle_state
from .llm_integration import create_llm_interface
from .snapshot import (
    history_from_dict, load_snapshot, messages_from_dict, read_snapshot, save_snapshot, store_from_dict
)


def cmd_validate(args) -> int:
    store = load_snapshot(args.snapshot)
    nodes, edges = store.snapshot()
    print(f"✅ Snapshot valid: {len(nodes)} nodes, {len(edges)} edges")
    counts = {}
    for node in nodes:
        counts[node.variant.value] = counts.get(node.variant.value, 0) + 1
    for variant, count in sorted(counts.items()):
        print(f"   {variant}: {count}")
    return 0


def cmd_context(args) -> int:
    store = load_snapshot(args.snapshot)
    settings = Settings.from_env()
    budget = ContextBudget(
        max_items=settings.context_max_items if args.max_items is None else args.max_items,
        max_depth=settings.context_max_depth if args.max_depth is None else args.max_depth,
    )

    context = build_context(store, args.node_id, budget)
    if args.json:
        print(json.dumps(context.to_dict(), indent=2, sort_keys=True))
        return 0

    target = context.target
    state = lifecycle_state(target)
    suffix = f" [{state.value}]" if state else ""
    print(f"🎯 {target.variant.value} '{target.label}'{suffix}")
    if not context.summaries:
        print("   (no connected context)")
        return 0
    print(context.render())
    return 0


def cmd_chat(args) -> int:
    data = read_snapshot(args.snapshot)
    store = store_from_dict(data)
    session = ChatSession(store, create_llm_interface(), history=messages_from_dict(data))

    reply = asyncio.run(session.send(args.message, args.node))
    print(reply.text)
    if args.save:
        save_snapshot(store, args.snapshot, history_from_dict(data), session.messages)
        print(f"💾 Saved {len(session.messages)} message(s) to {args.snapshot}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flowforge", description="FlowForge planning graph tools")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Validate a snapshot file")
    validate.add_argument("snapshot", help="Path to snapshot JSON")
    validate.set_defaults(func=cmd_validate)

    context = subparsers.add_parser("context", help="Show resolved generation context for a node")
    context.add_argument("snapshot", help="Path to snapshot JSON")
    context.add_argument("node_id", help="Target node id")
    context.add_argument("--json", action="store_true", help="Print JSON instead of Markdown")
    context.add_argument("--max-depth", type=int, default=None, help="Limit ancestor hops")
    context.add_argument("--max-items", type=int, default=None, help="Limit number of context nodes")
    context.set_defaults(func=cmd_context)

    chat = subparsers.add_parser("chat", help="Ask the project assistant, with a node's context attached")
    chat.add_argument("snapshot", help="Path to snapshot JSON")
    chat.add_argument("message", help="Message to send")
    chat.add_argument("--node", default=None, help="Selected node id whose context is attached")
    chat.add_argument("--save", action="store_true", help="Append the exchange to the snapshot's messages")
    chat.set_defaults(func=cmd_chat)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except FlowForgeError as e:
        print(f"❌ {e.code}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
