#!/usr/bin/env python3
"""
Ask the support assistant a question from the command line.

Usage:
    python scripts/ask_support.py "How do I fix my battery issue?" [--tenant "GoPro Hero"]
    python scripts/ask_support.py "Show me ticket statistics" --json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def main():
    parser = argparse.ArgumentParser(description="Ask the support ticket assistant a question")
    parser.add_argument("question", help="Natural-language question")
    parser.add_argument("--tenant", default=None, help="Restrict to one product (exact name)")
    parser.add_argument("--thread-id", default=None, help="Conversation identifier")
    parser.add_argument("--json", action="store_true", help="Print the full answer as JSON")
    parser.add_argument("--verbose", action="store_true", help="Log pipeline diagnostics to stderr")
    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    from support_assistant.app import build_router

    router = build_router()
    answer = asyncio.run(router.route(args.question, tenant=args.tenant, thread_id=args.thread_id))

    if args.json:
        print(json.dumps(answer.to_dict(), indent=2, ensure_ascii=False))
        return

    print(answer.text)
    if answer.ticket_ids:
        print()
        print(f"Referenced tickets: {', '.join(answer.ticket_ids)}")
    if answer.charts is not None:
        print()
        print("Charts: " + ", ".join(answer.charts.to_dict()))


if __name__ == "__main__":
    main()
