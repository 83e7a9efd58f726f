"""
smart-idworker - Main Entry Point

Command-line access to id generation and id decoding.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from smart_idworker.core.exceptions import ApplicationException
from smart_idworker.core.logfire_config import initialize_logfire
from smart_idworker.utils.id_worker import IdWorker, get_id_worker, parse_id


async def _worker_from_redis() -> IdWorker:
    """Assign an identity from the Redis counters and build a worker with it."""
    from smart_idworker.stores.counter_store import RedisAtomicCounterStore
    from smart_idworker.stores.redis_client import close_redis_client
    from smart_idworker.utils.worker_identity import assign_worker_identity

    try:
        identity = await assign_worker_identity(RedisAtomicCounterStore())
    finally:
        await close_redis_client()
    return IdWorker(identity.datacenter_id, identity.worker_id)


def _build_worker(args: argparse.Namespace) -> IdWorker:
    if args.redis:
        return asyncio.run(_worker_from_redis())
    if args.datacenter_id is not None:
        return IdWorker(args.datacenter_id, args.worker_id)

    return get_id_worker()


def check_generate_args(
    parser: argparse.ArgumentParser, args: argparse.Namespace
) -> None:
    """Reject identity flags that do not name exactly one identity source."""
    explicit = (args.datacenter_id, args.worker_id)
    if args.redis and explicit != (None, None):
        parser.error(
            "--redis cannot be combined with --datacenter-id or --worker-id"
        )
    if (args.datacenter_id is None) != (args.worker_id is None):
        parser.error("--datacenter-id and --worker-id must be given together")


def run_generate(args: argparse.Namespace) -> None:
    worker = _build_worker(args)
    for snowflake_id in worker.next_ids(args.count):
        print(snowflake_id)


def run_parse(args: argparse.Namespace) -> None:
    for raw in args.ids:
        try:
            value = int(raw)
        except ValueError:
            raise SystemExit(f"❌ Not an integer id: {raw}")
        parts = parse_id(value)
        print(
            f"{value}: created_at={parts.created_at.isoformat()} "
            f"datacenter_id={parts.datacenter_id} worker_id={parts.worker_id} "
            f"sequence={parts.sequence}"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="smart-idworker - Snowflake id generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py generate -n 5 --datacenter-id 1 --worker-id 3
  python main.py generate --redis          # identity from Redis counters
  python main.py generate                  # identity from IDWORKER__* settings
  python main.py parse 1541815603606036480
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Print new ids")
    generate.add_argument(
        "-n", "--count", type=int, default=1, help="Number of ids (default: 1)"
    )
    generate.add_argument(
        "--redis",
        action="store_true",
        help="Take datacenter and worker ids from the Redis counters",
    )
    generate.add_argument("--datacenter-id", type=int, help="Datacenter id (0-31)")
    generate.add_argument("--worker-id", type=int, help="Worker id (0-31)")
    generate.set_defaults(handler=run_generate)

    parse = subparsers.add_parser("parse", help="Decode ids into their fields")
    parse.add_argument("ids", nargs="+", help="Ids to decode")
    parse.set_defaults(handler=run_parse)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point with CLI argument parsing.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "generate":
        check_generate_args(parser, args)

    initialize_logfire()

    try:
        args.handler(args)
    except ApplicationException as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
