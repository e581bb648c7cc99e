#!/usr/bin/env python3
"""Simple CLI for the UserOperation relay"""

import argparse
import asyncio
import sys
from typing import Optional

import httpx
import uvicorn

from app.client import BackendApiClient, TransportAdapter
from app.config import settings
from app.core.lifecycle import poll_for_receipt
from app.core.userop import UserOpError, UserOperationReceipt


def print_receipt(receipt: UserOperationReceipt) -> None:
    """Pretty print a UserOperation receipt"""
    outcome = "✅ succeeded" if receipt.success else "⚠️  included, inner call reverted"
    print(f"\nUserOperation {receipt.user_op_hash}")
    print("=" * 50)
    print(f"Outcome:     {outcome}")
    print(f"Sender:      {receipt.sender}")
    print(f"Nonce:       {receipt.nonce}")
    print(f"Gas used:    {receipt.actual_gas_used:,}")
    print(f"Gas cost:    {receipt.actual_gas_cost:,} wei")
    print(f"Tx hash:     {receipt.receipt.transaction_hash}")
    print(f"Block:       {receipt.receipt.block_number}")


async def cli_health(base_url: str) -> int:
    """Print the backend health payload"""
    async with BackendApiClient(base_url, settings.chain_id) as backend:
        try:
            data = await backend.health()
        except UserOpError as e:
            print(f"❌ {e.message}")
            return 1

    services = data.get("services", {})
    chain = data.get("chain", {})
    print(f"Status:    {data.get('status')}")
    print(f"Paymaster: {services.get('paymaster')}")
    print(f"Bundler:   {services.get('bundler')}")
    print(f"Chain:     {chain.get('name')} ({chain.get('id')})")
    return 0


async def cli_status(base_url: str, user_op_hash: str) -> int:
    """Look up a UserOperation once"""
    async with BackendApiClient(base_url, settings.chain_id) as backend:
        transport = TransportAdapter(backend)
        try:
            receipt = await transport.request("eth_getUserOperationReceipt", [user_op_hash])
        except UserOpError as e:
            print(f"❌ {e.code}: {e.message}")
            return 1

    if receipt is None:
        print(f"⏳ {user_op_hash} is pending")
        return 0
    print_receipt(receipt)
    return 0


async def cli_watch(
    base_url: str,
    user_op_hash: str,
    interval: float,
    max_attempts: Optional[int] = None,
) -> int:
    """Poll until the UserOperation is included"""
    print(f"🔍 Watching {user_op_hash} every {interval:g}s...")

    def show_progress(attempts: int, receipt: Optional[UserOperationReceipt]) -> None:
        if receipt is None:
            print(f"   ...pending (attempt {attempts})")

    async with BackendApiClient(base_url, settings.chain_id) as backend:
        try:
            receipt = await poll_for_receipt(
                TransportAdapter(backend),
                user_op_hash,
                interval=interval,
                max_attempts=max_attempts,
                on_attempt=show_progress,
            )
        except UserOpError as e:
            print(f"❌ {e.code}: {e.message}")
            return 1

    print_receipt(receipt)
    return 0


def cli_serve(host: str, port: int, reload: bool = False) -> int:
    uvicorn.run("app.main:app", host=host, port=port, reload=reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="UserOperation relay CLI")
    parser.add_argument(
        "--backend",
        default=settings.backend_url,
        help=f"Backend base URL (default: {settings.backend_url})",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("health", help="Show backend health")

    status_parser = subparsers.add_parser("status", help="Look up a UserOperation by hash")
    status_parser.add_argument("user_op_hash", help="UserOperation hash (0x + 64 hex)")

    watch_parser = subparsers.add_parser("watch", help="Poll a UserOperation until it is included")
    watch_parser.add_argument("user_op_hash", help="UserOperation hash (0x + 64 hex)")
    watch_parser.add_argument(
        "--interval", type=float, default=settings.poll_interval_seconds, help="Seconds between polls"
    )
    watch_parser.add_argument("--max-attempts", type=int, default=settings.max_poll_attempts, help="Give up after N polls")

    serve_parser = subparsers.add_parser("serve", help="Run the relay backend")
    serve_parser.add_argument("--host", default=settings.host)
    serve_parser.add_argument("--port", type=int, default=settings.port)
    serve_parser.add_argument("--reload", action="store_true")

    return parser


async def main(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    if not args.command:
        parser.print_help()
        return 0

    command = args.command.lower()

    if command == "health":
        return await cli_health(args.backend)

    elif command == "status":
        return await cli_status(args.backend, args.user_op_hash)

    elif command == "watch":
        if args.interval <= 0:
            print("❌ Interval must be positive")
            return 2
        return await cli_watch(args.backend, args.user_op_hash, args.interval, args.max_attempts)

    print(f"❌ Unknown command: {command}")
    parser.print_help()
    return 2


def run() -> None:
    parser = build_parser()
    args = parser.parse_args()
    if args.command == "serve":
        sys.exit(cli_serve(args.host, args.port, args.reload))
    try:
        sys.exit(asyncio.run(main(args, parser)))
    except httpx.HTTPError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
