#!/usr/bin/env python3
"""Print aggregated vault data for a vault or a vault owner as JSON."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from vaultkit.config import settings
from vaultkit.helpers.chains import get_chain_rpc_urls
from vaultkit.onchain.provider import create_json_rpc_provider
from vaultkit.services.vaults import get_all_user_vault_data, get_vault_data

DEFAULT_CHAIN_ID = 42161


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Report on-chain vault data")
    parser.add_argument("address", help="Vault address, or owner address with --user")
    parser.add_argument("--user", action="store_true", help="Treat address as a vault owner")
    parser.add_argument("--chain-id", type=int, default=DEFAULT_CHAIN_ID)
    parser.add_argument("--rpc-url", help="Override the configured RPC endpoint")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


async def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        rpc_url = args.rpc_url or get_chain_rpc_urls(args.chain_id)[0]
        provider = await create_json_rpc_provider(rpc_url)
    except (LookupError, ValueError, ConnectionError) as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 1

    if args.user:
        result = await get_all_user_vault_data(args.address, provider, args.chain_id)
    else:
        result = await get_vault_data(args.address, provider, args.chain_id)

    print(json.dumps(result, indent=2, default=str))
    return 0 if result["success"] else 1


def main() -> int:
    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
