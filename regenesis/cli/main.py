"""Regenesis surgery CLI.

Usage:
    regenesis-surgery run [--output PATH]   Run the full surgery
    regenesis-surgery validate [PATH]       Read and validate a state dump
    regenesis-surgery download-solc         Install the upstream compilers
    regenesis-surgery config                Show current configuration

All paths and endpoints come from ``REGENESIS_*`` environment variables
(or a ``.env`` file); see ``regenesis.core.config``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from regenesis import __version__
from regenesis.core.config import Settings, get_settings
from regenesis.core.constants import COMPILER_VERSIONS_TO_SOLC
from regenesis.core.errors import SurgeryError
from regenesis.core.logging import setup_logging

logger = logging.getLogger("regenesis.cli")


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="regenesis-surgery",
        description="Rewrite a legacy chain state dump into new-chain genesis state",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only log warnings and errors")

    sub = parser.add_subparsers(dest="command")

    run_p = sub.add_parser("run", help="Run the full surgery")
    run_p.add_argument("--output", "-o", help="Output dump path (default: REGENESIS_OUTPUT_FILE_PATH)")

    validate_p = sub.add_parser("validate", help="Read and validate a state dump")
    validate_p.add_argument("path", nargs="?", help="Dump path (default: REGENESIS_STATE_DUMP_FILE_PATH)")

    sub.add_parser("download-solc", help="Install every upstream solc release the surgery needs")
    sub.add_parser("config", help="Show current configuration")

    return parser


# ── Commands ─────────────────────────────────────────────────────────────────


async def _run_surgery(settings: Settings, output_path: str) -> int:
    from regenesis.core.types import SurgeryDataSources
    from regenesis.ingestion.archives import load_etherscan_contracts, load_pools
    from regenesis.ingestion.dump_validator import check_state_dump_root
    from regenesis.ingestion.rpc_client import ChainRpcClient
    from regenesis.ingestion.solidity_compiler import BytecodeCompiler, CompilerSessionProvider
    from regenesis.ingestion.state_dump import read_dump_file, write_dump_file
    from regenesis.pipeline.orchestrator import SurgeryOrchestrator

    dump = read_dump_file(settings.state_dump_file_path)
    check_state_dump_root(dump)
    genesis = read_dump_file(settings.genesis_dump_file_path)

    clients = [
        ChainRpcClient.from_settings(url, settings)
        for url in (
            settings.l1_testnet_provider_url,
            settings.l1_mainnet_provider_url,
            settings.l2_provider_url,
        )
    ]
    try:
        data = SurgeryDataSources(
            dump=dump,
            genesis=genesis,
            pools=load_pools(settings.pools_file_path),
            etherscan_contracts=load_etherscan_contracts(settings.etherscan_file_path),
            l1_testnet_client=clients[0],
            l1_mainnet_client=clients[1],
            l2_client=clients[2],
            compiler=BytecodeCompiler(
                CompilerSessionProvider(settings.solc_dir),
                max_workers=settings.compile_max_workers,
            ),
        )
        output = await SurgeryOrchestrator(data, batch_size=settings.surgery_batch_size).run()
    finally:
        for client in clients:
            await client.close()

    write_dump_file(output_path, dump.root, output)
    return 0


def _run_validate(settings: Settings, path: str | None) -> int:
    from regenesis.ingestion.dump_validator import check_state_dump_root
    from regenesis.ingestion.state_dump import read_dump_file

    dump = read_dump_file(path or settings.state_dump_file_path)
    check_state_dump_root(dump)
    print(f"{len(dump.accounts)} accounts OK (root {dump.root})")
    return 0


def _run_download_solc(settings: Settings) -> int:
    from regenesis.ingestion.solidity_compiler import install_compilers

    installed = install_compilers(settings.solc_dir, COMPILER_VERSIONS_TO_SOLC.values())
    print(f"Installed solc {', '.join(installed)} into {Path(settings.solc_dir) / 'solc'}")
    return 0


def _run_config(settings: Settings) -> int:
    """Print current settings, endpoints redacted."""
    print("\nRegenesis configuration\n")
    for field_name in sorted(type(settings).model_fields.keys()):
        val = getattr(settings, field_name, "")
        if field_name.endswith("_url"):
            val = "****" if val else "(not set)"
        print(f"  {field_name}:  {val}")
    print()
    return 0


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"regenesis-surgery {__version__}")
        return 0

    if not args.command:
        parser.print_help()
        return 0

    settings = get_settings()
    setup_logging(settings.app_env, "WARNING" if args.quiet else settings.log_level)

    start = time.monotonic()
    try:
        if args.command == "config":
            return _run_config(settings)
        if args.command == "validate":
            return _run_validate(settings, args.path)
        if args.command == "download-solc":
            return _run_download_solc(settings)
        if args.command == "run":
            return asyncio.run(_run_surgery(settings, args.output or settings.output_file_path))
    except SurgeryError as exc:
        logger.error("%s", exc, extra={"address": exc.address})
        return 1
    finally:
        logger.debug("%s finished in %.1fs", args.command, time.monotonic() - start)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
