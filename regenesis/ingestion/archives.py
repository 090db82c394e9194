"""Load the archived verified-source dataset and the pool migration list."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from regenesis.core.types import EtherscanContract, UniswapPoolData

logger = logging.getLogger(__name__)


def load_etherscan_contracts(path: str | Path) -> dict[str, EtherscanContract]:
    """Load the verified-source archive, keyed by lower-case address.

    The archive is a JSON array of records using the explorer export field
    names (``contractAddress``, ``sourceCode``, ``compilerVersion``, ...).
    """
    with open(path, "r", encoding="utf-8") as fh:
        records = json.load(fh)

    contracts: dict[str, EtherscanContract] = {}
    for record in records:
        contract = EtherscanContract.from_record(record)
        contracts[contract.contract_address] = contract

    logger.info("Loaded %d verified contracts from %s", len(contracts), path)
    return contracts


def load_pools(path: str | Path) -> dict[str, str]:
    """Load the pool migration list as a legacy -> new address mapping."""
    with open(path, "r", encoding="utf-8") as fh:
        records = json.load(fh)

    pools = [
        UniswapPoolData(
            old_address=record["oldAddress"].lower(),
            new_address=record["newAddress"].lower(),
        )
        for record in records
    ]
    logger.info("Loaded %d pool migrations from %s", len(pools), path)
    return {pool.old_address: pool.new_address for pool in pools}
