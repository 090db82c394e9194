"""Shared enums and records used across the surgery."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from regenesis.ingestion.rpc_client import ChainRpcClient
    from regenesis.ingestion.solidity_compiler import BytecodeCompiler


# ── Enums ────────────────────────────────────────────────────────────────────


class AccountType(str, enum.Enum):
    """Mutually exclusive account variants, one handler each."""

    EOA = "eoa"
    PRECOMPILE = "precompile"
    PREDEPLOY_DEAD = "predeploy_dead"
    PREDEPLOY_WIPE = "predeploy_wipe"
    PREDEPLOY_NO_WIPE = "predeploy_no_wipe"
    PREDEPLOY_ETH = "predeploy_eth"
    PREDEPLOY_WETH = "predeploy_weth"
    UNISWAP_V3_FACTORY = "uniswap_v3_factory"
    UNISWAP_V3_NFPM = "uniswap_v3_nfpm"
    UNISWAP_V3_POOL = "uniswap_v3_pool"
    UNISWAP_V3_LIB = "uniswap_v3_lib"
    UNISWAP_V3_OTHER = "uniswap_v3_other"
    UNVERIFIED = "unverified"
    VERIFIED = "verified"


# ── Records ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Account:
    """One account of a state dump.

    ``code`` and ``storage`` are ``None`` when the record carries none.
    Handlers never mutate an ``Account``; they derive a new one with
    ``dataclasses.replace``.
    """

    address: str
    nonce: int
    balance: str
    code_hash: str
    storage_root: str
    code: str | None = None
    storage: dict[str, str] | None = None

    @classmethod
    def from_record(cls, address: str, record: dict[str, Any]) -> "Account":
        """Build from a dump record whose transport fields were removed."""
        return cls(
            address=address,
            nonce=record.get("nonce"),  # type: ignore[arg-type]
            balance=record.get("balance"),  # type: ignore[arg-type]
            code_hash=record.get("codeHash", ""),
            storage_root=record.get("root", ""),
            code=record.get("code"),
            storage=record.get("storage"),
        )

    def to_record(self) -> dict[str, Any]:
        """Serialise to the dump wire format, without the address."""
        record: dict[str, Any] = {
            "balance": self.balance,
            "nonce": self.nonce,
            "root": self.storage_root,
            "codeHash": self.code_hash,
        }
        if self.code is not None:
            record["code"] = self.code
        if self.storage is not None:
            record["storage"] = self.storage
        return record


@dataclass(frozen=True)
class StateDumpRoot:
    """A full state dump: its root hash and the address-keyed accounts."""

    root: str
    accounts: dict[str, Account] = field(default_factory=dict)


@dataclass(frozen=True)
class EtherscanContract:
    """Archived verified-source record for one contract."""

    contract_address: str
    source_code: str
    compiler_version: str
    optimization_used: bool
    runs: int
    contract_name: str
    contract_file_name: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "EtherscanContract":
        return cls(
            contract_address=record["contractAddress"].lower(),
            source_code=record.get("sourceCode", ""),
            compiler_version=record.get("compilerVersion", ""),
            optimization_used=record.get("optimizationUsed", "0") == "1",
            runs=int(record.get("runs", 200)),
            contract_name=record.get("contractName", ""),
            contract_file_name=record.get("contractFileName") or None,
        )


@dataclass(frozen=True)
class UniswapPoolData:
    """A migrated pool: its legacy address and its redeployed address."""

    old_address: str
    new_address: str


@dataclass(frozen=True)
class SurgeryDataSources:
    """Everything a handler may consult. Read-only for the whole run.

    ``pools`` maps legacy pool address to new pool address and
    ``etherscan_contracts`` is keyed by lower-case contract address.
    """

    dump: StateDumpRoot
    genesis: StateDumpRoot
    pools: dict[str, str]
    etherscan_contracts: dict[str, EtherscanContract]
    l1_testnet_client: "ChainRpcClient"
    l1_mainnet_client: "ChainRpcClient"
    l2_client: "ChainRpcClient"
    compiler: "BytecodeCompiler"
