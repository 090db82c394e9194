"""Shared fixtures for the regenesis surgery test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from regenesis.core.constants import KECCAK256_NULL, KECCAK256_RLP
from regenesis.core.types import Account, EtherscanContract, StateDumpRoot, SurgeryDataSources
from regenesis.ingestion.solidity_compiler import CompiledArtifact, Toolchain


# ── Fakes ────────────────────────────────────────────────────────────────────


class FakeRpcClient:
    """In-memory stand-in for ``ChainRpcClient``."""

    def __init__(self, code: dict[str, str] | None = None) -> None:
        self.code = code or {}
        self.calls: list[str] = []

    async def get_code(self, address: str, block: str = "latest") -> str:
        self.calls.append(address)
        return self.code.get(address, "")

    async def close(self) -> None:
        pass


class FakeCompiler:
    """Returns canned artifacts per toolchain and records every request."""

    def __init__(self, artifacts: dict[Toolchain, CompiledArtifact] | None = None) -> None:
        self.artifacts = artifacts or {}
        self.calls: list[tuple[str, Toolchain]] = []

    async def compile(
        self,
        standard_input: dict[str, Any],
        version: str,
        toolchain: Toolchain,
        contract: EtherscanContract,
    ) -> CompiledArtifact:
        self.calls.append((version, toolchain))
        return self.artifacts[toolchain]


# ── Records ──────────────────────────────────────────────────────────────────

CONTRACT_ADDRESS = "0x0000000000000000000000000000000000000420"


@pytest.fixture
def dummy_account() -> Account:
    return Account(
        address=CONTRACT_ADDRESS,
        nonce=69,
        balance="0",
        code_hash="420e69",
        storage_root="420e69",
        code="608060405",
        storage={"0x" + "00" * 31 + "01": "0000000000000000000000000000000000000420"},
    )


@pytest.fixture
def eoa_account() -> Account:
    return Account(
        address="0x1111111111111111111111111111111111111111",
        nonce=5,
        balance="0",
        code_hash=KECCAK256_NULL,
        storage_root=KECCAK256_RLP,
    )


@pytest.fixture
def contract_account() -> Account:
    return Account(
        address="0x2222222222222222222222222222222222222222",
        nonce=1,
        balance="0",
        code_hash="ab" * 32,
        storage_root="cd" * 32,
        code="6080604052",
        storage={"0x" + "00" * 32: "01"},
    )


@pytest.fixture
def verified_contract() -> EtherscanContract:
    return EtherscanContract(
        contract_address="0x2222222222222222222222222222222222222222",
        source_code="pragma solidity ^0.7.6;\ncontract Counter { uint256 public count; }",
        compiler_version="v0.7.6+commit.3b061308",
        optimization_used=True,
        runs=200,
        contract_name="Counter",
    )


# ── Data sources ─────────────────────────────────────────────────────────────


@pytest.fixture
def make_data_sources() -> Callable[..., SurgeryDataSources]:
    """Build a ``SurgeryDataSources`` with fakes for every collaborator."""

    def _make(
        accounts: list[Account] | None = None,
        genesis: list[Account] | None = None,
        pools: dict[str, str] | None = None,
        contracts: list[EtherscanContract] | None = None,
        compiler: FakeCompiler | None = None,
        l1_mainnet_client: FakeRpcClient | None = None,
        l2_client: FakeRpcClient | None = None,
    ) -> SurgeryDataSources:
        return SurgeryDataSources(
            dump=StateDumpRoot(root="00" * 32, accounts={a.address: a for a in accounts or []}),
            genesis=StateDumpRoot(root="11" * 32, accounts={a.address: a for a in genesis or []}),
            pools=pools or {},
            etherscan_contracts={c.contract_address: c for c in contracts or []},
            l1_testnet_client=FakeRpcClient(),
            l1_mainnet_client=l1_mainnet_client or FakeRpcClient(),
            l2_client=l2_client or FakeRpcClient(),
            compiler=compiler or FakeCompiler(),
        )

    return _make


@pytest.fixture
def write_dump(tmp_path: Path) -> Callable[..., Path]:
    """Write a line-delimited dump file and return its path."""

    def _write(root: str, records: list[dict[str, Any]], name: str = "dump.json") -> Path:
        path = tmp_path / name
        lines = [json.dumps({"root": root})] + [json.dumps(r) for r in records]
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write
