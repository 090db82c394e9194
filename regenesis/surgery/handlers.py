"""Per-variant account transforms.

Each handler takes an account and the read-only data sources and returns
either a new ``Account`` or ``None`` to delete the account. Handlers that
fetch remote code or compile are coroutines; the rest are plain functions.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Union

from eth_utils import keccak

from regenesis.core.constants import COMPILER_VERSIONS_TO_SOLC, KECCAK256_NULL, KECCAK256_RLP, OLD_ETH_ADDRESS
from regenesis.core.errors import (
    CompilerVersionUnknownError,
    GenesisAccountMissingError,
    ImmutableRelocationError,
    MissingSourceError,
    SurgeryNotImplementedError,
)
from regenesis.core.types import Account, AccountType, SurgeryDataSources
from regenesis.ingestion.solidity_compiler import Toolchain
from regenesis.ingestion.source_resolver import solc_input
from regenesis.surgery.immutables import parse_immutable_references, relocate_immutables

logger = logging.getLogger(__name__)

HandlerResult = Union[Account, None]
Handler = Callable[[Account, SurgeryDataSources], Union[HandlerResult, Awaitable[HandlerResult]]]


def code_hash(code: str) -> str:
    """keccak256 of hex bytecode, lower-case hex without prefix."""
    return keccak(hexstr=code or "0x").hex().removeprefix("0x")


def _genesis_account(account: Account, data: SurgeryDataSources) -> Account:
    genesis_account = data.genesis.accounts.get(account.address)
    if genesis_account is None:
        raise GenesisAccountMissingError("predeploy has no genesis account", address=account.address)
    return genesis_account


# ── Handlers ─────────────────────────────────────────────────────────────────


def handle_eoa(account: Account, data: SurgeryDataSources) -> HandlerResult:
    return Account(
        address=account.address,
        nonce=account.nonce,
        balance=account.balance,
        code_hash=KECCAK256_NULL,
        storage_root=KECCAK256_RLP,
    )


def handle_precompile(account: Account, data: SurgeryDataSources) -> HandlerResult:
    return account


def handle_delete(account: Account, data: SurgeryDataSources) -> HandlerResult:
    return None


def handle_predeploy_wipe(account: Account, data: SurgeryDataSources) -> HandlerResult:
    genesis_account = _genesis_account(account, data)
    return replace(
        account,
        code=genesis_account.code,
        code_hash=genesis_account.code_hash,
        storage=dict(genesis_account.storage) if genesis_account.storage is not None else None,
    )


def handle_predeploy_no_wipe(account: Account, data: SurgeryDataSources) -> HandlerResult:
    genesis_account = _genesis_account(account, data)
    return replace(
        account,
        code=genesis_account.code,
        code_hash=genesis_account.code_hash,
        storage={**(account.storage or {}), **(genesis_account.storage or {})},
    )


def handle_predeploy_eth(account: Account, data: SurgeryDataSources) -> HandlerResult:
    genesis_account = _genesis_account(account, data)
    old_eth_account = data.dump.accounts.get(OLD_ETH_ADDRESS)
    if old_eth_account is None:
        raise GenesisAccountMissingError(
            f"legacy ETH account {OLD_ETH_ADDRESS} missing from the dump", address=account.address
        )
    return replace(
        account,
        code=genesis_account.code,
        code_hash=genesis_account.code_hash,
        storage={**(old_eth_account.storage or {}), **(genesis_account.storage or {})},
    )


async def handle_uniswap_pool(account: Account, data: SurgeryDataSources) -> HandlerResult:
    new_address = data.pools[account.address]
    code = await data.l2_client.get_code(new_address)
    return replace(account, address=new_address, code=code, code_hash=code_hash(code))


async def handle_uniswap_other(account: Account, data: SurgeryDataSources) -> HandlerResult:
    code = await data.l1_mainnet_client.get_code(account.address)
    return replace(account, code=code, code_hash=code_hash(code))


def _not_implemented(account_type: AccountType) -> Handler:
    def handler(account: Account, data: SurgeryDataSources) -> HandlerResult:
        raise SurgeryNotImplementedError(f"no handler for {account_type.value}", address=account.address)

    handler.__name__ = f"handle_{account_type.value}"
    return handler


async def handle_verified(account: Account, data: SurgeryDataSources) -> HandlerResult:
    """Recompile from archived source and carry immutables over."""
    contract = data.etherscan_contracts.get(account.address)
    if contract is None:
        raise MissingSourceError("not in verified-source archive", address=account.address)

    version = COMPILER_VERSIONS_TO_SOLC.get(contract.compiler_version)
    if version is None:
        raise CompilerVersionUnknownError(
            f"no solc release mapped for {contract.compiler_version}", address=account.address
        )

    standard_input = solc_input(contract)
    artifact = await data.compiler.compile(standard_input, version, Toolchain.SOLC, contract)
    if artifact.needs_linking:
        # TODO: link library placeholders once the library address mapping is archived
        raise SurgeryNotImplementedError("library-linked contracts are not supported", address=account.address)

    code = artifact.deployed_bytecode
    new_refs = parse_immutable_references(artifact.immutable_references)
    if new_refs:
        if not account.code:
            raise ImmutableRelocationError("account has no code to read immutables from", address=account.address)
        # Offsets of the immutables in the code the account actually ran
        historical = await data.compiler.compile(
            standard_input, contract.compiler_version, Toolchain.OVM, contract
        )
        code = relocate_immutables(
            code,
            new_refs,
            account.code,
            parse_immutable_references(historical.immutable_references),
            address=account.address,
        )

    return replace(account, code=code, code_hash=code_hash(code))


# ── Registry ─────────────────────────────────────────────────────────────────

HANDLERS: dict[AccountType, Handler] = {
    AccountType.EOA: handle_eoa,
    AccountType.PRECOMPILE: handle_precompile,
    AccountType.PREDEPLOY_DEAD: handle_delete,
    AccountType.PREDEPLOY_WIPE: handle_predeploy_wipe,
    AccountType.PREDEPLOY_NO_WIPE: handle_predeploy_no_wipe,
    AccountType.PREDEPLOY_ETH: handle_predeploy_eth,
    AccountType.PREDEPLOY_WETH: _not_implemented(AccountType.PREDEPLOY_WETH),
    AccountType.UNISWAP_V3_FACTORY: _not_implemented(AccountType.UNISWAP_V3_FACTORY),
    AccountType.UNISWAP_V3_NFPM: _not_implemented(AccountType.UNISWAP_V3_NFPM),
    AccountType.UNISWAP_V3_POOL: handle_uniswap_pool,
    AccountType.UNISWAP_V3_LIB: handle_delete,
    AccountType.UNISWAP_V3_OTHER: handle_uniswap_other,
    AccountType.UNVERIFIED: handle_delete,
    AccountType.VERIFIED: handle_verified,
}

_missing = set(AccountType) - set(HANDLERS)
if _missing:
    raise RuntimeError(f"account types without a handler: {sorted(t.value for t in _missing)}")


def get_handler(account_type: AccountType) -> Handler:
    return HANDLERS[account_type]
