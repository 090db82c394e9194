"""Assign every account to exactly one ``AccountType``.

Rules are evaluated in a fixed order and the first match wins:

  1. precompile range
  2. predeploy address sets (dead, wipe, no-wipe, ETH, WETH)
  3. Uniswap V3 deployments (factory, position manager, pools, libraries, other)
  4. externally-owned accounts (empty-code hash; a stray code field is ignored)
  5. verified source available
  6. any other account with code is unverified

Predeploys therefore win over "has verified source": they are migrated by
dedicated rules, never recompiled.
"""

from __future__ import annotations

from regenesis.core import constants
from regenesis.core.errors import ClassificationError
from regenesis.core.types import Account, AccountType, SurgeryDataSources

_PREDEPLOY_SETS: tuple[tuple[frozenset[str], AccountType], ...] = (
    (constants.PREDEPLOY_DEAD_ADDRESSES, AccountType.PREDEPLOY_DEAD),
    (constants.PREDEPLOY_WIPE_ADDRESSES, AccountType.PREDEPLOY_WIPE),
    (constants.PREDEPLOY_NO_WIPE_ADDRESSES, AccountType.PREDEPLOY_NO_WIPE),
    (constants.PREDEPLOY_ETH_ADDRESSES, AccountType.PREDEPLOY_ETH),
    (constants.PREDEPLOY_WETH_ADDRESSES, AccountType.PREDEPLOY_WETH),
)


def _has_code(account: Account) -> bool:
    code = account.code or ""
    return code not in ("", "0x")


def classify(account: Account, data: SurgeryDataSources) -> AccountType:
    """Return the variant of ``account``.

    Raises:
        ClassificationError: If the record is inconsistent (a non-empty code
            hash without any code), since no variant can safely apply.
    """
    address = account.address.lower()

    if constants.is_precompile(address):
        return AccountType.PRECOMPILE

    for addresses, account_type in _PREDEPLOY_SETS:
        if address in addresses:
            return account_type

    if address == constants.UNISWAP_V3_FACTORY_ADDRESS:
        return AccountType.UNISWAP_V3_FACTORY
    if address == constants.UNISWAP_V3_NFPM_ADDRESS:
        return AccountType.UNISWAP_V3_NFPM
    if address in data.pools:
        return AccountType.UNISWAP_V3_POOL
    if address in constants.UNISWAP_V3_LIB_ADDRESSES:
        return AccountType.UNISWAP_V3_LIB
    if address in constants.UNISWAP_V3_OTHER_ADDRESSES:
        return AccountType.UNISWAP_V3_OTHER

    if account.code_hash.lower().removeprefix("0x") == constants.KECCAK256_NULL:
        return AccountType.EOA
    if not _has_code(account):
        raise ClassificationError(
            f"no code but code hash {account.code_hash} is not the empty-code hash",
            address=account.address,
        )

    if address in data.etherscan_contracts:
        return AccountType.VERIFIED
    return AccountType.UNVERIFIED
