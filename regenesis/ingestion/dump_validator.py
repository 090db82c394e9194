"""Dump-wide invariant checks, run once before any handler executes."""

from __future__ import annotations

import logging
import re

from regenesis.core.constants import is_precompile
from regenesis.core.errors import DumpValidationError, ValidationIssue
from regenesis.core.types import Account, StateDumpRoot

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")
_HEX_RE = re.compile(r"^(0x)?[0-9a-f]*$")


def _check_hex(issues: list[ValidationIssue], address: str, field: str, value: object) -> None:
    if not isinstance(value, str) or not value or not _HEX_RE.match(value):
        issues.append(ValidationIssue(address, field, f"not lower-case hex: {value!r}"))


def check_account(account: Account) -> list[ValidationIssue]:
    """Return every invariant violation of a single account."""
    issues: list[ValidationIssue] = []
    address = account.address

    if not _ADDRESS_RE.match(address):
        issues.append(ValidationIssue(address, "address", "not a lower-case 20-byte hex address"))

    nonce = account.nonce
    if isinstance(nonce, bool) or not isinstance(nonce, int) or nonce < 0:
        issues.append(ValidationIssue(address, "nonce", f"not a non-negative integer: {nonce!r}"))

    if account.balance != "0" and not is_precompile(address):
        issues.append(ValidationIssue(address, "balance", f"non-zero balance: {account.balance!r}"))

    _check_hex(issues, address, "codeHash", account.code_hash)
    _check_hex(issues, address, "root", account.storage_root)
    if account.code is not None and not _HEX_RE.match(account.code):
        issues.append(ValidationIssue(address, "code", "not lower-case hex"))

    for key, value in (account.storage or {}).items():
        _check_hex(issues, address, f"storage[{key}]", key)
        _check_hex(issues, address, f"storage[{key}].value", value)

    return issues


def check_state_dump_root(dump: StateDumpRoot) -> None:
    """Assert every account invariant, collecting all violations.

    Raises:
        DumpValidationError: Listing every offending address and field.
    """
    issues: list[ValidationIssue] = []
    if not isinstance(dump.root, str) or not _HEX_RE.match(dump.root):
        issues.append(ValidationIssue("", "root", f"dump root not lower-case hex: {dump.root!r}"))

    for account in dump.accounts.values():
        issues.extend(check_account(account))

    if issues:
        for issue in issues[:20]:
            logger.error("%s: %s", issue.field, issue.message, extra={"address": issue.address})
        raise DumpValidationError(issues)

    logger.info("State dump validated", extra={"accounts": len(dump.accounts)})
