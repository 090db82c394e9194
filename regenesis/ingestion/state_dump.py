"""Read and write line-delimited state dumps.

Line 1 holds ``{"root": <hash>}``; every following line is one account
record. Exports run to several gigabytes, so the file is consumed in a
single forward pass, one line at a time.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from regenesis.core.errors import DumpParseError
from regenesis.core.types import Account, StateDumpRoot

logger = logging.getLogger(__name__)

# Present on every exported record, never part of the account itself
_TRANSPORT_FIELDS = ("address", "key")


def read_dump_file(path: str | Path) -> StateDumpRoot:
    """Stream a state dump into a ``StateDumpRoot``.

    Raises:
        DumpParseError: If a line is not valid JSON, the root record is
            missing, or an account record has no address.
    """
    root: str | None = None
    accounts: dict[str, Account] = {}

    with open(path, "r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                raise DumpParseError(f"{path}:{lineno}: invalid JSON: {exc}") from exc

            if root is None:
                # Account records carry their storage root under the same key
                if not isinstance(record, dict) or "root" not in record or "address" in record:
                    raise DumpParseError(f"{path}:{lineno}: first record is not a root record")
                root = record["root"]
                continue

            address = record.get("address") if isinstance(record, dict) else None
            if not address:
                raise DumpParseError(f"{path}:{lineno}: account record has no address")
            for name in _TRANSPORT_FIELDS:
                record.pop(name, None)

            if address in accounts:
                logger.warning("Duplicate account record, keeping the last one", extra={"address": address})
            accounts[address] = Account.from_record(address, record)

    if root is None:
        raise DumpParseError(f"{path}: empty state dump")

    logger.info("Read %d accounts from %s", len(accounts), path, extra={"accounts": len(accounts)})
    return StateDumpRoot(root=root, accounts=accounts)


def write_dump_file(path: str | Path, root: str, accounts: Iterable[Account]) -> int:
    """Write accounts in the dump wire format. Returns the number written."""
    count = 0
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(json.dumps({"root": root}) + "\n")
        for account in accounts:
            record = {"address": account.address, **account.to_record()}
            fh.write(json.dumps(record) + "\n")
            count += 1
    logger.info("Wrote %d accounts to %s", count, path, extra={"accounts": count})
    return count
