"""Carry immutable values across two compilations of the same source.

solc reports, for every immutable variable, the byte ranges of deployed
code where its value is injected at deploy time::

    {"<ast id>": [{"start": 123, "length": 32}, ...], ...}

The AST ids are stable between two toolchains compiling the same input,
so the n-th range of an id in one output corresponds to the n-th range of
that id in the other. Values are copied range by range from the historical
code into the freshly compiled code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from regenesis.core.errors import ImmutableRelocationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImmutableRange:
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length


ImmutableReferences = dict[str, list[ImmutableRange]]


def parse_immutable_references(raw: dict[str, list[dict[str, Any]]] | None) -> ImmutableReferences:
    """Convert solc's ``immutableReferences`` into typed ranges."""
    return {
        ast_id: [ImmutableRange(int(ref["start"]), int(ref["length"])) for ref in refs]
        for ast_id, refs in (raw or {}).items()
    }


def _to_bytes(code: str, label: str, address: str | None) -> bytes:
    code = code[2:] if code.startswith("0x") else code
    try:
        return bytes.fromhex(code)
    except ValueError as exc:
        raise ImmutableRelocationError(f"{label} bytecode is not hex: {exc}", address=address) from exc


def relocate_immutables(
    new_code: str,
    new_refs: ImmutableReferences,
    historical_code: str,
    historical_refs: ImmutableReferences,
    address: str | None = None,
) -> str:
    """Splice every immutable value of ``historical_code`` into ``new_code``.

    Every occurrence of every immutable is spliced into one working buffer,
    in order. Returns the resulting bytecode as lower-case hex without a
    prefix.

    ``historical_code`` must be the account's deployed code, not the
    legacy compiler's output: compiled deployed bytecode leaves immutable
    slots zero-filled, since their values are only written by the
    constructor. ``historical_refs`` come from that legacy compilation and
    locate the slots inside the deployed code.

    Raises:
        ImmutableRelocationError: If an immutable or one of its occurrences
            is missing from the historical references, a pair of ranges
            differs in length, a historical range runs past the end of the
            code, or a splice changes the bytecode length.
    """
    buffer = bytearray(_to_bytes(new_code, "new", address))
    historical = _to_bytes(historical_code, "historical", address)
    expected_length = len(buffer)

    for ast_id, ranges in new_refs.items():
        old_ranges = historical_refs.get(ast_id)
        if old_ranges is None:
            raise ImmutableRelocationError(
                f"immutable {ast_id} missing from historical compiler output", address=address
            )
        if len(old_ranges) < len(ranges):
            raise ImmutableRelocationError(
                f"immutable {ast_id}: {len(ranges)} occurrences in new code, "
                f"{len(old_ranges)} in historical code",
                address=address,
            )

        for index, ref in enumerate(ranges):
            old_ref = old_ranges[index]
            if ref.length != old_ref.length:
                raise ImmutableRelocationError(
                    f"immutable {ast_id}[{index}]: length mismatch {ref.length} vs {old_ref.length}",
                    address=address,
                )
            if old_ref.end > len(historical):
                raise ImmutableRelocationError(
                    f"immutable {ast_id}[{index}]: range {old_ref.start}+{old_ref.length} "
                    f"exceeds historical code of {len(historical)} bytes",
                    address=address,
                )

            buffer[ref.start:ref.end] = historical[old_ref.start:old_ref.end]

            if len(buffer) != expected_length:
                raise ImmutableRelocationError(
                    f"mismatch in size after splicing {ast_id}[{index}]: "
                    f"{len(buffer)} vs {expected_length}",
                    address=address,
                )

    logger.debug(
        "Relocated %d immutables", sum(len(r) for r in new_refs.values()),
        extra={"address": address},
    )
    return buffer.hex()
