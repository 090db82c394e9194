"""Turn an archived verified-source record into a solc standard JSON input."""

from __future__ import annotations

import json
import logging
from typing import Any

from regenesis.core.constants import DEFAULT_SOURCE_FILE
from regenesis.core.types import EtherscanContract

logger = logging.getLogger(__name__)


def _strip_double_braces(source: str) -> str:
    """Remove the extra brace pair some explorer exports wrap JSON bundles in."""
    stripped = source.strip()
    if stripped.startswith("{{") and stripped.endswith("}}"):
        return stripped[1:-1]
    return source


def solc_input(contract: EtherscanContract) -> dict[str, Any]:
    """Build the standard JSON input for an archived contract.

    The archived source may be:
      - a complete standard JSON input (returned as-is),
      - a JSON ``sources`` map of a multi-file bundle,
      - either of the above wrapped in one extra pair of braces,
      - plain Solidity, compiled as a single file under ``DEFAULT_SOURCE_FILE``.
    """
    source = _strip_double_braces(contract.source_code)

    parsed: Any = None
    try:
        parsed = json.loads(source)
    except json.JSONDecodeError:
        logger.debug("Source is not JSON, compiling as a single file", extra={"address": contract.contract_address})

    if isinstance(parsed, dict) and parsed.get("language"):
        return parsed

    if isinstance(parsed, dict):
        sources = parsed
    else:
        sources = {DEFAULT_SOURCE_FILE: {"content": contract.source_code}}

    return {
        "language": "Solidity",
        "sources": sources,
        "settings": {
            "optimizer": {
                "enabled": contract.optimization_used,
                "runs": contract.runs,
            },
            "outputSelection": {
                "*": {
                    "*": ["*"],
                },
            },
        },
    }
