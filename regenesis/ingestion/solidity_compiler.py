"""Solidity compiler sessions and artifact extraction.

A compiler is identified by a (version, toolchain) pair. ``SOLC`` is the
upstream release the new chain runs; ``OVM`` is the legacy fork the
historical contracts were built with. Both are driven through solc's
standard JSON interface.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import solcx
from solcx.exceptions import SolcError, SolcNotInstalled
from solcx.install import get_executable

from regenesis.core.constants import DEFAULT_SOURCE_FILE
from regenesis.core.errors import (
    CompilationError,
    CompilerUnavailableError,
)
from regenesis.core.types import EtherscanContract

logger = logging.getLogger(__name__)

_SEMVER_RE = re.compile(r"^v?(\d+\.\d+\.\d+)")


class Toolchain(str, enum.Enum):
    """Compiler family a session belongs to."""

    SOLC = "solc"
    OVM = "ovm"


@dataclass
class CompiledArtifact:
    """Deployed-code view of one compiled contract."""

    file_name: str
    contract_name: str
    deployed_bytecode: str
    immutable_references: dict[str, list[dict[str, int]]] = field(default_factory=dict)
    link_references: dict[str, Any] = field(default_factory=dict)

    @property
    def needs_linking(self) -> bool:
        return bool(self.link_references) or "__$" in self.deployed_bytecode


def _solcx_version(version: str) -> str:
    """``v0.7.6+commit.7338295f`` -> ``0.7.6``."""
    match = _SEMVER_RE.match(version)
    if not match:
        raise CompilerUnavailableError(f"Unparseable compiler version {version!r}")
    return match.group(1)


# ── Sessions ─────────────────────────────────────────────────────────────────


class CompilerSession:
    """A ready-to-invoke compiler binary."""

    def __init__(self, version: str, toolchain: Toolchain, binary: Path) -> None:
        self.version = version
        self.toolchain = toolchain
        self.binary = binary

    def compile(self, standard_input: dict[str, Any]) -> dict[str, Any]:
        """Run the compiler on a standard JSON input and return its output.

        Raises:
            CompilationError: If the compiler reports an error.
        """
        try:
            return solcx.compile_standard(standard_input, solc_binary=self.binary)
        except SolcError as exc:
            raise CompilationError(f"{self.toolchain.value} {self.version}: {getattr(exc, 'message', exc)}") from exc

    def __repr__(self) -> str:
        return f"CompilerSession({self.version!r}, {self.toolchain.value}, {self.binary})"


class CompilerSessionProvider:
    """Lazily created, process-wide cache of compiler sessions.

    Sessions are keyed by (version, toolchain). The binaries themselves must
    already be present under ``solc_dir``; see ``install_compilers``.
    """

    def __init__(self, solc_dir: str | Path) -> None:
        self.solc_dir = Path(solc_dir)
        self._sessions: dict[tuple[str, Toolchain], CompilerSession] = {}

    @property
    def solcx_dir(self) -> Path:
        return self.solc_dir / "solc"

    def ovm_binary(self, version: str) -> Path:
        return self.solc_dir / "ovm" / f"solc-{version}"

    def get_session(self, version: str, toolchain: Toolchain) -> CompilerSession:
        key = (version, toolchain)
        session = self._sessions.get(key)
        if session is None:
            session = CompilerSession(version, toolchain, self._resolve_binary(version, toolchain))
            self._sessions[key] = session
            logger.debug("Created %r", session)
        return session

    def _resolve_binary(self, version: str, toolchain: Toolchain) -> Path:
        if toolchain is Toolchain.OVM:
            binary = self.ovm_binary(version)
            if not binary.is_file():
                raise CompilerUnavailableError(f"OVM compiler {version} not found at {binary}")
            return binary
        try:
            return Path(get_executable(_solcx_version(version), solcx_binary_path=self.solcx_dir))
        except SolcNotInstalled as exc:
            raise CompilerUnavailableError(f"solc {version} is not installed in {self.solcx_dir}") from exc


def install_compilers(solc_dir: str | Path, versions: Iterable[str]) -> list[str]:
    """Install upstream solc releases into ``solc_dir`` via solcx.

    Returns the installed semantic versions. OVM binaries are not published
    as native builds and must be placed under ``solc_dir/ovm`` by hand.
    """
    target = Path(solc_dir) / "solc"
    target.mkdir(parents=True, exist_ok=True)
    installed: list[str] = []
    for version in sorted({_solcx_version(v) for v in versions}):
        logger.info("Installing solc %s", version)
        solcx.install_solc(version, show_progress=False, solcx_binary_path=target)
        installed.append(version)
    return installed


# ── Artifact selection ───────────────────────────────────────────────────────


def select_artifact(output: dict[str, Any], contract: EtherscanContract) -> CompiledArtifact:
    """Pick the artifact for an archived contract out of a compiler output.

    Multi-file bundles record the file name explicitly; single-file bundles
    were compiled under ``DEFAULT_SOURCE_FILE``.

    Raises:
        CompilationError: If the output has no contracts or the
            file/contract key is absent.
    """
    address = contract.contract_address
    contracts = output.get("contracts")
    if not contracts:
        raise CompilationError("Compiler produced no contracts", address=address)

    file_name = contract.contract_file_name or DEFAULT_SOURCE_FILE
    main = contracts.get(file_name, {}).get(contract.contract_name)
    if main is None:
        raise CompilationError(
            f"Contract {file_name}:{contract.contract_name} not in compiler output",
            address=address,
        )

    deployed = main.get("evm", {}).get("deployedBytecode")
    if deployed is None:
        raise CompilationError("Compiler output has no deployed bytecode", address=address)
    # Some compiler builds emit the bare object instead of the bytecode dict
    if isinstance(deployed, str):
        deployed = {"object": deployed}

    return CompiledArtifact(
        file_name=file_name,
        contract_name=contract.contract_name,
        deployed_bytecode=deployed.get("object", ""),
        immutable_references=deployed.get("immutableReferences") or {},
        link_references=deployed.get("linkReferences") or {},
    )


class BytecodeCompiler:
    """Compile archived sources off the event loop, bounded by CPU budget."""

    def __init__(self, provider: CompilerSessionProvider, max_workers: int = 1) -> None:
        self.provider = provider
        self._semaphore = asyncio.Semaphore(max(1, max_workers))

    async def compile(
        self,
        standard_input: dict[str, Any],
        version: str,
        toolchain: Toolchain,
        contract: EtherscanContract,
    ) -> CompiledArtifact:
        session = self.provider.get_session(version, toolchain)
        async with self._semaphore:
            try:
                output = await asyncio.to_thread(session.compile, standard_input)
            except CompilationError as exc:
                exc.address = exc.address or contract.contract_address
                raise
        return select_artifact(output, contract)
