"""Surgery error taxonomy.

Every failure carries a stable ``ErrorCode`` and, where one applies, the
address of the account being transformed. None of these are retried by
the orchestrator: recompilation and relocation are deterministic, so the
same input always fails the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes attached to every surgery failure."""

    # Input
    DUMP_PARSE_ERROR = "DUMP_PARSE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Classification / data sources
    CLASSIFICATION_ERROR = "CLASSIFICATION_ERROR"
    MISSING_SOURCE = "MISSING_SOURCE"
    GENESIS_ACCOUNT_MISSING = "GENESIS_ACCOUNT_MISSING"

    # Compilation
    COMPILER_VERSION_UNKNOWN = "COMPILER_VERSION_UNKNOWN"
    COMPILER_UNAVAILABLE = "COMPILER_UNAVAILABLE"
    COMPILATION_ERROR = "COMPILATION_ERROR"
    IMMUTABLE_RELOCATION_ERROR = "IMMUTABLE_RELOCATION_ERROR"

    # Remote
    REMOTE_CODE_FETCH_ERROR = "REMOTE_CODE_FETCH_ERROR"

    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"


class SurgeryError(Exception):
    """Base class for every fatal surgery failure."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        address: str | None = None,
        details: list[dict[str, Any]] | None = None,
        code: ErrorCode | None = None,
    ):
        if code is not None:
            self.code = code
        self.message = message
        self.address = address
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.address:
            return f"[{self.code.value}] {self.address}: {self.message}"
        return f"[{self.code.value}] {self.message}"


class DumpParseError(SurgeryError):
    code = ErrorCode.DUMP_PARSE_ERROR


@dataclass(frozen=True)
class ValidationIssue:
    """One invariant violation found in a state dump."""

    address: str
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"address": self.address, "field": self.field, "message": self.message}


class DumpValidationError(SurgeryError):
    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        first = issues[0] if issues else None
        summary = f"{len(issues)} invariant violation(s) in state dump"
        if first is not None:
            summary += f"; first: {first.address} {first.field}: {first.message}"
        super().__init__(
            summary,
            address=first.address if first else None,
            details=[issue.to_dict() for issue in issues],
        )


class ClassificationError(SurgeryError):
    code = ErrorCode.CLASSIFICATION_ERROR


class MissingSourceError(SurgeryError):
    code = ErrorCode.MISSING_SOURCE


class GenesisAccountMissingError(SurgeryError):
    code = ErrorCode.GENESIS_ACCOUNT_MISSING


class CompilerVersionUnknownError(SurgeryError):
    code = ErrorCode.COMPILER_VERSION_UNKNOWN


class CompilerUnavailableError(SurgeryError):
    code = ErrorCode.COMPILER_UNAVAILABLE


class CompilationError(SurgeryError):
    code = ErrorCode.COMPILATION_ERROR


class ImmutableRelocationError(SurgeryError):
    code = ErrorCode.IMMUTABLE_RELOCATION_ERROR


class RemoteCodeFetchError(SurgeryError):
    code = ErrorCode.REMOTE_CODE_FETCH_ERROR


class SurgeryNotImplementedError(SurgeryError):
    code = ErrorCode.NOT_IMPLEMENTED
