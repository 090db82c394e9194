"""Tests for regenesis.core.errors: codes and rendering."""

from __future__ import annotations

from regenesis.core.errors import (
    CompilationError,
    DumpValidationError,
    ErrorCode,
    SurgeryError,
    ValidationIssue,
)

ADDRESS = "0x" + "ab" * 20


class TestSurgeryError:
    def test_subclass_code(self):
        assert CompilationError("boom").code is ErrorCode.COMPILATION_ERROR

    def test_code_argument_overrides_class_code(self):
        exc = SurgeryError("no handler", code=ErrorCode.NOT_IMPLEMENTED)
        assert exc.code is ErrorCode.NOT_IMPLEMENTED
        assert SurgeryError("other").code is ErrorCode.VALIDATION_ERROR

    def test_str_with_address(self):
        exc = CompilationError("boom", address=ADDRESS)
        assert str(exc) == f"[COMPILATION_ERROR] {ADDRESS}: boom"

    def test_str_without_address(self):
        assert str(CompilationError("boom")) == "[COMPILATION_ERROR] boom"


def test_validation_error_collects_issues():
    issues = [
        ValidationIssue(ADDRESS, "balance", "non-zero balance"),
        ValidationIssue(ADDRESS, "nonce", "negative nonce"),
    ]
    exc = DumpValidationError(issues)
    assert exc.issues == issues
    assert exc.address == ADDRESS
    assert len(exc.details) == 2
