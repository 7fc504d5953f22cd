import errno
from pathlib import Path

import pytest

from faultline.decrust import Decrust
from faultline.errors import (
    ConfigError,
    InternalError,
    IoError,
    NotFoundError,
    ValidationError,
)
from faultline.types import (
    DiagnosticResult,
    ErrorContext,
    ErrorLocation,
    ExecuteCommand,
    FixType,
    SuggestCodeChange,
    TextReplace,
)


@pytest.fixture
def engine():
    return Decrust()


def _diagnostic(fixes, code="E0001", message="Invalid syntax"):
    return DiagnosticResult(
        primary_location=ErrorLocation("src/main.rs", 42, 10, "main"),
        suggested_fixes=fixes,
        original_message=message,
        diagnostic_code=code,
    )


def _rich_io_error(diagnostic):
    base = IoError(source=OSError("Invalid data"), path="src/main.rs", operation="parse")
    return base.add_context(ErrorContext("Syntax error").with_diagnostic_info(diagnostic))


def test_suggest_autocorrection_for_not_found(engine):
    error = NotFoundError(resource_type="file", identifier="/path/to/missing_file.txt")
    correction = error.suggest_autocorrection(engine, None)
    assert correction is not None
    assert correction.fix_type == FixType.EXECUTE_COMMAND
    assert "Resource type 'file'" in correction.description
    assert "/path/to/missing_file.txt" in correction.description
    assert any("touch" in cmd for cmd in correction.commands_to_apply)


def test_not_found_missing_parent_adds_mkdir(engine, tmp_path):
    target = tmp_path / "sub" / "file.txt"
    error = NotFoundError(resource_type="path", identifier=str(target))
    correction = engine.suggest_autocorrection(error)
    assert correction.commands_to_apply == [
        f'mkdir -p "{tmp_path / "sub"}"',
        f'touch "{target}"',
    ]
    assert correction.details == ExecuteCommand(
        command=f'mkdir -p "{tmp_path / "sub"}"', args=(f'touch "{target}"',)
    )
    assert correction.targets_error_code == "NotFound"
    assert correction.confidence == 0.7


def test_not_found_existing_parent_only_touches(engine, tmp_path):
    target = tmp_path / "file.txt"
    error = NotFoundError(resource_type="file", identifier=str(target))
    correction = engine.suggest_autocorrection(error)
    assert correction.commands_to_apply == [f'touch "{target}"']


def test_not_found_non_file_resource_needs_manual_work(engine):
    error = NotFoundError(resource_type="user", identifier="alice")
    correction = engine.suggest_autocorrection(error)
    assert correction.fix_type == FixType.MANUAL_INTERVENTION_REQUIRED
    assert correction.commands_to_apply == []
    assert correction.details is None


def test_get_diagnostic_info():
    diagnostic = _diagnostic(["Replace `foo` with `bar`"])
    error = _rich_io_error(diagnostic)
    info = error.diagnostic_info()
    assert info is not None
    assert info.suggested_fixes == ["Replace `foo` with `bar`"]
    assert info.diagnostic_code == "E0001"
    assert info.primary_location.file == "src/main.rs"
    assert info.primary_location.line == 42


def test_autocorrection_for_embedded_diagnostic(engine):
    error = _rich_io_error(_diagnostic(["Fix: add semicolon"], message="Missing semicolon"))
    correction = error.suggest_autocorrection(engine, None)
    assert correction is not None
    assert correction.fix_type == FixType.TEXT_REPLACEMENT
    assert "Apply fix suggested by diagnostic tool" in correction.description
    assert correction.targets_error_code == "E0001"
    assert correction.confidence == 0.85
    assert correction.details == TextReplace(
        file_path=Path("src/main.rs"),
        line_start=42,
        column_start=10,
        line_end=42,
        column_end=28,
        original_text_snippet="Missing semicolon",
        replacement_text="Fix: add semicolon",
    )


def test_multiple_embedded_fixes_are_joined(engine):
    correction = engine.suggest_autocorrection(_rich_io_error(_diagnostic(["ab", "cd"])))
    assert correction.details.replacement_text == "ab\ncd"
    assert correction.details.column_end == 14


def test_diagnostic_without_location_has_no_details(engine):
    diagnostic = DiagnosticResult(suggested_fixes=["x"], diagnostic_code="W1")
    correction = engine.suggest_autocorrection(_rich_io_error(diagnostic))
    assert correction.details is None
    assert correction.targets_error_code == "W1"


def test_diagnostic_without_fixes_falls_back_to_category(engine):
    correction = engine.suggest_autocorrection(_rich_io_error(_diagnostic([])))
    assert correction.fix_type == FixType.INFORMATION
    assert correction.targets_error_code == "Io"
    assert "<unknown_op>" in correction.description


def test_io_not_found_for_file(engine, tmp_path):
    target = tmp_path / "missing" / "data.json"
    source = FileNotFoundError(errno.ENOENT, "No such file")
    error = IoError(source=source, path=target, operation="read")
    correction = engine.suggest_autocorrection(error)
    assert correction.fix_type == FixType.EXECUTE_COMMAND
    assert correction.commands_to_apply == [
        f'mkdir -p "{tmp_path / "missing"}"',
        f'touch "{target}"',
    ]
    assert isinstance(correction.details, SuggestCodeChange)
    assert correction.details.file_path == target
    assert correction.confidence == 0.65


def test_io_not_found_for_directory_like_path(engine, tmp_path):
    target = tmp_path / "cache"
    error = IoError(source=FileNotFoundError(errno.ENOENT, "gone"), path=target, operation="list")
    correction = engine.suggest_autocorrection(error)
    assert correction.commands_to_apply == [f'mkdir -p "{target}"']


def test_io_permission_denied(engine):
    error = IoError(
        source=PermissionError(errno.EACCES, "denied"), path="/etc/app.conf", operation="write"
    )
    correction = engine.suggest_autocorrection(error)
    assert correction.fix_type == FixType.CONFIGURATION_CHANGE
    assert correction.details.suggested_code_snippet == (
        "// Check permissions for path '/etc/app.conf' for operation 'write'"
    )
    assert correction.commands_to_apply == []


def test_io_other_kind_is_information(engine):
    error = IoError(source=OSError("disk full"), path="out.bin", operation="write")
    correction = engine.suggest_autocorrection(error)
    assert correction.fix_type == FixType.INFORMATION
    assert correction.description == (
        "I/O error during 'write' on path 'out.bin': disk full. "
        "Verify path, permissions, or disk space."
    )


def test_config_error_with_path(engine):
    error = ConfigError(message="missing key", path="settings.toml")
    correction = engine.suggest_autocorrection(error)
    assert correction.fix_type == FixType.CONFIGURATION_CHANGE
    assert correction.details.file_path == Path("settings.toml")
    assert correction.details.line_hint == 1
    assert "settings.toml" in correction.description
    assert correction.targets_error_code == "Configuration"


def test_config_error_without_path_defaults(engine):
    correction = engine.suggest_autocorrection(ConfigError(message="bad value"))
    assert correction.details.file_path == Path("config.toml")
    assert "<unknown_config>" in correction.description


@pytest.mark.parametrize(
    "error",
    [
        InternalError(message="boom"),
        ValidationError(field="name", message="too short"),
    ],
)
def test_other_categories_have_no_suggestion(engine, error):
    assert engine.suggest_autocorrection(error) is None