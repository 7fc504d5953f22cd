"""Suggestion engine that proposes autocorrections for framework errors."""

from __future__ import annotations

import errno
import logging
import os
from pathlib import Path
from typing import Optional

from .errors import ConfigError, FaultError, IoError, NotFoundError
from .types import (
    Autocorrection,
    DiagnosticResult,
    ErrorCategory,
    ExecuteCommand,
    FixType,
    SuggestCodeChange,
    TextReplace,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_ERRNOS = frozenset({errno.ENOENT})
_PERMISSION_ERRNOS = frozenset({errno.EACCES, errno.EPERM})


def _has_extension(path: Path) -> bool:
    """Whether the final path component has a file extension."""
    name = path.name
    if name in ("", ".", ".."):
        return False
    return name.rfind(".") > 0


def _parent_needs_creation(path: str) -> Optional[str]:
    """Return the parent directory of ``path`` if it is named and missing."""
    parent = os.path.dirname(path)
    if parent and not os.path.exists(parent):
        return parent
    return None


def _is_not_found(source: BaseException) -> bool:
    return isinstance(source, FileNotFoundError) or (
        isinstance(source, OSError) and source.errno in _NOT_FOUND_ERRNOS
    )


def _is_permission_denied(source: BaseException) -> bool:
    return isinstance(source, PermissionError) or (
        isinstance(source, OSError) and source.errno in _PERMISSION_ERRNOS
    )


class Decrust:
    """Analyses errors and proposes automated fixes or actionable suggestions."""

    def suggest_autocorrection(
        self, error: FaultError, source_code_context: Optional[str] = None
    ) -> Optional[Autocorrection]:
        """Return a suggested fix for ``error``, or ``None`` if there is none.

        Fixes embedded by a diagnostic tool take priority; otherwise the
        suggestion is chosen from the error's category.
        """
        diagnostic = error.diagnostic_info()
        if diagnostic is not None and diagnostic.suggested_fixes:
            logger.debug("Found tool-suggested fixes in diagnostic result.")
            return self._from_diagnostic(diagnostic)

        category = error.category()
        if category is ErrorCategory.NOT_FOUND:
            return self._for_not_found(error)
        if category is ErrorCategory.IO:
            return self._for_io(error)
        if category is ErrorCategory.CONFIGURATION:
            return self._for_config(error)

        logger.debug(
            "No specific autocorrection for error category %s: %s",
            category.value,
            error,
        )
        return None

    @staticmethod
    def _from_diagnostic(diagnostic: DiagnosticResult) -> Autocorrection:
        fix_text = "\n".join(diagnostic.suggested_fixes)
        location = diagnostic.primary_location
        details = None
        if location is not None:
            visible_chars = sum(1 for char in fix_text if char != "\n")
            details = TextReplace(
                file_path=Path(location.file),
                line_start=location.line,
                column_start=location.column,
                line_end=location.line,
                column_end=location.column + max(visible_chars, 1),
                original_text_snippet=diagnostic.original_message,
                replacement_text=fix_text,
            )
        return Autocorrection(
            description="Apply fix suggested by diagnostic tool.",
            fix_type=FixType.TEXT_REPLACEMENT,
            confidence=0.85,
            details=details,
            targets_error_code=diagnostic.diagnostic_code,
        )

    @staticmethod
    def _for_not_found(error: FaultError) -> Autocorrection:
        if isinstance(error, NotFoundError):
            resource_type, identifier = error.resource_type, error.identifier
        else:
            logger.warning("NotFound category with unexpected error type: %r", error)
            resource_type, identifier = "unknown resource", "unknown identifier"

        commands: list[str] = []
        details = None
        if resource_type in ("file", "path"):
            parent = _parent_needs_creation(identifier)
            if parent is not None:
                commands.append(f'mkdir -p "{parent}"')
            commands.append(f'touch "{identifier}"')
            details = ExecuteCommand(command=commands[0], args=tuple(commands[1:]))

        return Autocorrection(
            description=(
                f"Resource type '{resource_type}' with identifier '{identifier}' not found. "
                "Consider creating it if it's a file/directory, or verify the path/name."
            ),
            fix_type=FixType.EXECUTE_COMMAND if commands else FixType.MANUAL_INTERVENTION_REQUIRED,
            confidence=0.7,
            details=details,
            commands_to_apply=commands,
            targets_error_code=ErrorCategory.NOT_FOUND.value,
        )

    @staticmethod
    def _for_io(error: FaultError) -> Autocorrection:
        source: Optional[BaseException]
        if isinstance(error, IoError):
            source, path, operation = error.source, error.path, error.operation
            source_msg = str(source)
        else:
            source, path, operation = None, None, None
            source_msg = "Unknown I/O error"
        path_str = str(path) if path is not None else "<unknown_path>"
        op_str = operation if operation is not None else "<unknown_op>"

        details = None
        commands: list[str] = []
        if source is not None and _is_not_found(source):
            if path is not None:
                details = SuggestCodeChange(
                    file_path=path,
                    line_hint=0,
                    suggested_code_snippet=(
                        f"// Ensure path '{path}' exists before operation '{op_str}'\n"
                        "// Or handle the NotFound error gracefully."
                    ),
                    explanation=(
                        "The file or directory specified in the operation was not found "
                        "at the given path."
                    ),
                )
                if path.is_dir() or not _has_extension(path):
                    commands.append(f'mkdir -p "{path}"')
                else:
                    parent = _parent_needs_creation(str(path))
                    if parent is not None:
                        commands.append(f'mkdir -p "{parent}"')
                    commands.append(f'touch "{path}"')
            fix_type = FixType.EXECUTE_COMMAND
        elif source is not None and _is_permission_denied(source):
            details = SuggestCodeChange(
                file_path=path if path is not None else Path("unknown_file_causing_permission_error"),
                line_hint=0,
                suggested_code_snippet=(
                    f"// Check permissions for path '{path_str}' for operation '{op_str}'"
                ),
                explanation=(
                    "The application does not have the necessary permissions to perform "
                    "the I/O operation."
                ),
            )
            fix_type = FixType.CONFIGURATION_CHANGE
        else:
            fix_type = FixType.INFORMATION

        return Autocorrection(
            description=(
                f"I/O error during '{op_str}' on path '{path_str}': {source_msg}. "
                "Verify path, permissions, or disk space."
            ),
            fix_type=fix_type,
            confidence=0.65,
            details=details,
            commands_to_apply=commands,
            targets_error_code=ErrorCategory.IO.value,
        )

    @staticmethod
    def _for_config(error: FaultError) -> Autocorrection:
        if isinstance(error, ConfigError):
            message, path = error.message, error.path
        else:
            message, path = "Unknown configuration error", None
        shown = str(path) if path is not None else "<unknown_config>"
        return Autocorrection(
            description=(
                f"Configuration issue for path '{shown}': {message}. "
                "Please review the configuration file structure and values."
            ),
            fix_type=FixType.CONFIGURATION_CHANGE,
            confidence=0.7,
            details=SuggestCodeChange(
                file_path=path if path is not None else Path("config.toml"),
                line_hint=1,
                suggested_code_snippet=(
                    f"# Review this configuration file for error related to: {message}\n"
                    "# Ensure all values are correctly formatted and all required fields "
                    "are present."
                ),
                explanation=(
                    "Configuration files require specific syntax, valid values, and all "
                    "mandatory fields to be present."
                ),
            ),
            targets_error_code=ErrorCategory.CONFIGURATION.value,
        )