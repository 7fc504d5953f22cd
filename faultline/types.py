"""Core value types shared by the error handling framework."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum, IntEnum
from pathlib import Path
from typing import Optional, Union


class ErrorSeverity(IntEnum):
    """Severity level for errors, ordered from least to most severe."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


class ErrorCategory(Enum):
    """Broad categorisation of errors."""

    IO = "Io"
    PARSING = "Parsing"
    NETWORK = "Network"
    CONFIGURATION = "Configuration"
    VALIDATION = "Validation"
    INTERNAL = "Internal"
    CIRCUIT_BREAKER = "CircuitBreaker"
    TIMEOUT = "Timeout"
    RESOURCE_EXHAUSTION = "ResourceExhaustion"
    NOT_FOUND = "NotFound"
    CONCURRENCY = "Concurrency"
    EXTERNAL_SERVICE = "ExternalService"
    AUTHENTICATION = "Authentication"
    AUTHORIZATION = "Authorization"
    STATE_CONFLICT = "StateConflict"
    MULTIPLE = "Multiple"
    UNSPECIFIED = "Unspecified"


class ErrorReportFormat(Enum):
    """Output formats for error reports."""

    PLAIN = "Plain"
    JSON = "Json"
    MARKDOWN = "Markdown"
    HTML = "Html"


class FixType(Enum):
    """Nature of a proposed autocorrection."""

    TEXT_REPLACEMENT = "TextReplacement"
    AST_MODIFICATION = "AstModification"
    ADD_IMPORT = "AddImport"
    ADD_DEPENDENCY = "AddDependency"
    CONFIGURATION_CHANGE = "ConfigurationChange"
    EXECUTE_COMMAND = "ExecuteCommand"
    REFACTOR = "Refactor"
    MANUAL_INTERVENTION_REQUIRED = "ManualInterventionRequired"
    INFORMATION = "Information"
    UPDATE_CARGO_TOML = "UpdateCargoToml"
    RUN_CARGO_COMMAND = "RunCargoCommand"
    SUGGEST_ALTERNATIVE_METHOD = "SuggestAlternativeMethod"


@dataclass(frozen=True)
class TextReplace:
    """Replace a span of text in a file."""

    file_path: Path
    line_start: int
    column_start: int
    line_end: int
    column_end: int
    original_text_snippet: Optional[str]
    replacement_text: str


@dataclass(frozen=True)
class AddImport:
    """Add an import statement to a file."""

    file_path: str
    import_: str


@dataclass(frozen=True)
class AddCargoDependency:
    """Add a package dependency to the build manifest."""

    dependency: str
    version: str
    features: tuple[str, ...] = ()
    is_dev_dependency: bool = False


@dataclass(frozen=True)
class ExecuteCommand:
    """Run a shell command."""

    command: str
    args: tuple[str, ...] = ()
    working_directory: Optional[Path] = None


@dataclass(frozen=True)
class SuggestCodeChange:
    """Suggest a manual code change near a line of a file."""

    file_path: Path
    line_hint: int
    suggested_code_snippet: str
    explanation: str


FixDetails = Union[TextReplace, AddImport, AddCargoDependency, ExecuteCommand, SuggestCodeChange]


@dataclass
class ErrorSource:
    """Source location where an error was raised."""

    file: str
    line: int
    module_path: str
    column: Optional[int] = None
    function: Optional[str] = None

    def with_column(self, column: int) -> ErrorSource:
        return replace(self, column=column)

    def with_function(self, function: str) -> ErrorSource:
        return replace(self, function=function)


@dataclass
class ErrorLocation:
    """Specific location used for diagnostics."""

    file: str
    line: int
    column: int
    function_context: str
    snafu_variant: Optional[str] = None

    def with_snafu_variant(self, variant: str) -> ErrorLocation:
        return replace(self, snafu_variant=variant)


@dataclass
class MacroExpansion:
    """One step of a macro expansion trace."""

    macro_name: str
    expansion_site: ErrorLocation
    generated_code_snippet: str


@dataclass
class DiagnosticResult:
    """Detailed diagnostic information, typically produced by a tool."""

    primary_location: Optional[ErrorLocation] = None
    expansion_trace: list[MacroExpansion] = field(default_factory=list)
    suggested_fixes: list[str] = field(default_factory=list)
    original_message: Optional[str] = None
    diagnostic_code: Optional[str] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ErrorContext:
    """Additional structured context attached to an error."""

    message: str
    source_location: Optional[ErrorSource] = None
    recovery_suggestion: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)
    severity: ErrorSeverity = ErrorSeverity.ERROR
    timestamp: Optional[datetime] = field(default_factory=_now)
    correlation_id: Optional[str] = None
    component: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    diagnostic_info: Optional[DiagnosticResult] = None

    def with_severity(self, severity: ErrorSeverity) -> ErrorContext:
        return replace(self, severity=severity)

    def with_source_location(self, source_location: ErrorSource) -> ErrorContext:
        return replace(self, source_location=source_location)

    def with_recovery_suggestion(self, suggestion: str) -> ErrorContext:
        return replace(self, recovery_suggestion=suggestion)

    def with_metadata(self, key: str, value: str) -> ErrorContext:
        return replace(self, metadata={**self.metadata, key: value})

    def with_correlation_id(self, correlation_id: str) -> ErrorContext:
        return replace(self, correlation_id=correlation_id)

    def with_component(self, component: str) -> ErrorContext:
        return replace(self, component=component)

    def add_tag(self, tag: str) -> ErrorContext:
        return replace(self, tags=[*self.tags, tag])

    def with_diagnostic_info(self, diagnostic: DiagnosticResult) -> ErrorContext:
        return replace(self, diagnostic_info=diagnostic)


@dataclass
class Autocorrection:
    """A proposed fix for an error."""

    description: str
    fix_type: FixType
    confidence: float
    details: Optional[FixDetails] = None
    diff_suggestion: Optional[str] = None
    commands_to_apply: list[str] = field(default_factory=list)
    targets_error_code: Optional[str] = None

    def with_details(self, details: FixDetails) -> Autocorrection:
        return replace(self, details=details)

    def with_diff_suggestion(self, diff: str) -> Autocorrection:
        return replace(self, diff_suggestion=diff)

    def add_command(self, command: str) -> Autocorrection:
        return replace(self, commands_to_apply=[*self.commands_to_apply, command])

    def with_target_error_code(self, code: str) -> Autocorrection:
        return replace(self, targets_error_code=code)