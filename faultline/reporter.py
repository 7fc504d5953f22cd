"""Formatted error reports in plain text, JSON, Markdown and HTML."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Iterator, Optional, TextIO

from .types import ErrorReportFormat


@dataclass
class ErrorReportConfig:
    """Options controlling what an error report contains and how it looks."""

    include_message: bool = True
    include_source_chain: bool = True
    include_backtrace: bool = True
    include_rich_context: bool = True
    include_source_location: bool = True
    include_severity: bool = True
    format: ErrorReportFormat = ErrorReportFormat.PLAIN
    max_chain_depth: Optional[int] = None
    pretty_print_json: bool = True
    include_diagnostics: bool = True


def _causes(error: BaseException) -> Iterator[BaseException]:
    """Yield the chain of underlying causes of an exception."""
    seen = {id(error)}
    current: Optional[BaseException] = error
    while current is not None:
        if current.__cause__ is not None:
            nxt = current.__cause__
        elif not current.__suppress_context__:
            nxt = current.__context__
        else:
            nxt = None
        if nxt is None or id(nxt) in seen:
            return
        seen.add(id(nxt))
        yield nxt
        current = nxt


class ErrorReporter:
    """Writes formatted reports of exceptions."""

    def report(self, error: BaseException, config: ErrorReportConfig, writer: TextIO) -> None:
        """Write a report of ``error`` to ``writer`` in the configured format."""
        renderers = {
            ErrorReportFormat.PLAIN: self._report_plain,
            ErrorReportFormat.JSON: self._report_json,
            ErrorReportFormat.MARKDOWN: self._report_markdown,
            ErrorReportFormat.HTML: self._report_html,
        }
        renderers[config.format](error, config, writer)

    def report_to_string(self, error: BaseException, config: ErrorReportConfig) -> str:
        """Return the report of ``error`` as a string."""
        buffer = io.StringIO()
        self.report(error, config, buffer)
        return buffer.getvalue()

    def _report_plain(self, error: BaseException, config: ErrorReportConfig, writer: TextIO) -> None:
        writer.write(f"Error: {error}\n")
        if not config.include_source_chain:
            return
        for depth, cause in enumerate(_causes(error)):
            if config.max_chain_depth is not None and depth >= config.max_chain_depth:
                writer.write("... (more causes hidden)\n")
                break
            writer.write(f"Caused by: {cause}\n")

    def _report_json(self, error: BaseException, config: ErrorReportConfig, writer: TextIO) -> None:
        escaped = str(error).replace('"', '\\"')
        writer.write(f'{{"error": "{escaped}"}}\n')

    def _report_markdown(self, error: BaseException, config: ErrorReportConfig, writer: TextIO) -> None:
        writer.write("## Error\n\n```\n")
        writer.write(f"{error}\n")
        writer.write("```\n")

    def _report_html(self, error: BaseException, config: ErrorReportConfig, writer: TextIO) -> None:
        escaped = str(error).replace("<", "&lt;").replace(">", "&gt;")
        writer.write(f'<div class="error"><pre>{escaped}</pre></div>\n')