import io

from faultline.reporter import ErrorReportConfig, ErrorReporter
from faultline.types import ErrorReportFormat


def _bare_config(**overrides):
    values = dict(
        include_message=True,
        include_source_chain=True,
        include_backtrace=False,
        include_rich_context=False,
        include_source_location=False,
        include_severity=False,
        format=ErrorReportFormat.PLAIN,
        max_chain_depth=None,
        pretty_print_json=False,
        include_diagnostics=False,
    )
    values.update(overrides)
    return ErrorReportConfig(**values)


def _chained(message, cause_message):
    error = RuntimeError(message)
    error.__cause__ = RuntimeError(cause_message)
    return error


def test_error_reporter_plain_format():
    report = ErrorReporter().report_to_string(RuntimeError("Test error message"), _bare_config())
    assert "Test error message" in report
    assert report == "Error: Test error message\n"


def test_error_reporter_with_source():
    report = ErrorReporter().report_to_string(_chained("Main error", "Source error"), _bare_config())
    assert "Main error" in report
    assert "Source error" in report
    assert report == "Error: Main error\nCaused by: Source error\n"


def test_plain_chain_can_be_disabled():
    config = _bare_config(include_source_chain=False)
    report = ErrorReporter().report_to_string(_chained("Main error", "Source error"), config)
    assert report == "Error: Main error\n"


def test_plain_chain_depth_limit():
    config = _bare_config(max_chain_depth=0)
    report = ErrorReporter().report_to_string(_chained("Main error", "Source error"), config)
    assert report == "Error: Main error\n... (more causes hidden)\n"


def test_plain_chain_follows_implicit_context():
    try:
        try:
            raise KeyError("inner")
        except KeyError:
            raise ValueError("outer")
    except ValueError as exc:
        report = ErrorReporter().report_to_string(exc, _bare_config())
    assert report == "Error: outer\nCaused by: 'inner'\n"


def test_error_reporter_json_format():
    config = ErrorReportConfig(format=ErrorReportFormat.JSON)
    report = ErrorReporter().report_to_string(RuntimeError("JSON test error"), config)
    assert report.startswith("{")
    assert report.endswith("}\n")
    assert '"error"' in report
    assert "JSON test error" in report


def test_json_escapes_quotes():
    config = ErrorReportConfig(format=ErrorReportFormat.JSON)
    report = ErrorReporter().report_to_string(RuntimeError('say "hi"'), config)
    assert report == '{"error": "say \\"hi\\""}\n'


def test_markdown_format():
    config = ErrorReportConfig(format=ErrorReportFormat.MARKDOWN)
    report = ErrorReporter().report_to_string(RuntimeError("md error"), config)
    assert report == "## Error\n\n```\nmd error\n```\n"


def test_html_format_escapes_angle_brackets():
    config = ErrorReportConfig(format=ErrorReportFormat.HTML)
    report = ErrorReporter().report_to_string(RuntimeError("<b>bad</b>"), config)
    assert report == '<div class="error"><pre>&lt;b&gt;bad&lt;/b&gt;</pre></div>\n'


def test_report_writes_to_writer():
    buffer = io.StringIO()
    ErrorReporter().report(RuntimeError("to writer"), ErrorReportConfig(), buffer)
    assert buffer.getvalue() == "Error: to writer\n"


def test_default_config_values():
    config = ErrorReportConfig()
    assert config.format is ErrorReportFormat.PLAIN
    assert config.max_chain_depth is None
    assert config.pretty_print_json is True
    assert config.include_backtrace is True