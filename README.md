# faultline

faultline gives an application one family of exceptions. An error can carry
structured context and diagnostics. The package can suggest fixes for common errors
and write error reports as plain text, JSON, Markdown or HTML. It also provides a
circuit breaker, which keeps repeated failures of a dependency from spreading
through the rest of a system.

The package needs nothing outside the standard library. It supports Python 3.10 and later.

```
pip install faultline
```

## Modules

- `faultline.types` holds the value types:
  - the enums `ErrorSeverity`, `ErrorCategory`, `ErrorReportFormat` and `FixType`;
  - `ErrorContext`, `ErrorSource`, `ErrorLocation`, `MacroExpansion` and `DiagnosticResult`;
  - `Autocorrection`;
  - the fix details `TextReplace`, `AddImport`, `AddCargoDependency`, `ExecuteCommand` and `SuggestCodeChange`.
- `faultline.errors` holds the `FaultError` hierarchy and the helpers `context_msg`, `context_rich` and `ok_or_missing_value`.
- `faultline.decrust` holds `Decrust`, the fix-suggestion engine.
- `faultline.reporter` holds `ErrorReporter` and `ErrorReportConfig`.
- `faultline.circuit_types` holds the circuit breaker's supporting types:
  - `CircuitState` and `CircuitOperationType`;
  - `CircuitTransitionEvent` and `CircuitMetrics`;
  - `CircuitBreakerConfig`;
  - the abstract `CircuitBreakerObserver`.
- `faultline.circuitbreaker` holds `CircuitBreaker`.

## Errors with context

Every error derives from `FaultError`. Each error class takes its fields as keyword
arguments:

| Class | Keyword arguments |
| --- | --- |
| `IoError` | `source`, `operation`, `path` |
| `ParseError` | `source`, `kind`, `context_info` |
| `NetworkError` | `source`, `kind`, `url` |
| `ConfigError` | `message`, `path`, `source` |
| `ValidationError` | `field`, `message` |
| `InternalError` | `message`, `source` |
| `CircuitBreakerOpenError` | `name`, `retry_after` |
| `OperationTimeoutError` | `operation`, `duration` |
| `ResourceExhaustedError` | `resource`, `limit`, `current` |
| `NotFoundError` | `resource_type`, `identifier` |
| `StateConflictError` | `message` |
| `ConcurrencyError` | `message`, `source` |
| `ExternalServiceError` | `service_name`, `message`, `source` |
| `MissingValueError` | `item_description` |
| `MultipleErrors` | `errors` |
| `RichContextError` | `context`, `source` |
| `GeneralError` | `message`, `source` |

Where an error has a `source`, that exception is also set as its `__cause__`.

Each error provides these methods:

- `category()` returns the error's category.
- `severity()` returns `ErrorSeverity.ERROR`, unless rich context has been attached.
- `add_context(context)` and `add_context_msg(message)` return a `RichContextError`. It wraps the error and keeps the category of the error it wraps.
- `rich_context()` returns the attached context, if there is one.
- `diagnostic_info()` returns the `DiagnosticResult` inside that context, if there is one.
- `suggest_autocorrection(engine, source_code_context)` asks the engine for a fix.
- `clone()` returns an independent copy with the same fields.

```python
from faultline.errors import InternalError, MissingValueError, ok_or_missing_value
from faultline.types import ErrorCategory, ErrorContext, ErrorSeverity

err = InternalError(message="Test error")
assert err.category() is ErrorCategory.INTERNAL

wrapped = err.add_context(
    ErrorContext("loading profile")
    .with_severity(ErrorSeverity.WARNING)
    .with_component("auth_service")
    .add_tag("security")
)
assert wrapped.severity() is ErrorSeverity.WARNING
assert wrapped.category() is ErrorCategory.INTERNAL

assert ok_or_missing_value(42, "answer") == 42
try:
    ok_or_missing_value(None, "answer")
except MissingValueError as exc:
    assert exc.item_description == "answer"
```

The builder methods on `ErrorContext`, `ErrorSource`, `ErrorLocation` and
`Autocorrection` do not change the object they are called on. Each returns a new,
changed copy.

`context_msg(message)` and `context_rich(context)` are context managers. They re-raise
any exception that escapes the block, wrapped as a `RichContextError`. An exception
that is not a `FaultError` is first wrapped in a `GeneralError`.

```python
from faultline.errors import RichContextError, context_msg

try:
    with context_msg("reading settings"):
        raise KeyError("timeout")
except RichContextError as exc:
    assert exc.context.message == "reading settings"
```

## Fix suggestions

`Decrust().suggest_autocorrection(error, source_code_context)` returns an
`Autocorrection` or `None`. The `source_code_context` argument is accepted but is not
used yet. Suggestions are chosen in this order:

1. **Tool diagnostics.** If the error's rich context holds a `DiagnosticResult` with suggested fixes, the result is a `TEXT_REPLACEMENT` fix at the diagnostic's primary location. It carries the diagnostic's code.
2. **Not-found errors.** A `NotFoundError` gets a suggestion. If its resource type is `"file"` or `"path"`, the suggestion includes `mkdir -p` and `touch` commands to create it.
3. **I/O errors.** An `IoError` gets a suggestion based on its cause:
   - a missing path gets commands that would create it;
   - a permission failure gets a suggested permission check;
   - any other cause gets an informational suggestion.
4. **Configuration errors.** A `ConfigError` gets a suggestion to review the configuration file. The file is the error's `path`, or `config.toml` if no path is set.

Any other error returns `None`.

```python
from faultline.decrust import Decrust
from faultline.errors import NotFoundError

fix = Decrust().suggest_autocorrection(
    NotFoundError(resource_type="file", identifier="data/input.txt"), None
)
print(fix.fix_type, fix.commands_to_apply)
```

The commands are only suggestions. The package never runs them.

## Reports

```python
from faultline.reporter import ErrorReportConfig, ErrorReporter
from faultline.types import ErrorReportFormat

reporter = ErrorReporter()
print(reporter.report_to_string(err, ErrorReportConfig()))
print(reporter.report_to_string(err, ErrorReportConfig(format=ErrorReportFormat.JSON)))
```

`report(error, config, writer)` writes the report to any text stream.
`report_to_string(error, config)` returns the report as a string.

Each format renders as follows:

- **Plain text** prints the error and then one `Caused by:` line for each link in its chain. The chain follows `__cause__`, or `__context__` where that is not suppressed. `include_source_chain=False` turns the chain off. `max_chain_depth` limits how many causes are shown.
- **JSON** writes `{"error": "..."}` with double quotes escaped.
- **Markdown** writes a heading and a code block.
- **HTML** writes a `<div class="error">` with angle brackets escaped.

At present only `format`, `include_source_chain` and `max_chain_depth` change the
output. The other options in `ErrorReportConfig` are accepted but have no effect.

## Circuit breaker

```python
from faultline.circuitbreaker import CircuitBreaker
from faultline.circuit_types import CircuitBreakerConfig, CircuitState

breaker = CircuitBreaker("payments", CircuitBreakerConfig(failure_threshold=3))
assert breaker.execute(lambda: 42) == 42
assert breaker.state() is CircuitState.CLOSED
```

`execute(operation)` calls `operation()` and returns its result. If the operation
raises, the error is recorded and then re-raised. An error counts as a failure unless
`error_predicate` says otherwise. The circuit opens when any of these is reached:

- `failure_threshold` consecutive failures;
- a failure rate of at least `failure_rate_threshold`, once the window holds `minimum_request_threshold_for_rate` results;
- a slow-call rate of at least `slow_call_rate_threshold`. A call counts as slow if it takes at least `slow_call_duration_threshold`.

The window covers the last `sliding_window_size` results.

While the circuit is open, calls raise `CircuitBreakerOpenError`, whose `retry_after`
is given in seconds. Once `reset_timeout` has passed, the breaker moves to half-open.
In that state, at most `half_open_max_concurrent_operations` trial calls may run at
once:

- `success_threshold_to_close` consecutive successes close the circuit again;
- any failure opens it again.

If an operation takes longer than `operation_timeout`, it raises `OperationTimeoutError`.
For `execute`, this is checked after the call returns; the call is not interrupted.
`execute_async(operation)` awaits `operation()` under `asyncio.wait_for`, which does
cancel it when the time runs out:

```python
import asyncio

async def fetch():
    return "ok"

assert asyncio.run(breaker.execute_async(fetch)) == "ok"
```

Other methods:

- `trip()` opens the circuit by hand.
- `reset()` closes it and clears its windows.
- `metrics()` returns a snapshot of a `CircuitMetrics` object with counters and rates.

`add_observer(observer)` registers a subclass of `CircuitBreakerObserver`. The
observer receives `on_state_change`, `on_operation_attempt`, `on_operation_result`
and `on_reset` calls.

All durations in the configuration, the metrics and the observer calls are in seconds.

## What the package does not do

faultline is a library only:

- It provides no command-line tool.
- It does not store breaker state or metrics anywhere. Each `CircuitBreaker` keeps them in memory for the life of the object.
- It never applies the fixes it suggests.