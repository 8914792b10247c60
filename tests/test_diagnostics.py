from fakes import FakeConsoleMessage, FakeJsError, FakePage, FakeRequest, FakeResponse
from viewshot.diagnostics import DiagnosticsCollector, group_by_type, summarize_diagnostics
from viewshot.schemas import DiagnosticLevel, DiagnosticType


def _attached() -> tuple[DiagnosticsCollector, FakePage]:
    collector = DiagnosticsCollector()
    page = FakePage()
    collector.attach(page)  # type: ignore[arg-type]
    return collector, page


def test_attach_subscribes_to_all_four_streams():
    _, page = _attached()

    assert page.listeners == {"pageerror", "console", "response", "requestfailed"}


def test_page_error_records_first_stack_line():
    collector, page = _attached()

    page.emit("pageerror", FakeJsError("boom is not defined", "ReferenceError: boom\n    at app.js:3:7"))

    (record,) = collector.snapshot()
    assert record.type is DiagnosticType.JAVASCRIPT
    assert record.level is DiagnosticLevel.ERROR
    assert record.message == "boom is not defined"
    assert record.source == "ReferenceError: boom"
    assert record.timestamp


def test_console_levels_and_location():
    collector, page = _attached()

    page.emit("console", FakeConsoleMessage("error", "bad", {"url": "https://a.test/app.js", "lineNumber": 4, "columnNumber": 2}))
    page.emit("console", FakeConsoleMessage("assert", "assert failed"))
    page.emit("console", FakeConsoleMessage("warning", "deprecated"))
    page.emit("console", FakeConsoleMessage("log", "hello"))
    page.emit("console", FakeConsoleMessage("debug", "verbose"))

    records = collector.snapshot()
    assert [r.level for r in records] == [
        DiagnosticLevel.ERROR,
        DiagnosticLevel.ERROR,
        DiagnosticLevel.WARNING,
        DiagnosticLevel.INFO,
        DiagnosticLevel.INFO,
    ]
    assert (records[0].source, records[0].line, records[0].column) == ("https://a.test/app.js", 4, 2)
    # missing location subfields are omitted rather than raising
    assert records[1].source is None and records[1].line is None


def test_console_tolerates_malformed_location():
    collector, page = _attached()

    page.emit("console", FakeConsoleMessage("log", "odd", {"url": "", "lineNumber": "n/a"}))

    (record,) = collector.snapshot()
    assert record.source is None
    assert record.line is None
    assert record.column is None


def test_non_ok_responses_become_network_records():
    collector, page = _attached()

    page.emit("response", FakeResponse(200, "https://a.test/ok"))
    page.emit("response", FakeResponse(404, "https://a.test/missing.png", "Not Found"))
    page.emit("response", FakeResponse(503, "https://a.test/api", "Service Unavailable"))

    missing, unavailable = collector.snapshot()
    assert missing.level is DiagnosticLevel.WARNING
    assert missing.status_code == 404
    assert missing.message == "Failed to load resource: 404 Not Found"
    assert missing.url == "https://a.test/missing.png"
    assert unavailable.level is DiagnosticLevel.ERROR


def test_failed_requests_split_security_and_network():
    collector, page = _attached()

    page.emit("requestfailed", FakeRequest("https://cdn.test/font.woff", "net::ERR_FAILED (CORS policy)"))
    page.emit("requestfailed", FakeRequest("https://a.test/x", "net::ERR_CONNECTION_RESET"))
    page.emit("requestfailed", FakeRequest("https://a.test/y", None))

    security, network = collector.snapshot()
    assert security.type is DiagnosticType.SECURITY
    assert network.type is DiagnosticType.NETWORK
    assert network.message == "Request failed: net::ERR_CONNECTION_RESET"
    assert all(r.level is DiagnosticLevel.ERROR for r in (security, network))


def test_summary_for_script_error_and_404():
    collector, page = _attached()
    page.emit("pageerror", FakeJsError("TypeError: x is undefined"))
    page.emit("response", FakeResponse(404, "https://a.test/missing", "Not Found"))

    summary = summarize_diagnostics(collector.snapshot())

    assert summary.has_javascript_errors is True
    assert summary.has_network_errors is True
    assert summary.total_errors == 1
    assert summary.total_warnings == 1
    assert summary.has_console_logs is False


def test_summary_flags_console_logs_only_for_info():
    collector, page = _attached()
    page.emit("console", FakeConsoleMessage("warning", "careful"))
    assert summarize_diagnostics(collector.snapshot()).has_console_logs is False

    page.emit("console", FakeConsoleMessage("info", "ready"))
    summary = summarize_diagnostics(collector.snapshot())
    assert summary.has_console_logs is True
    assert summary.total_logs == 1


def test_group_by_type_keeps_arrival_order():
    collector, page = _attached()
    page.emit("console", FakeConsoleMessage("log", "one"))
    page.emit("pageerror", FakeJsError("two"))
    page.emit("console", FakeConsoleMessage("log", "three"))

    grouped = group_by_type(collector.snapshot())

    assert list(grouped) == [DiagnosticType.CONSOLE, DiagnosticType.JAVASCRIPT]
    assert [r.message for r in grouped[DiagnosticType.CONSOLE]] == ["one", "three"]


def test_snapshot_is_a_copy():
    collector, page = _attached()
    page.emit("console", FakeConsoleMessage("log", "one"))

    snapshot = collector.snapshot()
    page.emit("console", FakeConsoleMessage("log", "two"))

    assert len(snapshot) == 1
    assert len(collector) == 2
