import json
import logging

from storefront.log import JSONFormatter, RemoteCallLogger, log_event, setup_logging


def test_json_formatter_emits_single_line_json() -> None:
    record = logging.LogRecord("storefront.test", logging.INFO, "", 0, "hello %s", ("world",), None)
    record.data = {"table": "products"}

    parsed = json.loads(JSONFormatter().format(record))
    assert parsed["msg"] == "hello world"
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "storefront.test"
    assert parsed["data"] == {"table": "products"}


def test_setup_logging_writes_jsonl(tmp_path) -> None:
    logger = setup_logging(log_dir=tmp_path, level="debug")
    try:
        assert logger.name == "storefront"
        assert logger.level == logging.DEBUG
        log_event(logging.getLogger("storefront.checkout"), "order_placed", order_id="o1")
        for handler in logger.handlers:
            handler.flush()

        lines = (tmp_path / "storefront.jsonl").read_text(encoding="utf-8").splitlines()
        entry = json.loads(lines[-1])
        assert entry["msg"] == "order_placed"
        assert entry["data"] == {"order_id": "o1"}
    finally:
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)


def test_remote_call_logger_records_outcomes(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="storefront.remote")

    with RemoteCallLogger("GET", "products") as call:
        call.success(200)
    with RemoteCallLogger("POST", "orders") as call:
        call.error("timeout", trace_id="t-1")

    success_record, error_record = [r for r in caplog.records if r.name == "storefront.remote"]
    assert success_record.levelno == logging.DEBUG
    assert success_record.data["status"] == 200
    assert error_record.levelno == logging.WARNING
    assert error_record.data["trace_id"] == "t-1"


def test_remote_call_logger_reports_escaping_exception(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="storefront.remote")

    try:
        with RemoteCallLogger("GET", "products"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    (record,) = [r for r in caplog.records if r.name == "storefront.remote"]
    assert record.levelno == logging.WARNING
    assert record.data["error"] == "RuntimeError: boom"
