import io
import json
import logging

from jaggery_ledger.utils.loggers import _JsonLineFormatter, get_ledger_logger, log_event


def test_log_event_writes_one_json_line():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(_JsonLineFormatter())
    logger = logging.getLogger("test.ledger.json")
    logger.propagate = False
    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    try:
        log_event(logger, "packing", "confirmed", "pick line packed",
                  {"picklist_item_id": 7, "actual_total_kg": 100.0, "op": "ignored"})
    finally:
        logger.removeHandler(handler)

    payload = json.loads(stream.getvalue().strip())
    assert payload["level"] == "INFO"
    assert payload["msg"] == "pick line packed"
    assert payload["extra"] == {"op": "packing", "phase": "confirmed",
                                "picklist_item_id": 7, "actual_total_kg": 100.0}


def test_ledger_logger_is_reused():
    first = get_ledger_logger()
    second = get_ledger_logger()
    assert first is second
    assert first.name == "ledger"
    assert first.propagate is False
    assert len(first.handlers) == len(second.handlers)
