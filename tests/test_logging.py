"""Tests for log redaction."""

import logging

from sellerdash.core.logging import REDACTED, SecretRedactingFilter, configure_logging, redact


def make_record(msg, *args) -> logging.LogRecord:
    return logging.LogRecord("sellerdash.test", logging.INFO, __file__, 1, msg, args, None)


def test_redact_known_token_shapes():
    text = 'refresh=Atzr|IwEBIA-abc123 access="Atza|IQEBLj-xyz" secret=amzn1.oa2-cs.v1.deadbeef'

    cleaned = redact(text)

    assert "Atzr|" not in cleaned
    assert "Atza|" not in cleaned
    assert "amzn1.oa2-cs.v1." not in cleaned
    assert cleaned.count(REDACTED) == 3
    assert cleaned.startswith("refresh=")


def test_redact_literal_values():
    assert redact("token is hunter2", "hunter2", None, "") == f"token is {REDACTED}"


def test_redact_leaves_ordinary_text():
    text = "Fetched 12 catalog items for marketplace ATVPDKIKX0DER"

    assert redact(text) == text


def test_filter_rewrites_formatted_message():
    record = make_record("exchange failed for %s", "Atzr|leaked-token")

    assert SecretRedactingFilter().filter(record) is True
    assert record.getMessage() == f"exchange failed for {REDACTED}"
    assert record.args is None


def test_filter_keeps_clean_records_untouched():
    record = make_record("synced %d items", 3)

    SecretRedactingFilter().filter(record)

    assert record.msg == "synced %d items"
    assert record.args == (3,)


def test_configure_logging_installs_one_handler():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        configure_logging("debug")
        configure_logging("debug")

        added = [h for h in root.handlers if h not in before]
        assert len(added) == 1
        assert any(isinstance(f, SecretRedactingFilter) for f in added[0].filters)
        assert root.level == logging.DEBUG
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
        root.setLevel(level)
