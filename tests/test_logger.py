import logging

from app.logger import configure_logging, get_logger


def test_handler_is_installed_once():
    handler = configure_logging()
    assert configure_logging("DEBUG") is handler
    assert logging.getLogger().handlers.count(handler) == 1
    assert logging.getLogger().level == logging.DEBUG
    configure_logging()


def test_get_logger_is_named_per_module():
    logger = get_logger("app.services.transaction_store")
    assert logger.name == "app.services.transaction_store"


def test_sign_correction_is_logged_as_warning(store, make_record, caplog):
    with caplog.at_level(logging.WARNING, logger="app.services.transaction_store"):
        store.create(make_record(type="expense", amount="40"))
    assert any(
        r.levelno == logging.WARNING and "rewritten from 40.00 to -40.00" in r.getMessage()
        for r in caplog.records
    )
