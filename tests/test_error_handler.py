import logging

from src.error_handler import ErrorHandler


def test_handle_exception_returns_generic_payload(caplog):
    eh = ErrorHandler()
    with caplog.at_level(logging.ERROR):
        out = eh.handle_exception(Exception("boom"), context={"operation": "stk_push"})
    assert out == {"success": False}
    assert "boom" in caplog.text
