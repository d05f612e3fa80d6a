import logging

from minara_cms.utils.logging import RED, YELLOW, CmsFormatter, get_logger


def _record(level, msg, exc_info=None):
    return logging.LogRecord("minara_cms", level, __file__, 1, msg, None, exc_info)


def test_warning_is_yellow():
    line = CmsFormatter().format(_record(logging.WARNING, "Fetch 'books' failed"))
    assert f"{YELLOW}Fetch 'books' failed" in line


def test_traceback_follows_message():
    try:
        raise RuntimeError("boom")
    except RuntimeError as e:
        record = _record(logging.ERROR, "Unhandled error on GET /", (type(e), e, e.__traceback__))
    line = CmsFormatter().format(record)
    assert line.index("Unhandled error on GET /") < line.index("RuntimeError: boom")
    assert RED in line


def test_get_logger_level_and_single_handler():
    logger = get_logger("minara_cms.test", level="warning")
    get_logger("minara_cms.test", level="warning")
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1
