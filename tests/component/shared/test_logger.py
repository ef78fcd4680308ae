import time
from logging import Formatter

from shared.common_utils.logger import SquirrelLogger, logger


def test_logger_is_a_singleton():
    assert SquirrelLogger() is logger
    assert len(logger.handlers) == 1


def test_utc_timestamps_stay_on_own_formatter():
    assert Formatter.converter is time.localtime
    assert Formatter().converter is time.localtime
    formatter = logger.handlers[0].formatter
    assert formatter.converter == logger.utc_time

