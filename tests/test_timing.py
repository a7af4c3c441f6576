import logging

import pytest

from ticqr.utils.timing import Timer, format_duration, timed_operation


def test_format_duration():
    assert format_duration(0.0125) == "12.5ms"
    assert format_duration(2.5) == "2.50s"


def test_phases_accumulate():
    timer = Timer()

    with timer.phase("boxes"):
        pass
    with timer.phase("boxes"):
        pass
    with pytest.raises(ValueError):
        with timer.phase("contours"):
            raise ValueError("broken")

    assert set(timer.to_dict()) == {"boxes", "contours"}
    assert timer.elapsed >= 0


def test_timed_operation_logs_failures(caplog):
    logger = logging.getLogger("timing-test")

    with caplog.at_level(logging.DEBUG, logger="timing-test"):
        with timed_operation("Verification", logger):
            pass
        with pytest.raises(RuntimeError):
            with timed_operation("Lookup", logger):
                raise RuntimeError("offline")

    messages = [r.getMessage() for r in caplog.records]
    assert messages[0].startswith("Verification: ")
    assert messages[1].startswith("Lookup failed after ")
    assert messages[1].endswith(": offline")
