import pytest
from loguru import logger

from bdaa.domain.exceptions import BuildCancelledError, BuildInProgressError
from bdaa.domain.session import BuildSession, CancellationToken


def test_token():
    token = CancellationToken()
    token.raise_if_cancelled()
    token.cancel()
    assert token.cancelled
    with pytest.raises(BuildCancelledError):
        token.raise_if_cancelled()


def test_progress_never_goes_backwards():
    with BuildSession() as session:
        session.set_progress(0.5, "Halfway")
        session.set_progress(0.3, "Late update")
        snap = session.snapshot()
        assert snap.progress == 0.5
        assert snap.status == "Late update"
        session.set_progress(2.0)
        assert session.snapshot().progress == 1.0


def test_fail_resets_progress():
    with BuildSession() as session:
        session.set_progress(0.7, "Muxing")
        session.fail()
        snap = session.snapshot()
    assert snap.progress == 0.0
    assert snap.status == "Failed"


def test_only_one_session_at_a_time():
    first = BuildSession()
    second = BuildSession()
    first.begin()
    try:
        with pytest.raises(BuildInProgressError):
            second.begin()
    finally:
        first.end()
    second.begin()
    second.end()


def test_begin_resets_previous_state():
    session = BuildSession()
    with session:
        session.set_progress(0.9, "Done")
        session.set_estimate(123)
        session.request_cancel()
    with session:
        snap = session.snapshot()
        assert snap.progress == 0.0
        assert snap.estimated_size_bytes == 0
        assert not snap.cancel_requested


def test_request_cancel_when_idle():
    session = BuildSession()
    assert session.request_cancel() is False
    with session:
        assert session.request_cancel() is True
        assert session.token.cancelled


def test_log_lines_are_captured_while_working():
    session = BuildSession()
    logger.info("before the session")
    with session:
        logger.info("inside the session")
        logger.debug("debug is not shown")
    logger.info("after the session")

    log_text = session.snapshot().log_text
    assert "inside the session" in log_text
    assert "before the session" not in log_text
    assert "after the session" not in log_text
    assert "debug is not shown" not in log_text


def test_subscribers_see_snapshots():
    seen = []
    session = BuildSession()
    session.subscribe(lambda snap: seen.append((snap.working, snap.progress)))
    with session:
        session.set_progress(0.25)
    assert (True, 0.25) in seen
    assert seen[-1][0] is False
