import pytest

from jobkeeper.hooks.observability import EventLogger


def test_event_logger_keeps_most_recent_events() -> None:
    events = EventLogger(max_events=3)

    for attempt in range(1, 6):
        events.on_poll("proj1", "job-1", "RUNNING", attempt)
    events.on_remote_call("get_job", "proj1", "job-1", phase="success")

    kept = events.list_events()
    assert len(kept) == 3
    assert [event.payload.get("attempt") for event in kept] == [4, 5, None]
    assert [event.name for event in events.list_events("remote_call")] == ["success"]


def test_event_logger_rejects_non_positive_limit() -> None:
    with pytest.raises(ValueError):
        EventLogger(max_events=0)
