import datetime as dt

from bestbuy_tracker.models import TrackedSet
from bestbuy_tracker.poller import PollingController, PollState, inline_dispatcher
from bestbuy_tracker.utils import TransportError

from tests.helpers import make_record


class RecordingFetcher:
    def __init__(self, results=None):
        self.results = list(results or [])
        self.calls = []

    def __call__(self, tracked):
        self.calls.append(list(tracked.skus))
        result = self.results.pop(0) if self.results else []
        if isinstance(result, Exception):
            raise result
        return result


def make_controller(fetcher, interval=30, auto=True, dispatch=inline_dispatcher):
    return PollingController(
        fetcher=fetcher,
        tracked=TrackedSet(skus=["A", "B"], postal_code="V3M0B2", locations=["600"]),
        interval_seconds=interval,
        auto_refresh=auto,
        dispatch=dispatch,
        clock=lambda: dt.datetime(2024, 1, 1, 12, 0, 0),
    )


def test_starts_idle_with_counter_at_interval():
    c = make_controller(RecordingFetcher())
    snap = c.snapshot()
    assert snap.state is PollState.IDLE
    assert snap.remaining_seconds == 30
    assert snap.last_updated is None
    assert snap.records == ()


def test_thirty_ticks_issue_exactly_one_fetch_at_the_last_tick():
    fetcher = RecordingFetcher()
    c = make_controller(fetcher, interval=30)
    for i in range(1, 30):
        assert c.tick() is False
        assert len(fetcher.calls) == 0
        assert c.remaining_seconds == 30 - i
    assert c.tick() is True
    assert len(fetcher.calls) == 1
    assert c.remaining_seconds == 30


def test_sixty_ticks_issue_two_fetches():
    fetcher = RecordingFetcher()
    c = make_controller(fetcher, interval=30)
    for _ in range(60):
        c.tick()
    assert len(fetcher.calls) == 2


def test_ticks_are_noops_while_paused():
    fetcher = RecordingFetcher()
    c = make_controller(fetcher, auto=False)
    assert c.remaining_seconds == 0
    for _ in range(100):
        assert c.tick() is False
    assert fetcher.calls == []


def test_pausing_resets_counter_to_zero():
    c = make_controller(RecordingFetcher())
    c.tick()
    c.set_auto_refresh(False)
    assert c.remaining_seconds == 0
    assert c.auto_refresh is False


def test_enabling_resets_counter_without_fetching():
    fetcher = RecordingFetcher()
    c = make_controller(fetcher, auto=False)
    c.set_auto_refresh(True)
    assert c.remaining_seconds == 30
    assert fetcher.calls == []


def test_toggle_flips_flag():
    c = make_controller(RecordingFetcher())
    assert c.toggle_auto_refresh() is False
    assert c.toggle_auto_refresh() is True


def test_changing_interval_restarts_countdown():
    c = make_controller(RecordingFetcher(), interval=30)
    for _ in range(10):
        c.tick()
    c.set_interval(45)
    assert c.remaining_seconds == 45
    assert c.interval_seconds == 45


def test_changing_interval_while_paused_keeps_counter_at_zero():
    c = make_controller(RecordingFetcher(), auto=False)
    c.set_interval(45)
    assert c.remaining_seconds == 0
    c.set_auto_refresh(True)
    assert c.remaining_seconds == 45


def test_interval_is_clamped_to_minimum():
    c = make_controller(RecordingFetcher(), interval=1)
    assert c.interval_seconds == 5
    c.set_interval(0)
    assert c.interval_seconds == 5


def test_successful_refresh_replaces_result():
    first = [make_record("A"), make_record("B")]
    second = [make_record("B", ship_purchasable=True)]
    c = make_controller(RecordingFetcher([first, second]))
    c.refresh()
    snap = c.snapshot()
    assert snap.state is PollState.READY
    assert [r.sku for r in snap.records] == ["A", "B"]
    assert snap.last_updated == dt.datetime(2024, 1, 1, 12, 0, 0)
    c.refresh()
    assert [r.sku for r in c.snapshot().records] == ["B"]


def test_failure_keeps_previous_result_and_shows_error():
    good = [make_record("A")]
    c = make_controller(RecordingFetcher([good, TransportError("API returned status: 500 Internal Server Error")]))
    c.refresh()
    c.refresh()
    snap = c.snapshot()
    assert snap.state is PollState.FAILED
    assert [r.sku for r in snap.records] == ["A"]
    assert snap.error == "API returned status: 500 Internal Server Error"
    assert snap.last_updated is not None


def test_unexpected_errors_are_contained():
    c = make_controller(RecordingFetcher([RuntimeError("boom")]))
    c.refresh()
    assert c.snapshot().state is PollState.FAILED
    assert c.snapshot().error == "boom"


def test_success_after_failure_clears_error():
    c = make_controller(RecordingFetcher([TransportError("down"), [make_record("A")]]))
    c.refresh()
    c.refresh()
    snap = c.snapshot()
    assert snap.state is PollState.READY
    assert snap.error is None


def test_failed_fetch_is_retried_on_next_countdown():
    fetcher = RecordingFetcher([TransportError("down"), TransportError("down"), [make_record("A")]])
    c = make_controller(fetcher, interval=5)
    for _ in range(15):
        c.tick()
    assert len(fetcher.calls) == 3
    assert c.snapshot().state is PollState.READY


def test_loading_while_fetch_pending():
    pending = []
    c = make_controller(RecordingFetcher([[make_record("A")]]), dispatch=pending.append)
    c.refresh()
    snap = c.snapshot()
    assert snap.state is PollState.LOADING
    assert snap.in_flight == 1
    pending.pop()()
    assert c.snapshot().state is PollState.READY
    assert c.snapshot().in_flight == 0


def test_last_completed_fetch_wins():
    pending = []
    results = {"slow": [make_record("SLOW")], "fast": [make_record("FAST")]}

    def fetcher(tracked):
        return results[tracked.postal_code]

    c = PollingController(
        fetcher=fetcher,
        tracked=TrackedSet(skus=["A"], postal_code="slow"),
        dispatch=pending.append,
    )
    c.refresh()  # timer-triggered
    c.update_settings(postal_code="fast")
    c.refresh()  # manual, issued while the first is still pending
    slow_job, fast_job = pending
    # Responses land out of order; neither request is cancelled.
    fast_job()
    assert [r.sku for r in c.snapshot().records] == ["FAST"]
    slow_job()
    assert [r.sku for r in c.snapshot().records] == ["SLOW"]
    assert c.fetch_count == 2


def test_settings_take_effect_on_next_fetch():
    fetcher = RecordingFetcher()
    c = make_controller(fetcher)
    c.update_settings(skus=" 1, 2 ,2,, 3", postal_code=" M5V3L9 ")
    c.refresh()
    assert fetcher.calls == [["1", "2", "3"]]
    assert c.snapshot().tracked.postal_code == "M5V3L9"


def test_empty_sku_set_is_ready_with_no_records():
    c = make_controller(RecordingFetcher([[]]))
    c.update_settings(skus="")
    c.refresh()
    snap = c.snapshot()
    assert snap.state is PollState.READY
    assert snap.records == ()
