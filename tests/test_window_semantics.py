from __future__ import annotations

import threading
from unittest.mock import Mock

import pytest

from ratekeeper.domain.window import SlidingWindowKeeper, format_delay


def _delays(keeper: SlidingWindowKeeper, times: list[float]) -> list[str]:
    return [format_delay(keeper.record_and_decide(t)) for t in times]


def test_first_n_arrivals_wait_nothing_even_when_simultaneous() -> None:
    keeper = SlidingWindowKeeper(limit=5, period_s=60.0)

    assert _delays(keeper, [0.0] * 5) == ["0.000"] * 5
    assert keeper.window_size == 5
    assert keeper.overflow == 0


def test_two_per_ten_seconds_burst() -> None:
    keeper = SlidingWindowKeeper(limit=2, period_s=10.0)

    assert keeper.base_delay_s == 5.0
    assert _delays(keeper, [0.0, 1.0, 2.0]) == ["0.000", "0.000", "13.000"]
    assert keeper.overflow == 1

    # Oldest left is t=1: (10 - 2) + 5 * 2
    assert format_delay(keeper.record_and_decide(3.0)) == "18.000"
    assert keeper.overflow == 2


def test_hundred_per_second_burst_adds_one_base_delay_per_request() -> None:
    keeper = SlidingWindowKeeper(limit=100, period_s=1.0)
    for i in range(100):
        assert keeper.record_and_decide(i * 0.005) == 0.0

    first = keeper.record_and_decide(0.5)
    assert format_delay(first) == "0.510"
    assert keeper.overflow == 1

    second = keeper.record_and_decide(0.5)
    # Evicts t=0.005; one extra base_delay on top of the first burst request.
    assert second == pytest.approx((1.0 - 0.495) + 2 * 0.01)
    assert keeper.overflow == 2


def test_boundary_delta_equal_to_period_does_not_wait() -> None:
    keeper = SlidingWindowKeeper(limit=2, period_s=10.0)
    _delays(keeper, [0.0, 5.0])

    assert keeper.record_and_decide(10.0) == 0.0
    assert keeper.overflow == 0


@pytest.mark.parametrize(
    ("limit", "period_s"),
    [
        (4, 1.0),
        (10, 1.0),
        (3, 0.3),
    ],
)
def test_evenly_spaced_arrivals_never_wait(limit: int, period_s: float) -> None:
    keeper = SlidingWindowKeeper(limit=limit, period_s=period_s)
    spacing = period_s / limit

    delays = _delays(keeper, [i * spacing for i in range(limit * 20)])

    assert set(delays) == {"0.000"}
    assert keeper.overflow == 0


def test_overflow_stays_zero_when_limit_never_exceeded() -> None:
    keeper = SlidingWindowKeeper(limit=3, period_s=1.0)
    t = 0.0
    for _ in range(50):
        keeper.record_and_decide(t)
        assert keeper.overflow == 0
        t += 0.5


def test_slack_resets_burst_counter() -> None:
    keeper = SlidingWindowKeeper(limit=2, period_s=10.0)
    _delays(keeper, [0.0, 1.0, 2.0, 3.0])
    assert keeper.overflow == 2

    # Window is now [2, 3]; t=12 evicts t=2, exactly one period later.
    assert keeper.record_and_decide(12.0) == 0.0
    assert keeper.overflow == 0

    # Next burst starts again from a single base_delay: evicts t=3, (10 - 9.5) + 5.
    assert format_delay(keeper.record_and_decide(12.5)) == "5.500"
    assert keeper.overflow == 1


def test_window_never_exceeds_limit() -> None:
    keeper = SlidingWindowKeeper(limit=7, period_s=2.0)
    for i in range(200):
        keeper.record_and_decide(i * 0.01)
        assert keeper.window_size <= 7

    snap = keeper.snapshot()
    assert len(snap) == 7
    assert list(snap) == sorted(snap)


def test_base_delay_is_fixed_for_lifetime() -> None:
    keeper = SlidingWindowKeeper(limit=4, period_s=2.0)
    before = keeper.base_delay_s
    _delays(keeper, [0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 9.0])

    assert keeper.base_delay_s == before == 0.5


def test_uses_injected_clock_when_now_omitted() -> None:
    clock = Mock(side_effect=[0.0, 1.0, 2.0])
    keeper = SlidingWindowKeeper(limit=2, period_s=10.0, clock=clock)

    assert [format_delay(keeper.record_and_decide()) for _ in range(3)] == ["0.000", "0.000", "13.000"]
    assert clock.call_count == 3


def test_rejects_timestamps_going_backwards() -> None:
    keeper = SlidingWindowKeeper(limit=2, period_s=10.0)
    keeper.record_and_decide(5.0)

    with pytest.raises(ValueError):
        keeper.record_and_decide(4.0)

    assert keeper.window_size == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "period_s": 1.0},
        {"limit": -3, "period_s": 1.0},
        {"limit": 1, "period_s": 0.0},
        {"limit": 1, "period_s": -1.0},
        {"limit": 1, "period_s": float("nan")},
        {"limit": 1, "period_s": float("inf")},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        SlidingWindowKeeper(**kwargs)


def test_concurrent_callers_keep_window_bounded() -> None:
    keeper = SlidingWindowKeeper(limit=10, period_s=60.0)
    results: list[float] = []
    results_lock = threading.Lock()

    def worker() -> None:
        for _ in range(50):
            d = keeper.record_and_decide()
            with results_lock:
                results.append(d)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 400
    assert keeper.window_size == 10
    assert sum(1 for d in results if d == 0.0) == 10
    assert keeper.overflow == 390


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0.0, "0.000"),
        (13.0, "13.000"),
        (0.51, "0.510"),
        (1e-7, "0.000"),
        (1e6, "1000000.000"),
        (-0.0, "0.000"),
    ],
)
def test_format_delay_is_fixed_point(value: float, expected: str) -> None:
    assert format_delay(value) == expected
