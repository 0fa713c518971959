"""Tests for OnTargetFeedback."""

import pytest

from hmscoring import OnTargetFeedback


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def events():
    return []


@pytest.fixture
def feedback(clock, events):
    return OnTargetFeedback(
        on_confirm=lambda: events.append(("confirm", clock.now)),
        on_pulse=lambda: events.append(("pulse", clock.now)),
        clock=clock,
    )


def run(feedback, clock, states, step_ms=20.0):
    for state in states:
        feedback.update(state)
        clock.now += step_ms


class TestOnTargetFeedback:
    """Hold-to-confirm timing."""

    def test_confirm_after_hold(self, feedback, clock, events):
        run(feedback, clock, [True] * 15)  # 0..280 ms
        assert events == []
        run(feedback, clock, [True])  # 300 ms
        assert events == [("confirm", 300.0)]
        assert feedback.confirmed

    def test_pulses_while_held(self, feedback, clock, events):
        run(feedback, clock, [True] * 66)  # 0..1300 ms
        assert events == [("confirm", 300.0), ("pulse", 800.0), ("pulse", 1300.0)]

    def test_leaving_target_resets(self, feedback, clock, events):
        run(feedback, clock, [True] * 10 + [False] + [True] * 10)
        assert events == []
        assert not feedback.confirmed

    def test_short_hold_never_confirms(self, feedback, clock, events):
        for _ in range(5):
            run(feedback, clock, [True] * 5 + [False] * 2)
        assert events == []

    def test_disabled(self, feedback, clock, events):
        feedback.set_enabled(False)
        run(feedback, clock, [True] * 40)
        assert events == []

    def test_disable_resets_streak(self, feedback, clock, events):
        run(feedback, clock, [True] * 10)
        feedback.set_enabled(False)
        feedback.set_enabled(True)
        run(feedback, clock, [True] * 10)
        assert events == []

    def test_callback_errors_are_contained(self, clock):
        def broken():
            raise RuntimeError("no haptics on this device")

        feedback = OnTargetFeedback(on_confirm=broken, clock=clock)
        run(feedback, clock, [True] * 40)
        assert feedback.confirmed

    def test_invalid_timing(self):
        with pytest.raises(ValueError):
            OnTargetFeedback(repeat_interval_ms=0)
        with pytest.raises(ValueError):
            OnTargetFeedback(hold_threshold_ms=-1)
