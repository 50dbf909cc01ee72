"""DrowsinessTracker 单元测试"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from evaluators.drowsiness_tracker import (
    TIER_CRITICAL,
    TIER_HIGH,
    TIER_MEDIUM,
    TIER_NORMAL,
    TIER_WARNING,
    DrowsinessTracker,
    is_alerting_duration,
    tier_for_duration,
)
from models.data_models import EyeObservation, FrameResult

_TIER_ORDER = [TIER_NORMAL, TIER_WARNING, TIER_MEDIUM, TIER_HIGH, TIER_CRITICAL]


def _frame(open_eyes=True, face_detected=True):
    eye = EyeObservation(openness_ratio=0.3 if open_eyes else 0.1, is_open=open_eyes)
    return FrameResult(left=eye, right=eye, face_detected=face_detected, average_ratio=eye.openness_ratio)


def _feed(tracker, verdicts):
    """按睁闭眼序列喂帧，返回每帧等级。"""
    return [tracker.update(_frame(open_eyes=v)).tier for v in verdicts]


class TestTierForDuration:
    @pytest.mark.parametrize("counter,expected", [
        (0, TIER_NORMAL),
        (4, TIER_NORMAL),
        (5, TIER_WARNING),
        (9, TIER_WARNING),
        (10, TIER_MEDIUM),
        (14, TIER_MEDIUM),
        (15, TIER_HIGH),
        (19, TIER_HIGH),
        (20, TIER_CRITICAL),
        (1000, TIER_CRITICAL),
    ])
    def test_step_function(self, counter, expected):
        assert tier_for_duration(counter) == expected

    def test_fractional_durations(self):
        assert tier_for_duration(4.99) == TIER_NORMAL
        assert tier_for_duration(19.5) == TIER_HIGH

    @given(st.floats(min_value=0, max_value=1e6), st.floats(min_value=0, max_value=1e6))
    def test_monotonic(self, a, b):
        lo, hi = sorted((a, b))
        assert _TIER_ORDER.index(tier_for_duration(lo)) <= _TIER_ORDER.index(tier_for_duration(hi))


class TestIsAlerting:
    @pytest.mark.parametrize("counter", range(0, 20))
    def test_silent_below_critical(self, counter):
        assert is_alerting_duration(counter) is False

    @pytest.mark.parametrize("counter", [20, 21, 100])
    def test_alerting_at_critical(self, counter):
        assert is_alerting_duration(counter) is True


class TestUpdate:
    def test_closed_increments(self):
        tracker = DrowsinessTracker()
        state = tracker.update(_frame(open_eyes=False))
        assert state.consecutive_closed_frames == 1
        assert state.closed_duration == pytest.approx(1.0)

    def test_open_resets(self):
        tracker = DrowsinessTracker()
        for _ in range(3):
            tracker.update(_frame(open_eyes=False))
        state = tracker.update(_frame(open_eyes=True))
        assert state.consecutive_closed_frames == 0
        assert state.closed_duration == 0.0

    @given(st.integers(min_value=0, max_value=200))
    def test_open_after_any_closed_run_resets(self, n):
        tracker = DrowsinessTracker()
        for _ in range(n):
            tracker.update(_frame(open_eyes=False))
        assert tracker.update(_frame(open_eyes=True)).consecutive_closed_frames == 0

    def test_no_face_leaves_counter_unchanged(self):
        tracker = DrowsinessTracker()
        for _ in range(7):
            tracker.update(_frame(open_eyes=False))
        state = tracker.update(_frame(face_detected=False))
        assert state.consecutive_closed_frames == 7
        assert state.tier == TIER_WARNING

    def test_alert_progress(self):
        tracker = DrowsinessTracker()
        for _ in range(10):
            state = tracker.update(_frame(open_eyes=False))
        assert state.alert_progress == pytest.approx(0.5)
        for _ in range(15):
            state = tracker.update(_frame(open_eyes=False))
        assert state.alert_progress == 1.0

    def test_properties_follow_state(self):
        tracker = DrowsinessTracker()
        for _ in range(20):
            tracker.update(_frame(open_eyes=False))
        assert tracker.consecutive_closed_frames == 20
        assert tracker.tier == TIER_CRITICAL
        assert tracker.is_alerting is True


class TestElapsedTime:
    def test_elapsed_overrides_frame_interval(self):
        tracker = DrowsinessTracker()
        state = tracker.update(_frame(open_eyes=False), elapsed=2.5)
        assert state.consecutive_closed_frames == 1
        assert state.closed_duration == pytest.approx(2.5)

    def test_tier_tracks_duration_not_frames(self):
        """8 FPS 采样时 40 帧闭眼为 5 秒，应为 warning 而非 critical"""
        tracker = DrowsinessTracker(frame_interval=0.125)
        for _ in range(40):
            state = tracker.update(_frame(open_eyes=False))
        assert state.consecutive_closed_frames == 40
        assert state.closed_duration == 5.0
        assert state.tier == TIER_WARNING
        assert state.is_alerting is False

    def test_warning_at_five_seconds_with_tenth_second_interval(self):
        """0.1 秒帧间隔在二进制下不精确，第 50 帧仍应恰好达到 5 秒"""
        tracker = DrowsinessTracker(frame_interval=0.1)
        for _ in range(49):
            state = tracker.update(_frame(open_eyes=False))
        assert state.tier == TIER_NORMAL
        state = tracker.update(_frame(open_eyes=False))
        assert state.closed_duration == 5.0
        assert state.tier == TIER_WARNING

    def test_critical_at_twenty_seconds_with_fifth_second_elapsed(self):
        tracker = DrowsinessTracker()
        for _ in range(99):
            state = tracker.update(_frame(open_eyes=False), elapsed=0.2)
        assert state.is_alerting is False
        state = tracker.update(_frame(open_eyes=False), elapsed=0.2)
        assert state.closed_duration == 20.0
        assert state.tier == TIER_CRITICAL
        assert state.is_alerting is True

    def test_alert_after_twenty_seconds_at_two_fps(self):
        tracker = DrowsinessTracker()
        for _ in range(40):
            state = tracker.update(_frame(open_eyes=False), elapsed=0.5)
        assert state.is_alerting is True
        assert state.tier == TIER_CRITICAL

    def test_negative_elapsed_clamped(self):
        tracker = DrowsinessTracker()
        state = tracker.update(_frame(open_eyes=False), elapsed=-3.0)
        assert state.closed_duration == 0.0
        assert state.consecutive_closed_frames == 1


class TestScenarios:
    def test_twenty_five_closed_frames(self):
        tracker = DrowsinessTracker()
        tiers = _feed(tracker, [False] * 25)
        assert tiers[18] == TIER_HIGH
        assert tiers[19] == TIER_CRITICAL
        assert all(t == TIER_CRITICAL for t in tiers[19:])

    def test_reset_then_replay_is_deterministic(self):
        verdicts = [False] * 12 + [True] + [False] * 22 + [True, False, False]
        tracker = DrowsinessTracker()
        tracker.reset()
        first = _feed(tracker, verdicts)
        tracker.reset()
        second = _feed(tracker, verdicts)
        assert first == second

    def test_reset_clears_state(self):
        tracker = DrowsinessTracker()
        _feed(tracker, [False] * 21)
        tracker.reset()
        state = tracker.snapshot()
        assert state.consecutive_closed_frames == 0
        assert state.tier == TIER_NORMAL
        assert state.is_alerting is False
