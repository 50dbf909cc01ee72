"""连续闭眼累计模块，维护闭眼帧计数与闭眼时长并映射为告警等级"""

import logging
from typing import Optional

from models.data_models import DrowsinessState, FrameResult

logger = logging.getLogger(__name__)

TIER_NORMAL = "normal"
TIER_WARNING = "warning"
TIER_MEDIUM = "medium"
TIER_HIGH = "high"
TIER_CRITICAL = "critical"

# (最短闭眼秒数, 等级)，从高到低匹配
TIER_THRESHOLDS = (
    (20.0, TIER_CRITICAL),
    (15.0, TIER_HIGH),
    (10.0, TIER_MEDIUM),
    (5.0, TIER_WARNING),
)

ALERT_DURATION = 20.0
FRAME_INTERVAL = 1.0


def tier_for_duration(closed_duration: float) -> str:
    """根据连续闭眼时长（秒）返回告警等级。"""
    for lower_bound, tier in TIER_THRESHOLDS:
        if closed_duration >= lower_bound:
            return tier
    return TIER_NORMAL


def is_alerting_duration(closed_duration: float) -> bool:
    """仅在 critical 边界触发告警，warning/medium/high 只用于显示。"""
    return closed_duration >= ALERT_DURATION


class DrowsinessTracker:
    """
    连续闭眼累计器。

    每帧：未检测到人脸时状态不变；双眼睁开时清零；否则计数加一，
    闭眼时长累加本帧间隔。等级与告警标志均为闭眼时长的纯函数。
    默认帧间隔 1 秒，此时闭眼时长与计数相等。
    闭眼时长按整毫秒累计，非二进制精确的帧间隔（如 0.1 秒）不会推迟等级边界。
    """

    def __init__(self, frame_interval: float = FRAME_INTERVAL):
        self.frame_interval = frame_interval
        self._closed_frames = 0
        self._closed_ms = 0

    @property
    def consecutive_closed_frames(self) -> int:
        return self._closed_frames

    @property
    def closed_duration(self) -> float:
        return self._closed_ms / 1000.0

    @property
    def tier(self) -> str:
        return tier_for_duration(self.closed_duration)

    @property
    def is_alerting(self) -> bool:
        return is_alerting_duration(self.closed_duration)

    def update(self, frame: FrameResult, elapsed: Optional[float] = None) -> DrowsinessState:
        """
        用一帧结果更新闭眼累计状态。

        Args:
            frame: 当前帧的 FrameResult
            elapsed: 距上一帧的实际秒数；None 时使用 frame_interval

        Returns:
            更新后的 DrowsinessState 快照
        """
        if not frame.face_detected:
            return self.snapshot()

        if frame.both_eyes_open:
            if self._closed_frames:
                logger.debug("睁眼恢复，闭眼累计清零 (%d 帧)", self._closed_frames)
            self._closed_frames = 0
            self._closed_ms = 0
        else:
            step = self.frame_interval if elapsed is None else max(0.0, elapsed)
            self._closed_frames += 1
            self._closed_ms += round(step * 1000)

        return self.snapshot()

    def snapshot(self) -> DrowsinessState:
        duration = self.closed_duration
        return DrowsinessState(
            consecutive_closed_frames=self._closed_frames,
            closed_duration=duration,
            tier=tier_for_duration(duration),
            is_alerting=is_alerting_duration(duration),
            alert_progress=min(duration / ALERT_DURATION, 1.0),
        )

    def reset(self):
        """重置闭眼累计（监测开始或重新开始时调用）"""
        self._closed_frames = 0
        self._closed_ms = 0
