"""告警触发模块，检测告警上升沿并维护告警统计与提示音状态"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from models.data_models import AlertStats

logger = logging.getLogger(__name__)

CUE_DURATION = 2.0


class AlertEmitter:
    """
    观察每帧的 is_alerting 标志，在上升沿 (False -> True) 记录告警并触发提示音。

    - 每个上升沿都会增加 alert_count 并刷新 last_alert_timestamp
    - 提示音播放期间不会再启动第二个提示音
    - is_cue_playing 由单调时钟推导，超过 cue_duration 后自动变为 False，
      即使之后没有新帧到达
    - 提示音播放异常在本地捕获并记录日志，不影响后续告警检测
    """

    def __init__(
        self,
        cue_player: Optional[Callable[[float], None]] = None,
        cue_duration: float = CUE_DURATION,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            cue_player: 提示音播放回调，参数为播放时长（秒）；None 时仅记录统计
            cue_duration: 单次提示音持续时间（秒）
            clock: 单调时钟，用于提示音自动复位
            now: 告警时间戳来源
        """
        self.cue_player = cue_player
        self.cue_duration = cue_duration
        self._clock = clock
        self._now = now

        self._was_alerting = False
        self._alert_count = 0
        self._last_alert_timestamp: Optional[datetime] = None
        self._cue_started_at: Optional[float] = None

    @property
    def alert_count(self) -> int:
        return self._alert_count

    @property
    def last_alert_timestamp(self) -> Optional[datetime]:
        return self._last_alert_timestamp

    @property
    def is_cue_playing(self) -> bool:
        if self._cue_started_at is None:
            return False
        if self._clock() - self._cue_started_at >= self.cue_duration:
            self._cue_started_at = None
            return False
        return True

    def observe(self, is_alerting: bool) -> bool:
        """
        处理一帧的告警标志。

        Args:
            is_alerting: 当前帧是否处于告警状态

        Returns:
            本帧是否为上升沿
        """
        rising = is_alerting and not self._was_alerting
        self._was_alerting = is_alerting

        if rising:
            self._alert_count += 1
            self._last_alert_timestamp = self._now()
            logger.warning("疲劳告警触发，第 %d 次", self._alert_count)
            if not self.is_cue_playing:
                self._start_cue()

        return rising

    def _start_cue(self):
        self._cue_started_at = self._clock()
        if self.cue_player is None:
            return
        try:
            self.cue_player(self.cue_duration)
        except Exception:
            logger.exception("告警提示音播放失败")
            self._cue_started_at = None

    def stats(self) -> AlertStats:
        """返回当前告警统计快照"""
        return AlertStats(
            alert_count=self._alert_count,
            last_alert_timestamp=self._last_alert_timestamp,
            is_cue_playing=self.is_cue_playing,
        )

    def clear_edge(self):
        """清除上一帧告警标志，监测重新开始时调用；统计数据保留"""
        self._was_alerting = False
