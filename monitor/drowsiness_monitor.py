"""闭眼疲劳监测管线：关键点 -> EAR -> 睁闭眼 -> 连续闭眼累计 -> 告警"""

import logging
import threading
from typing import Optional

import numpy as np

from detectors.eye_analyzer import EyeAnalyzer
from detectors.eye_geometry import Keypoints
from evaluators.alert_emitter import AlertEmitter
from evaluators.drowsiness_tracker import DrowsinessTracker
from models.data_models import DetectorStatus, MonitorResult
from models.exceptions import DetectorUnavailableError

logger = logging.getLogger(__name__)


class DrowsinessMonitor:
    """
    单路监测管线，持有全部跨帧状态。

    process() 与 reset() 互斥执行，帧按到达顺序逐一折叠进状态；
    检测器调用在加锁之前完成。
    """

    def __init__(
        self,
        eye_analyzer: Optional[EyeAnalyzer] = None,
        tracker: Optional[DrowsinessTracker] = None,
        emitter: Optional[AlertEmitter] = None,
        detector=None,
    ):
        self.eye_analyzer = eye_analyzer or EyeAnalyzer()
        self.tracker = tracker or DrowsinessTracker()
        self.emitter = emitter or AlertEmitter()
        self.detector = detector
        self._lock = threading.Lock()

    def detector_status(self) -> DetectorStatus:
        """返回检测器就绪状态"""
        if self.detector is None:
            return DetectorStatus(ready=False, reason="未配置人脸检测器")
        return self.detector.check_ready()

    def process(self, keypoints: Optional[Keypoints], elapsed: Optional[float] = None) -> MonitorResult:
        """
        处理一帧关键点。须由单一生产者按到达顺序调用。

        Args:
            keypoints: 完整人脸关键点；None 表示未检测到人脸
            elapsed: 距上一帧的实际秒数；None 时使用跟踪器的帧间隔

        Returns:
            MonitorResult 包含帧结果、闭眼状态、告警统计和本帧是否触发告警
        """
        frame = self.eye_analyzer.analyze(keypoints)

        with self._lock:
            state = self.tracker.update(frame, elapsed=elapsed)
            triggered = self.emitter.observe(state.is_alerting)
            stats = self.emitter.stats()

        return MonitorResult(frame=frame, state=state, stats=stats, alert_triggered=triggered)

    def process_image(self, image: np.ndarray, elapsed: Optional[float] = None) -> Optional[MonitorResult]:
        """
        检测图像关键点并处理。

        检测器不可用时跳过本帧，状态不变，返回 None。
        """
        if self.detector is None:
            logger.warning("未配置人脸检测器，跳过本帧")
            return None

        try:
            keypoints = self.detector.detect(image)
        except DetectorUnavailableError as e:
            logger.warning("检测器不可用，跳过本帧: %s", e)
            return None

        return self.process(keypoints, elapsed=elapsed)

    def reset(self):
        """重新开始监测：清零闭眼累计，告警统计保留"""
        with self._lock:
            self.tracker.reset()
            self.emitter.clear_edge()
        logger.info("监测状态已重置")
