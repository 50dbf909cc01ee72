"""核心数据模型定义"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

Point2D = Tuple[float, float]
EyeLandmarkSet = Tuple[Point2D, ...]


@dataclass(frozen=True)
class Rect:
    """眼睛关键点的外接矩形"""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclass(frozen=True)
class EyeObservation:
    """单只眼睛的单帧观测结果"""
    openness_ratio: float
    is_open: bool
    bounding_box: Rect = field(default_factory=Rect)
    landmarks: EyeLandmarkSet = ()
    indeterminate: bool = False


@dataclass(frozen=True)
class FrameResult:
    """单帧提取 + EAR + 睁闭眼分类的输出"""
    left: EyeObservation
    right: EyeObservation
    face_detected: bool
    average_ratio: float

    @property
    def both_eyes_open(self) -> bool:
        return self.left.is_open and self.right.is_open


@dataclass(frozen=True)
class DrowsinessState:
    """连续闭眼状态快照"""
    consecutive_closed_frames: int
    closed_duration: float
    tier: str
    is_alerting: bool
    alert_progress: float


@dataclass(frozen=True)
class AlertStats:
    """告警统计快照"""
    alert_count: int
    last_alert_timestamp: Optional[datetime]
    is_cue_playing: bool


@dataclass(frozen=True)
class MonitorResult:
    """监测管线单帧输出，供界面层渲染"""
    frame: FrameResult
    state: DrowsinessState
    stats: AlertStats
    alert_triggered: bool


@dataclass(frozen=True)
class DetectorStatus:
    """人脸检测器就绪状态"""
    ready: bool
    reason: Optional[str] = None
