"""眼睛状态分析模块，负责计算 EAR 值并判断单帧睁闭眼状态"""

import logging
import math
from typing import Optional, Sequence

from detectors.eye_geometry import (
    LEFT_EYE_INDICES,
    RIGHT_EYE_INDICES,
    Keypoints,
    bounding_box,
    extract_eye,
)
from models.data_models import EyeObservation, FrameResult, Point2D
from models.exceptions import MissingLandmarkError

logger = logging.getLogger(__name__)

EAR_THRESHOLD = 0.25
MIN_EYE_POINTS = 6


class EyeAnalyzer:
    """计算双眼 EAR 值并按阈值输出睁闭眼判定"""

    def __init__(self, ear_threshold: float = EAR_THRESHOLD):
        """初始化 EAR 阈值"""
        self.ear_threshold = ear_threshold

    @staticmethod
    def calculate_ear(eye_points: Sequence[Point2D]) -> float:
        """
        计算单只眼睛的 EAR 值。

        公式: EAR = (|p1-p5| + |p2-p4|) / (2 * |p0-p3|)

        Args:
            eye_points: 有序眼部轮廓关键点 [(x,y), ...]，至少 6 个

        Returns:
            EAR 值；点数不足 6 个或水平距离为零时返回 0.0
        """
        if len(eye_points) < MIN_EYE_POINTS:
            return 0.0

        vertical_1 = math.dist(eye_points[1], eye_points[5])
        vertical_2 = math.dist(eye_points[2], eye_points[4])
        horizontal = math.dist(eye_points[0], eye_points[3])

        if horizontal == 0.0:
            return 0.0

        return (vertical_1 + vertical_2) / (2.0 * horizontal)

    def is_open(self, ear: float) -> bool:
        """EAR 严格大于阈值时判定为睁眼"""
        return ear > self.ear_threshold

    def observe_eye(self, keypoints: Keypoints, indices: Sequence[int]) -> EyeObservation:
        """
        分析单只眼睛。

        关键点缺失或点数不足时该眼视为不确定：EAR 记为 0，按睁眼处理。
        """
        try:
            points = extract_eye(keypoints, indices)
        except MissingLandmarkError as e:
            logger.debug("眼部关键点缺失，按睁眼处理: %s", e)
            return _indeterminate_eye()

        if len(points) < MIN_EYE_POINTS:
            return _indeterminate_eye(points)

        ear = self.calculate_ear(points)
        return EyeObservation(
            openness_ratio=ear,
            is_open=self.is_open(ear),
            bounding_box=bounding_box(points),
            landmarks=points,
        )

    def analyze(self, keypoints: Optional[Keypoints]) -> FrameResult:
        """
        分析双眼状态。

        Args:
            keypoints: 完整人脸关键点；None 表示未检测到人脸

        Returns:
            FrameResult(left, right, face_detected, average_ratio)
        """
        if keypoints is None:
            return FrameResult(
                left=_indeterminate_eye(),
                right=_indeterminate_eye(),
                face_detected=False,
                average_ratio=0.0,
            )

        left = self.observe_eye(keypoints, LEFT_EYE_INDICES)
        right = self.observe_eye(keypoints, RIGHT_EYE_INDICES)

        return FrameResult(
            left=left,
            right=right,
            face_detected=True,
            average_ratio=(left.openness_ratio + right.openness_ratio) / 2.0,
        )


def _indeterminate_eye(points: Sequence[Point2D] = ()) -> EyeObservation:
    return EyeObservation(
        openness_ratio=0.0,
        is_open=True,
        bounding_box=bounding_box(points),
        landmarks=tuple(points),
        indeterminate=True,
    )
