"""人脸关键点检测模块，基于 MediaPipe FaceMesh"""

import logging
from typing import List, Optional

import cv2
import mediapipe as mp
import numpy as np

from models.data_models import DetectorStatus, Point2D
from models.exceptions import DetectorUnavailableError

logger = logging.getLogger(__name__)

NUM_LANDMARKS = 468


class FaceDetector:
    """使用 MediaPipe FaceMesh 检测人脸关键点"""

    def __init__(
        self,
        max_num_faces: int = 1,
        min_detection_confidence: float = 0.5,
        refine_landmarks: bool = False,
    ):
        """初始化 MediaPipe FaceMesh，失败时记录原因，由 check_ready() 报告"""
        self._face_mesh = None
        self._error: Optional[str] = None
        try:
            self._face_mesh = mp.solutions.face_mesh.FaceMesh(
                max_num_faces=max_num_faces,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=0.5,
                refine_landmarks=refine_landmarks,
            )
        except Exception as e:
            self._error = f"FaceMesh 初始化失败: {e}"
            logger.error(self._error)

    def check_ready(self) -> DetectorStatus:
        """返回检测器就绪状态"""
        if self._face_mesh is not None:
            return DetectorStatus(ready=True)
        return DetectorStatus(ready=False, reason=self._error or "检测器已关闭")

    def detect(self, frame: np.ndarray) -> Optional[List[Point2D]]:
        """
        检测单帧图像中的人脸关键点。

        Args:
            frame: BGR 格式的 OpenCV 图像帧

        Returns:
            按索引排列的像素坐标关键点列表；未检测到人脸时返回 None

        Raises:
            DetectorUnavailableError: 检测器未就绪或处理失败
        """
        status = self.check_ready()
        if not status.ready:
            raise DetectorUnavailableError(status.reason)

        try:
            h, w = frame.shape[:2]

            # BGR -> RGB
            rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            rgb_frame.flags.writeable = False

            results = self._face_mesh.process(rgb_frame)
        except Exception as e:
            raise DetectorUnavailableError(f"关键点检测失败: {e}") from e

        if not results.multi_face_landmarks:
            return None

        face = results.multi_face_landmarks[0]

        # 将归一化坐标转换为像素坐标
        return [(lm.x * w, lm.y * h) for lm in face.landmark]

    def close(self):
        """释放 MediaPipe 资源"""
        if self._face_mesh is not None:
            self._face_mesh.close()
            self._face_mesh = None
