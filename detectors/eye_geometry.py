"""眼部几何提取模块，从完整人脸关键点中按固定顺序取出左右眼轮廓点"""

from typing import Mapping, Sequence, Tuple, Union

from models.data_models import EyeLandmarkSet, Point2D, Rect
from models.exceptions import MissingLandmarkError

# MediaPipe FaceMesh 眼部轮廓索引。
# 顺序决定 EAR 公式中的位置: [0]/[3] 为水平点对，[1]/[5]、[2]/[4] 为垂直点对
LEFT_EYE_INDICES = [33, 7, 163, 144, 145, 153, 154, 155, 133, 173, 157, 158, 159, 160, 161, 246]
RIGHT_EYE_INDICES = [362, 382, 381, 380, 374, 373, 390, 249, 263, 466, 388, 387, 386, 385, 384, 398]

Keypoints = Union[Mapping[int, Point2D], Sequence[Point2D]]


def extract_eye(keypoints: Keypoints, indices: Sequence[int]) -> EyeLandmarkSet:
    """
    按索引列表顺序收集单只眼睛的关键点。

    Args:
        keypoints: 关键点索引 -> (x, y) 的映射，或按索引排列的关键点列表
        indices: 眼部关键点索引列表

    Returns:
        (x, y) 元组组成的有序元组

    Raises:
        MissingLandmarkError: 关键点集合中缺少某个索引
    """
    points = []
    for index in indices:
        try:
            x, y = keypoints[index]
        except (KeyError, IndexError):
            raise MissingLandmarkError(index) from None
        points.append((float(x), float(y)))
    return tuple(points)


def extract_eyes(keypoints: Keypoints) -> Tuple[EyeLandmarkSet, EyeLandmarkSet]:
    """提取左右眼关键点，返回 (left, right)。"""
    return extract_eye(keypoints, LEFT_EYE_INDICES), extract_eye(keypoints, RIGHT_EYE_INDICES)


def bounding_box(points: EyeLandmarkSet) -> Rect:
    """计算关键点的外接矩形，空集合返回全零矩形。"""
    if not points:
        return Rect()

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    min_x, min_y = min(xs), min(ys)
    return Rect(x=min_x, y=min_y, width=max(xs) - min_x, height=max(ys) - min_y)
