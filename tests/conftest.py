import sys
import os

# Add project root to sys.path so tests can import from all modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest  # noqa: E402
from hypothesis import settings  # noqa: E402

from detectors.eye_geometry import LEFT_EYE_INDICES, RIGHT_EYE_INDICES  # noqa: E402

# CI profile: more examples for thorough testing
settings.register_profile("ci", max_examples=200)
# Dev profile: fewer examples for faster iteration
settings.register_profile("dev", max_examples=100)
# Default to dev profile
settings.load_profile("dev")

EYE_WIDTH = 10.0


def _place_eye(points, indices, ear, origin):
    """按目标 EAR 摆放一只眼睛的前 6 个关键点：垂直开合 = ear * 眼宽。"""
    ox, oy = origin
    opening = ear * EYE_WIDTH
    p0 = (ox, oy)
    p1 = (ox + 3.0, oy)
    p2 = (ox + 6.0, oy)
    p3 = (ox + EYE_WIDTH, oy)
    p4 = (ox + 6.0, oy + opening)
    p5 = (ox + 3.0, oy + opening)
    for index, point in zip(indices, (p0, p1, p2, p3, p4, p5)):
        points[index] = point
    for index in indices[6:]:
        points[index] = (ox + 5.0, oy + opening / 2.0)


def make_keypoints(left_ear=0.3, right_ear=0.3):
    """生成 468 个关键点，左右眼 EAR 分别为给定值。"""
    points = [(0.0, 0.0)] * 468
    _place_eye(points, LEFT_EYE_INDICES, left_ear, (100.0, 100.0))
    _place_eye(points, RIGHT_EYE_INDICES, right_ear, (200.0, 100.0))
    return points


@pytest.fixture
def keypoints_factory():
    return make_keypoints


@pytest.fixture
def open_keypoints():
    return make_keypoints(0.3, 0.3)


@pytest.fixture
def closed_keypoints():
    return make_keypoints(0.1, 0.1)
