"""界面渲染模块 - 在视频帧上绘制眼部框、EAR、闭眼时长、告警等级和疲劳警告。"""

from typing import Optional

import cv2
import numpy as np

from evaluators.drowsiness_tracker import ALERT_DURATION, TIER_CRITICAL
from models.data_models import EyeObservation, MonitorResult


def format_value(v: float) -> str:
    """格式化浮点数为两位小数字符串。"""
    return f"{v:.2f}"


class DisplayRenderer:
    """在视频帧上绘制检测结果、状态信息和疲劳警告。"""

    # 等级名称映射
    _TIER_NAMES = {
        "normal": "正常",
        "warning": "注意",
        "medium": "中度",
        "high": "严重",
        "critical": "危险",
    }

    # 等级颜色 (BGR)
    _TIER_COLORS = {
        "normal": (0, 200, 0),
        "warning": (255, 128, 0),
        "medium": (0, 215, 255),
        "high": (0, 140, 255),
        "critical": (0, 0, 255),
    }

    _OPEN_COLOR = (0, 255, 0)
    _CLOSED_COLOR = (0, 0, 255)

    def __init__(self, font_path: str = "SimHei"):
        """初始化中文字体，字体不存在时回退到 OpenCV 默认英文字体。"""
        self._pil_font = None
        self._pil_font_large = None
        self._use_pil = False

        try:
            from PIL import ImageFont

            font = self._try_load_font(font_path)
            if font is not None:
                self._pil_font = font
                self._pil_font_large = ImageFont.truetype(font.path, 48)
                self._use_pil = True
        except Exception:
            self._use_pil = False

    @staticmethod
    def _try_load_font(font_path: str):
        """尝试加载字体文件，返回 PIL ImageFont 或 None。"""
        from PIL import ImageFont

        try:
            return ImageFont.truetype(font_path, 20)
        except (OSError, IOError):
            pass

        # 常见系统路径
        common_paths = [
            "/usr/share/fonts/truetype/simhei/SimHei.ttf",
            "/usr/share/fonts/SimHei.ttf",
            "C:\\Windows\\Fonts\\simhei.ttf",
            "/System/Library/Fonts/STHeiti Medium.ttc",
        ]
        for path in common_paths:
            try:
                return ImageFont.truetype(path, 20)
            except (OSError, IOError):
                continue

        return None

    def render(self, frame: np.ndarray, result: Optional[MonitorResult]) -> np.ndarray:
        """渲染监测结果到视频帧，返回渲染后的帧图像。result 为 None 表示本帧被跳过。"""
        output = frame.copy()

        if result is None:
            self._draw_lines(output, ["Detector unavailable"], ["检测器不可用"], (0, 255, 255))
            return output

        if not result.frame.face_detected:
            self._draw_lines(output, ["No face"], ["未检测到人脸"], (0, 255, 255))
        else:
            self._draw_eye_box(output, result.frame.left)
            self._draw_eye_box(output, result.frame.right)
            self._draw_info(output, result)

        self._draw_progress(output, result.state.alert_progress, result.state.tier)

        if result.state.tier == TIER_CRITICAL:
            self._draw_fatigue_warning(output)

        return output

    def _draw_eye_box(self, frame: np.ndarray, eye: EyeObservation) -> None:
        """绘制眼部外接矩形：睁眼绿色，闭眼红色。"""
        box = eye.bounding_box
        if box.width <= 0 and box.height <= 0:
            return
        color = self._OPEN_COLOR if eye.is_open else self._CLOSED_COLOR
        top_left = (int(box.x), int(box.y))
        bottom_right = (int(box.x + box.width), int(box.y + box.height))
        cv2.rectangle(frame, top_left, bottom_right, color, 2)

    def _draw_info(self, frame: np.ndarray, result: MonitorResult) -> None:
        """在左上角绘制 EAR、闭眼时长、等级和告警次数。"""
        state = result.state
        ear_text = f"EAR: {format_value(result.frame.average_ratio)}"
        duration_text = f"{state.closed_duration:.0f}/{ALERT_DURATION:.0f}s"
        tier_name = self._TIER_NAMES.get(state.tier, state.tier)

        zh_lines = [
            ear_text,
            f"闭眼时长: {duration_text}",
            f"等级: {tier_name}",
            f"告警次数: {result.stats.alert_count}",
        ]
        en_lines = [
            ear_text,
            f"Closed: {duration_text}",
            f"Level: {state.tier.capitalize()}",
            f"Alerts: {result.stats.alert_count}",
        ]
        self._draw_lines(frame, en_lines, zh_lines, (0, 255, 0))

    def _draw_lines(self, frame: np.ndarray, en_lines: list, zh_lines: list, color: tuple) -> None:
        """左上角多行文字，优先使用 PIL 中文，否则英文回退。"""
        if self._use_pil:
            self._draw_pil_lines(frame, zh_lines, x=10, y_start=30, color=color)
            return

        y = 30
        for text in en_lines:
            cv2.putText(frame, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.7, color, 2)
            y += 30

    def _draw_progress(self, frame: np.ndarray, progress: float, tier: str) -> None:
        """在画面底部绘制闭眼告警进度条。"""
        h, w = frame.shape[:2]
        x1, y1 = 10, h - 30
        x2, y2 = w - 10, h - 14
        cv2.rectangle(frame, (x1, y1), (x2, y2), (80, 80, 80), 1)
        filled = int((x2 - x1) * max(0.0, min(progress, 1.0)))
        if filled > 0:
            cv2.rectangle(frame, (x1, y1), (x1 + filled, y2), self._TIER_COLORS.get(tier, (0, 200, 0)), -1)

    def _draw_fatigue_warning(self, frame: np.ndarray) -> None:
        """在画面中央显示红色大字体疲劳警告。"""
        h, w = frame.shape[:2]
        warning = "严重疲劳！请立即停车！"

        if self._use_pil:
            from PIL import Image, ImageDraw

            img_pil = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
            draw = ImageDraw.Draw(img_pil)
            bbox = draw.textbbox((0, 0), warning, font=self._pil_font_large)
            text_w = bbox[2] - bbox[0]
            text_h = bbox[3] - bbox[1]
            x = (w - text_w) // 2
            y = (h - text_h) // 2
            draw.text((x, y), warning, font=self._pil_font_large, fill=(255, 0, 0))
            frame[:] = cv2.cvtColor(np.array(img_pil), cv2.COLOR_RGB2BGR)
        else:
            warning_en = "DROWSY! PULL OVER!"
            font_scale = 1.5
            thickness = 3
            (text_w, text_h), _ = cv2.getTextSize(
                warning_en, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness
            )
            x = (w - text_w) // 2
            y = (h + text_h) // 2
            cv2.putText(
                frame, warning_en, (x, y),
                cv2.FONT_HERSHEY_SIMPLEX, font_scale, (0, 0, 255), thickness,
            )

    def _draw_pil_lines(
        self,
        frame: np.ndarray,
        lines: list,
        x: int,
        y_start: int,
        color: tuple,
    ) -> None:
        """使用 PIL 在帧上绘制多行文字（BGR color -> RGB fill）。"""
        from PIL import Image, ImageDraw

        img_pil = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
        draw = ImageDraw.Draw(img_pil)
        fill = (color[2], color[1], color[0])
        y = y_start
        for line in lines:
            draw.text((x, y), line, font=self._pil_font, fill=fill)
            y += 28
        frame[:] = cv2.cvtColor(np.array(img_pil), cv2.COLOR_RGB2BGR)
