"""闭眼疲劳监测系统入口文件"""

import argparse
import json
import logging
import sys
import time

import cv2

from audio.alert_sound import ToneCuePlayer
from detectors.eye_analyzer import EyeAnalyzer
from detectors.face_detector import FaceDetector
from display.renderer import DisplayRenderer
from evaluators.alert_emitter import AlertEmitter
from evaluators.drowsiness_tracker import DrowsinessTracker
from monitor.drowsiness_monitor import DrowsinessMonitor

# 默认配置
_DEFAULTS = {
    "ear_threshold": 0.25,
    "frame_interval": 1.0,
    "cue_duration": 2.0,
    "camera_index": 0,
    "audio_enabled": True,
}


def load_config(config_path=None):
    """从 JSON 配置文件加载参数，缺失字段使用默认值。"""
    config = dict(_DEFAULTS)

    if config_path is None:
        return config

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        print(f"警告: 配置文件不存在 {config_path}，使用默认配置")
        return config
    except json.JSONDecodeError:
        print(f"警告: 配置文件格式错误 {config_path}，使用默认配置")
        return config

    # 用配置文件中的值覆盖默认值
    for key in _DEFAULTS:
        if key in data and data[key] is not None:
            config[key] = data[key]

    return config


def build_monitor(config, detector=None, cue_player=None):
    """按配置组装监测管线。"""
    if cue_player is None and config["audio_enabled"]:
        cue_player = ToneCuePlayer()

    return DrowsinessMonitor(
        eye_analyzer=EyeAnalyzer(ear_threshold=config["ear_threshold"]),
        tracker=DrowsinessTracker(frame_interval=config["frame_interval"]),
        emitter=AlertEmitter(cue_player=cue_player, cue_duration=config["cue_duration"]),
        detector=detector,
    )


class DetectionSystem:
    """闭眼疲劳监测主程序，按采样间隔把摄像头帧送入监测管线并显示结果。"""

    def __init__(self, config_path=None, detector=None, cue_player=None, config=None):
        self._cap = None
        self.config = config if config is not None else load_config(config_path)

        self.face_detector = detector if detector is not None else FaceDetector()
        self.monitor = build_monitor(self.config, self.face_detector, cue_player)
        self.renderer = DisplayRenderer()

        status = self.monitor.detector_status()
        if not status.ready:
            print(f"警告: 人脸检测器不可用 - {status.reason}")

    def run(self):
        """启动主检测循环。"""
        self._cap = cv2.VideoCapture(self.config["camera_index"])

        if not self._cap.isOpened():
            print("无法打开摄像头")
            sys.exit(1)

        try:
            self._main_loop()
        finally:
            self.stop()

    def _main_loop(self):
        """视频流处理主循环。仅在采样间隔到达时处理一帧，其余帧只做显示。"""
        interval = self.config["frame_interval"]
        self.monitor.reset()
        last_processed = None
        result = None

        while True:
            ret, frame = self._cap.read()
            if not ret:
                continue

            now = time.monotonic()
            if last_processed is None or now - last_processed >= interval:
                elapsed = None if last_processed is None else now - last_processed
                result = self.monitor.process_image(frame, elapsed=elapsed)
                last_processed = now

            rendered = self.renderer.render(frame, result)
            cv2.imshow("闭眼疲劳监测", rendered)

            key = cv2.waitKey(1) & 0xFF
            # q 退出，r 重新开始监测
            if key == ord("q"):
                break
            if key == ord("r"):
                self.monitor.reset()
                last_processed = None

    def stop(self):
        """释放摄像头资源、关闭所有窗口、关闭人脸检测器。"""
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
        cv2.destroyAllWindows()
        self.face_detector.close()


def main():
    parser = argparse.ArgumentParser(description="闭眼疲劳监测系统")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON 配置文件路径",
    )
    parser.add_argument(
        "--camera",
        type=int,
        default=None,
        help="摄像头编号（覆盖配置文件）",
    )
    parser.add_argument(
        "--no-audio",
        action="store_true",
        help="关闭告警提示音",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = load_config(args.config)
    if args.camera is not None:
        config["camera_index"] = args.camera
    if args.no_audio:
        config["audio_enabled"] = False

    system = DetectionSystem(config=config)
    system.run()


if __name__ == "__main__":
    main()
