"""Flask Web 前端 - 闭眼疲劳监测系统"""

import datetime
import logging
import threading
import time

import cv2
from flask import Flask, Response, jsonify, request

from detectors.face_detector import FaceDetector
from display.renderer import DisplayRenderer
from main import build_monitor, load_config

app = Flask(__name__)

_TIER_NAMES = {
    "normal": "正常",
    "warning": "注意",
    "medium": "中度",
    "high": "严重",
    "critical": "危险",
}


def result_to_data(result):
    """把 MonitorResult 转成 JSON 友好的字典。"""
    frame, state, stats = result.frame, result.state, result.stats
    return {
        "face_detected": frame.face_detected,
        "ear": round(frame.average_ratio, 4),
        "ear_left": round(frame.left.openness_ratio, 4),
        "ear_right": round(frame.right.openness_ratio, 4),
        "left_open": frame.left.is_open,
        "right_open": frame.right.is_open,
        "eyes_open": frame.both_eyes_open,
        "closed_frames": state.consecutive_closed_frames,
        "closed_duration": round(state.closed_duration, 2),
        "alert_progress": round(state.alert_progress, 3),
        "tier": state.tier,
        "status": _TIER_NAMES.get(state.tier, state.tier),
        "is_alerting": state.is_alerting,
        "alert_count": stats.alert_count,
        "last_alert_time": (
            stats.last_alert_timestamp.strftime("%H:%M:%S")
            if stats.last_alert_timestamp is not None else None
        ),
        "is_cue_playing": stats.is_cue_playing,
    }


class WebDetectionSystem:
    """Web 版检测系统，支持 MJPEG 视频流推送和实时数据 API。"""

    MAX_LOG_ENTRIES = 200

    def __init__(self, config=None, detector_factory=FaceDetector, cue_player=None):
        self.config = config if config is not None else load_config()
        self._detector_factory = detector_factory
        self._cap = None
        self._thread = None
        self._running = False
        self._lock = threading.Lock()
        self._latest_frame = None
        self._latest_data = {"face_detected": False, "running": False}
        self._logs = []
        self._log_lock = threading.Lock()
        self._prev_state = {"face_detected": True, "eyes_open": True, "tier": "normal"}
        self.face_detector = None
        self.monitor = build_monitor(self.config, cue_player=cue_player)
        self.renderer = DisplayRenderer()

    def start(self):
        """启动摄像头和处理线程。"""
        if self._running:
            return True

        if self.face_detector is None:
            self.face_detector = self._detector_factory()
            self.monitor.detector = self.face_detector
        status = self.monitor.detector_status()
        if not status.ready:
            self._add_log("danger", f"人脸检测器不可用: {status.reason}")
            return False

        self._cap = cv2.VideoCapture(self.config["camera_index"])
        if not self._cap.isOpened():
            self._add_log("danger", "无法打开摄像头")
            return False

        self.monitor.reset()
        self._running = True
        self._add_log("info", "系统启动，摄像头已开启")
        self._thread = threading.Thread(target=self._process_loop, daemon=True)
        self._thread.start()
        return True

    def stop(self):
        """停止检测。"""
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        if self._cap and self._cap.isOpened():
            self._cap.release()
        self._cap = None
        self.monitor.reset()
        self._add_log("info", "系统已停止")

    def reset(self):
        """重新开始闭眼累计。"""
        self.monitor.reset()
        self._add_log("info", "监测已重新开始")

    def _process_loop(self):
        """后台处理循环，按采样间隔把帧送入监测管线。"""
        interval = self.config["frame_interval"]
        last_processed = None
        result = None

        while self._running:
            if not self._cap or not self._cap.isOpened():
                break
            ret, frame = self._cap.read()
            if not ret:
                continue

            now = time.monotonic()
            if last_processed is None or now - last_processed >= interval:
                elapsed = None if last_processed is None else now - last_processed
                result = self.monitor.process_image(frame, elapsed=elapsed)
                last_processed = now
                if result is not None:
                    self.handle_result(result)

            rendered = self.renderer.render(frame, result)
            _, jpeg = cv2.imencode(".jpg", rendered, [cv2.IMWRITE_JPEG_QUALITY, 80])
            with self._lock:
                self._latest_frame = jpeg.tobytes()

    def handle_result(self, result):
        """保存最新监测数据并记录状态变化。"""
        data = result_to_data(result)
        data["running"] = self._running
        with self._lock:
            self._latest_data = data
        self._check_state_changes(data, result.alert_triggered)

    def _add_log(self, level, message):
        """添加一条系统日志。level: info / warning / danger"""
        entry = {
            "time": datetime.datetime.now().strftime("%H:%M:%S"),
            "level": level,
            "message": message,
        }
        with self._log_lock:
            self._logs.append(entry)
            if len(self._logs) > self.MAX_LOG_ENTRIES:
                self._logs = self._logs[-self.MAX_LOG_ENTRIES:]

    def _check_state_changes(self, data, alert_triggered=False):
        """检测状态变化并记录日志。"""
        prev = self._prev_state

        if data["face_detected"] and not prev["face_detected"]:
            self._add_log("info", "检测到人脸")
        elif not data["face_detected"] and prev["face_detected"]:
            self._add_log("warning", "人脸丢失")

        if data["face_detected"]:
            if not data["eyes_open"] and prev["eyes_open"]:
                self._add_log("warning", f"闭眼检测中 (EAR={data['ear']:.2f})")
            elif data["eyes_open"] and not prev["eyes_open"]:
                self._add_log("info", "睁眼恢复")

        if data["tier"] != prev["tier"] and data["tier"] != "normal":
            self._add_log("warning", f"闭眼 {data['closed_duration']:.0f} 秒，等级: {data['status']}")

        if alert_triggered:
            self._add_log("danger", f"⚠️ 严重疲劳警告！第 {data['alert_count']} 次告警")

        self._prev_state = {
            "face_detected": data["face_detected"],
            "eyes_open": data["eyes_open"] if data["face_detected"] else prev["eyes_open"],
            "tier": data["tier"],
        }

    def get_logs(self, since=0):
        """获取日志，since 为起始索引。"""
        with self._log_lock:
            return self._logs[since:], len(self._logs)

    def get_frame(self):
        with self._lock:
            return self._latest_frame

    def get_data(self):
        with self._lock:
            data = dict(self._latest_data)
        data["running"] = self._running
        return data


# 全局检测系统实例
system = WebDetectionSystem()


# ---- Flask 路由 ----

@app.route("/api/start", methods=["POST"])
def api_start():
    ok = system.start()
    return jsonify({"success": ok, "message": "监测已启动" if ok else "无法启动监测"})


@app.route("/api/stop", methods=["POST"])
def api_stop():
    system.stop()
    return jsonify({"success": True, "message": "检测已停止"})


@app.route("/api/reset", methods=["POST"])
def api_reset():
    system.reset()
    return jsonify({"success": True, "message": "监测已重新开始"})


@app.route("/api/data")
def api_data():
    return jsonify(system.get_data())


@app.route("/api/logs")
def api_logs():
    since = request.args.get("since", 0, type=int)
    logs, total = system.get_logs(since)
    return jsonify({"logs": logs, "total": total})


@app.route("/video_feed")
def video_feed():
    def generate():
        while True:
            frame = system.get_frame()
            if frame is not None:
                yield (b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + frame + b"\r\n")
            time.sleep(0.03)
    return Response(generate(), mimetype="multipart/x-mixed-replace; boundary=frame")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.run(host="0.0.0.0", port=5000, debug=False, threaded=True)
