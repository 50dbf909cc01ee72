"""监测管线异常类型"""


class DrowsinessError(Exception):
    """所有监测相关异常的基类"""


class MissingLandmarkError(DrowsinessError, KeyError):
    """关键点集合中缺少某个眼部关键点索引"""

    def __init__(self, index: int):
        super().__init__(index)
        self.index = index

    def __str__(self):
        return f"缺少关键点索引: {self.index}"


class DetectorUnavailableError(DrowsinessError):
    """人脸检测器未就绪或单帧检测失败"""


class CuePlaybackError(DrowsinessError):
    """告警提示音播放失败"""
