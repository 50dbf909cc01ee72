"""告警提示音模块，合成衰减正弦提示音并通过 pygame mixer 播放"""

import logging

import numpy as np

from models.exceptions import CuePlaybackError

logger = logging.getLogger(__name__)

TONE_FREQUENCY = 800.0
TONE_START_GAIN = 0.3
TONE_END_GAIN = 0.01
SAMPLE_RATE = 44100


def synthesize_tone(
    duration: float,
    frequency: float = TONE_FREQUENCY,
    sample_rate: int = SAMPLE_RATE,
    start_gain: float = TONE_START_GAIN,
    end_gain: float = TONE_END_GAIN,
) -> np.ndarray:
    """
    生成单声道 16 位正弦提示音，增益从 start_gain 指数衰减到 end_gain。

    Returns:
        int16 数组，长度为 duration * sample_rate
    """
    n_samples = max(1, int(duration * sample_rate))
    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    envelope = start_gain * (end_gain / start_gain) ** (t / max(duration, 1e-6))
    wave = np.sin(2.0 * np.pi * frequency * t) * envelope
    return (wave * np.iinfo(np.int16).max).astype(np.int16)


class ToneCuePlayer:
    """告警提示音播放器，调用即异步播放一次，不阻塞调用方"""

    def __init__(self, frequency: float = TONE_FREQUENCY, volume: float = 1.0):
        self.frequency = frequency
        self.volume = volume
        self._pygame = None

    def _ensure_mixer(self):
        """延迟初始化 pygame mixer"""
        if self._pygame is not None:
            return self._pygame
        try:
            import pygame

            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=SAMPLE_RATE, size=-16, channels=1)
        except ImportError as e:
            raise CuePlaybackError("pygame 未安装，无法播放提示音") from e
        except Exception as e:
            raise CuePlaybackError(f"音频设备初始化失败: {e}") from e

        self._pygame = pygame
        return pygame

    def __call__(self, duration: float) -> None:
        pygame = self._ensure_mixer()
        sample_rate, _, channels = pygame.mixer.get_init()
        samples = synthesize_tone(duration, self.frequency, sample_rate)
        if channels > 1:
            samples = np.repeat(samples[:, np.newaxis], channels, axis=1)

        try:
            sound = pygame.mixer.Sound(buffer=np.ascontiguousarray(samples).tobytes())
            sound.set_volume(self.volume)
            sound.play()
        except Exception as e:
            raise CuePlaybackError(f"提示音播放失败: {e}") from e

        logger.debug("提示音已播放 (%.0f Hz, %.1fs)", self.frequency, duration)

    def close(self):
        """释放音频设备"""
        if self._pygame is not None:
            self._pygame.mixer.quit()
            self._pygame = None
