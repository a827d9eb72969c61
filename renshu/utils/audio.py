import base64
import binascii

import numpy as np

from renshu.models import AudioBuffer

DEFAULT_SAMPLE_RATE = 24000
DEFAULT_CHANNELS = 1
_PCM_SCALE = 32768.0


class AudioDecodeError(ValueError):
    pass


def decode_base64(data):
    if isinstance(data, str):
        data = data.strip()
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AudioDecodeError(f"invalid base64 audio: {e}") from e


def decode_audio_data(data, sample_rate=DEFAULT_SAMPLE_RATE, num_channels=DEFAULT_CHANNELS):
    """Turn little-endian 16-bit PCM into a normalized float buffer.

    Samples are interleaved by channel; each is divided by 32768 so values
    fall in [-1.0, 1.0). Odd byte counts and sample counts that don't divide
    evenly into frames are rejected rather than truncated.
    """
    if num_channels < 1:
        raise AudioDecodeError(f"num_channels must be >= 1, got {num_channels}")
    if sample_rate <= 0:
        raise AudioDecodeError(f"sample_rate must be positive, got {sample_rate}")
    if len(data) % 2:
        raise AudioDecodeError(f"PCM16 payload has odd length {len(data)}")
    samples = np.frombuffer(bytes(data), dtype="<i2")
    if samples.size % num_channels:
        raise AudioDecodeError(
            f"{samples.size} samples do not divide into {num_channels} channels"
        )
    frames = samples.reshape(-1, num_channels)
    channels = (frames.T.astype(np.float32) / _PCM_SCALE).copy()
    return AudioBuffer(sample_rate=sample_rate, channels=channels)


def encode_float32(buffer):
    payload = buffer.channels.astype("<f4").tobytes()
    return base64.b64encode(payload).decode("ascii")
