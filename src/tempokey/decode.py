"""
Decoder adapter: read an audio file into a mono Waveform using aubio.

Decoding itself is aubio's job; this module only streams the source hop by
hop, concatenates the (downmixed) samples and maps failures to DecodeFailure.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np

from tempokey.errors import DecodeFailure
from tempokey.waveform import Waveform

logger = logging.getLogger(__name__)

# Supported audio formats
AUDIO_FORMATS = {".mp3", ".m4a", ".flac", ".wav", ".aif", ".aiff", ".ogg"}

DEFAULT_HOP_SIZE = 4096


def load_waveform(
    audio_path: Union[str, Path],
    sample_rate: int = 0,
    hop_size: int = DEFAULT_HOP_SIZE,
) -> Waveform:
    """
    Decode an audio file to a mono Waveform.

    Args:
        audio_path: Path to audio file
        sample_rate: Resample to this rate; 0 keeps the file's native rate
        hop_size: Samples read per call

    Returns:
        Waveform with float32 samples in [-1, 1]

    Raises:
        DecodeFailure: If the file is missing, unreadable or unsupported
    """
    path = Path(audio_path)
    if not path.is_file():
        raise DecodeFailure(f"Audio file not found: {path}")

    try:
        import aubio
    except ImportError:
        raise DecodeFailure("aubio is required to decode audio files")

    try:
        source = aubio.source(str(path), samplerate=sample_rate, hop_size=hop_size)
    except (RuntimeError, ValueError, OSError) as e:
        raise DecodeFailure(f"Could not open {path.name}: {e}")

    chunks = []
    try:
        while True:
            samples, num_read = source()
            if num_read > 0:
                chunks.append(np.array(samples[:num_read], dtype=np.float32))
            if num_read < hop_size:
                break
        rate = source.samplerate
    except (RuntimeError, ValueError, OSError) as e:
        raise DecodeFailure(f"Could not decode {path.name}: {e}")
    finally:
        source.close()

    data = np.concatenate(chunks) if chunks else np.zeros(0, dtype=np.float32)
    logger.debug(f"Decoded {path.name}: {len(data)} samples @ {rate} Hz")
    return Waveform.from_samples(data, rate)
