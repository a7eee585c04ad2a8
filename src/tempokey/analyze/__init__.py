"""
DSP analysis stages: estimate BPM and key from a mono waveform.

- Tempo: amplitude envelope -> peak intervals -> BPM (envelope, bpm)
- Key: Hann-windowed FFT -> chroma -> template correlation (spectrum, chroma, key)
- Max 30 sec analyzed for key, whole waveform for tempo
"""

__all__ = ["envelope", "bpm", "spectrum", "chroma", "key"]
