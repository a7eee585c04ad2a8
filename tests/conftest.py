"""
Shared synthetic signals for analysis tests.
"""

import numpy as np
import pytest


def make_click_track(bpm, seconds=10.0, sample_rate=44100, click_length=441, amplitude=0.9):
    """
    Decaying DC clicks, one per beat, starting one beat in.

    Click starts are multiples of the beat period, so with periods that are
    multiples of the downsample factor each click begins on a block boundary.
    """
    n_samples = int(seconds * sample_rate)
    period = int(round(60.0 / bpm * sample_rate))
    click = amplitude * np.exp(-np.arange(click_length) / (click_length / 5.0))

    samples = np.zeros(n_samples, dtype=np.float32)
    for start in range(period, n_samples - click_length, period):
        samples[start:start + click_length] = click
    return samples


def make_sine(frequency, n_samples, sample_rate=44100, amplitude=0.5):
    t = np.arange(n_samples) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


@pytest.fixture
def click_track():
    return make_click_track


@pytest.fixture
def sine_wave():
    return make_sine
