"""
Key Detection by template correlation on a chroma vector.

- Krumhansl-Schmuckler major/minor profiles
- All 12 rotations x 2 modes scored by Pearson correlation
- Output: key label ("A minor") and Camelot notation (1A, 1B, ..., 12B)
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from tempokey.analyze.chroma import chroma_vector

logger = logging.getLogger(__name__)

MAJOR = "major"
MINOR = "minor"

# Krumhansl-Schmuckler key profiles, index 0 = tonic
MAJOR_PROFILE = (6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88)
MINOR_PROFILE = (6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17)

KEY_NAMES = ("C", "C♯", "D", "E♭", "E", "F", "F♯", "G", "A♭", "A", "B♭", "B")

# Camelot code per root (index 0 = C)
CAMELOT_MAJOR = ("8B", "3B", "10B", "5B", "12B", "7B", "2B", "9B", "4B", "11B", "6B", "1B")
CAMELOT_MINOR = ("5A", "12A", "7A", "2A", "9A", "4A", "11A", "6A", "1A", "8A", "3A", "10A")

# Accepted note spellings -> pitch class
NOTE_TO_PITCH_CLASS = {
    "C": 0, "B#": 0, "B♯": 0,
    "C#": 1, "C♯": 1, "Db": 1, "D♭": 1,
    "D": 2,
    "D#": 3, "D♯": 3, "Eb": 3, "E♭": 3,
    "E": 4, "Fb": 4, "F♭": 4,
    "F": 5, "E#": 5, "E♯": 5,
    "F#": 6, "F♯": 6, "Gb": 6, "G♭": 6,
    "G": 7,
    "G#": 8, "G♯": 8, "Ab": 8, "A♭": 8,
    "A": 9,
    "A#": 10, "A♯": 10, "Bb": 10, "B♭": 10,
    "B": 11, "Cb": 11, "C♭": 11,
}

_CAMELOT_RE = re.compile(r"^\s*(1[0-2]|[1-9])\s*([AaBb])\s*$")


@dataclass(frozen=True)
class KeyEstimate:
    """Winning (root, mode) candidate and its correlation score."""

    root: int
    mode: str
    correlation: float

    @property
    def label(self) -> str:
        return f"{KEY_NAMES[self.root]} {self.mode}"

    @property
    def camelot(self) -> str:
        table = CAMELOT_MAJOR if self.mode == MAJOR else CAMELOT_MINOR
        return table[self.root]


def correlation(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Pearson correlation of two equal-length vectors.

    Returns 0.0 when either vector has zero variance.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    mean_a = a.mean()
    mean_b = b.mean()
    da = a - mean_a
    db = b - mean_b
    std_a = np.sqrt((da * da).mean())
    std_b = np.sqrt((db * db).mean())

    # Rounding noise on a constant vector counts as zero variance
    if std_a <= 1e-12 * max(1.0, abs(mean_a)) or std_b <= 1e-12 * max(1.0, abs(mean_b)):
        return 0.0

    return float((da * db).mean() / (std_a * std_b))


def rotate(chroma: Sequence[float], root: int) -> np.ndarray:
    """Rotate chroma so that index 0 holds the energy of `root`."""
    return np.roll(np.asarray(chroma, dtype=np.float64), -root)


def estimate_key(chroma: Sequence[float]) -> Optional[KeyEstimate]:
    """
    Best-correlated key over all 24 (root, mode) candidates.

    Candidates are visited root 0..11, major before minor, and only a
    strictly greater score replaces the current best, so ties resolve to the
    first candidate visited.

    Args:
        chroma: 12-element pitch-class energies (index 0 = C)

    Returns:
        KeyEstimate, or None if the chroma vector carries no energy
    """
    chroma = np.asarray(chroma, dtype=np.float64)
    if chroma.shape != (12,):
        raise ValueError(f"Chroma vector must have 12 elements, got shape {chroma.shape}")
    if not np.any(chroma):
        logger.debug("Empty chroma vector, key not detected")
        return None

    best: Optional[KeyEstimate] = None
    best_correlation = -np.inf

    for root in range(12):
        rotated = rotate(chroma, root)
        for mode, profile in ((MAJOR, MAJOR_PROFILE), (MINOR, MINOR_PROFILE)):
            score = correlation(rotated, profile)
            if score > best_correlation:
                best_correlation = score
                best = KeyEstimate(root=root, mode=mode, correlation=score)

    logger.debug(f"Best key: {best.label} ({best.camelot}), r={best.correlation:.3f}")
    return best


def detect_key(samples: np.ndarray, sample_rate: int, config: Optional[dict] = None) -> Optional[KeyEstimate]:
    """
    Detect musical key from a mono waveform.

    Args:
        samples: Mono samples in [-1, 1]
        sample_rate: Sample rate (Hz)
        config: [key] config section

    Returns:
        KeyEstimate or None if no tonal energy was found
    """
    return estimate_key(chroma_vector(samples, sample_rate, config))


def parse_camelot(code: str) -> Tuple[int, str]:
    """
    Split a Camelot code into wheel number and letter.

    Args:
        code: Camelot code (e.g., "8B", "12a")

    Returns:
        (number 1-12, letter "A" or "B")

    Raises:
        ValueError: If code is not a valid Camelot code
    """
    match = _CAMELOT_RE.match(code or "")
    if not match:
        raise ValueError(f"Invalid Camelot code: {code!r}")
    return int(match.group(1)), match.group(2).upper()


def parse_key(label: str) -> Tuple[int, str]:
    """
    Parse a key label such as "A minor", "C# major" or "Bbm" into (root, mode).

    Raises:
        ValueError: If the label cannot be parsed
    """
    text = (label or "").strip()
    parts = text.split()
    if len(parts) == 2:
        note, mode = parts[0], parts[1].lower()
    elif len(parts) == 1 and text.endswith("m") and text[:-1] in NOTE_TO_PITCH_CLASS:
        note, mode = text[:-1], MINOR
    else:
        note, mode = text, MAJOR

    if mode in ("maj", "major"):
        mode = MAJOR
    elif mode in ("min", "minor"):
        mode = MINOR
    else:
        raise ValueError(f"Unknown mode in key label: {label!r}")

    if note not in NOTE_TO_PITCH_CLASS:
        raise ValueError(f"Unknown note in key label: {label!r}")
    return NOTE_TO_PITCH_CLASS[note], mode


def key_to_camelot(label: str) -> str:
    """Camelot code for a key label (e.g. "A minor" -> "8A")."""
    root, mode = parse_key(label)
    return KeyEstimate(root=root, mode=mode, correlation=0.0).camelot


def camelot_to_key(code: str) -> str:
    """Key label for a Camelot code (e.g. "8A" -> "A minor")."""
    number, letter = parse_camelot(code)
    table = CAMELOT_MAJOR if letter == "B" else CAMELOT_MINOR
    root = table.index(f"{number}{letter}")
    return f"{KEY_NAMES[root]} {MAJOR if letter == 'B' else MINOR}"
