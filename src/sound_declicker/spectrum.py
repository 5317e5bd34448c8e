"""
Spectrum of relative power per frequency.

Given a clip and a window of N frames, PowerSpectrum records the power of
N/2 frequencies, from 0 up to (just below) half the frame rate.  Element i
represents frequency i/N * frame_rate; with a 48 kHz clip and N = 1024,
element 1 is 46.875 Hz.

Power is reported in decibels relative to what a full-scale stationary
sinusoid measures at its own frequency, so such a signal reads 0 dB.
The value is the average over Hann-windowed chunks overlapping by half a
window, across every channel.

BinnedSpectrum collapses a PowerSpectrum into five decade-wide bins and
derives the click heuristic from them.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import librosa
import numpy as np
from scipy.signal import get_window

from .audio_clip import AudioClip, linear_power_to_decibels
from .config import (
    CLICK_HIGH_BIN,
    CLICK_LOW_BIN,
    DB_FLOOR,
    NUM_FREQUENCY_BINS,
    validate_window_size,
)
from .errors import InvalidArgument
from .fft import FFTWorkspace, fft

logger = logging.getLogger(__name__)


def hann_window(window_size: int) -> np.ndarray:
    """Periodic Hann weights w(i) = 0.5 * (1 - cos(2*pi*i/N))."""
    return get_window("hann", window_size, fftbins=True)


def window_scale_factor(window: np.ndarray) -> float:
    """
    Multiplier that normalizes accumulated |X|^2 so a full-scale sinusoid at
    a bin frequency reads 1.0 (0 dB): 4 / (sum of window weights)^2.
    """
    total = float(np.sum(window))
    if total > 0:
        return 4.0 / (total * total)
    return 1.0


@dataclass(frozen=True, eq=False)
class PowerSpectrum:
    """Decibel power spectrum with window_size/2 elements."""
    window_size: int
    frame_rate: float
    decibels: np.ndarray
    # Number of window x channel evaluations that contributed.
    num_evaluations: int = 0

    @classmethod
    def of_clip(
        cls,
        clip: AudioClip,
        window_size: int,
        start_frame: Optional[int] = None,
        end_frame: Optional[int] = None,
    ) -> "PowerSpectrum":
        """
        Measure `clip` between `start_frame` and `end_frame` inclusive
        (the whole clip by default).
        """
        if start_frame is None:
            start_frame = clip.first_frame_index
        if end_frame is None:
            end_frame = clip.last_frame_index
        decibels, count = power_spectrum_decibels(clip, window_size, start_frame, end_frame)
        decibels.setflags(write=False)
        return cls(
            window_size=window_size,
            frame_rate=clip.frame_rate,
            decibels=decibels,
            num_evaluations=count,
        )

    @property
    def num_elements(self) -> int:
        return self.decibels.shape[0]

    def get_decibels(self, element_index: int) -> float:
        return float(self.decibels[element_index])

    def frequency(self, element_index: int) -> float:
        """Frequency in Hz of spectrum element `element_index`."""
        return element_index / self.window_size * self.frame_rate

    @property
    def frequencies(self) -> np.ndarray:
        """Frequency in Hz of every element."""
        return librosa.fft_frequencies(sr=self.frame_rate, n_fft=self.window_size)[
            : self.num_elements
        ]


def power_spectrum_linear(
    clip: AudioClip,
    window_size: int,
    start_frame: int,
    end_frame: int,
) -> Tuple[np.ndarray, int]:
    """
    Average normalized power of each of the first window_size/2 FFT bins.

    Windows start at `start_frame` and advance by half a window; the last
    one is the last that fits entirely inside [start_frame, end_frame].
    There is no zero padding, so a range shorter than one window yields no
    evaluations.

    Returns:
        (power, count): linear power per element, and the number of
        window x channel evaluations (0 means `power` is all zeros)
    """
    validate_window_size(window_size)
    if end_frame >= start_frame and (start_frame < 0 or end_frame >= clip.num_frames):
        raise InvalidArgument(
            f"Frame range [{start_frame}, {end_frame}] is outside the clip "
            f"(0 to {clip.num_frames - 1})."
        )

    window = hann_window(window_size)
    hop = window_size // 2
    half = window_size // 2
    zeros = np.zeros(window_size)
    workspace = FFTWorkspace(window_size)

    power = np.zeros(half)
    count = 0
    window_start = start_frame
    while window_start + window_size - 1 <= end_frame:
        block = clip.samples[window_start:window_start + window_size]
        for channel in range(clip.num_channels):
            output = fft(block[:, channel] * window, zeros, forward=True, workspace=workspace)
            re = output[0:window_size:2]
            im = output[1:window_size:2]
            power += re * re + im * im
            count += 1
        window_start += hop

    if count > 0:
        power *= window_scale_factor(window) / count

    logger.debug(
        "power spectrum of frames [%d, %d], window %d: %d evaluations",
        start_frame, end_frame, window_size, count,
    )
    return power, count


def power_spectrum_decibels(
    clip: AudioClip,
    window_size: int,
    start_frame: int,
    end_frame: int,
) -> Tuple[np.ndarray, int]:
    """Same as power_spectrum_linear, with the result in decibels."""
    power, count = power_spectrum_linear(clip, window_size, start_frame, end_frame)
    if count == 0:
        return np.full(window_size // 2, DB_FLOOR), 0
    return linear_power_to_decibels(power), count


def frequency_bin(freq: float) -> Optional[int]:
    """
    Logarithmic bin of a frequency:

        [    1,     10)   -> 0
        [   10,    100)   -> 1
        [  100,   1000)   -> 2
        [ 1000,  10000)   -> 3
        [10000, 100000)   -> 4

    Anything else is discarded (None).
    """
    if freq < 1:
        return None
    index = int(math.floor(math.log10(freq)))
    if index >= NUM_FREQUENCY_BINS:
        return None
    return index


@dataclass(frozen=True)
class BinnedSpectrum:
    """Maximum decibels within each decade-wide frequency bin."""
    max_decibels_for_bin: Tuple[float, ...]

    @classmethod
    def from_power_spectrum(cls, spectrum: PowerSpectrum) -> "BinnedSpectrum":
        maxima = [DB_FLOOR] * NUM_FREQUENCY_BINS
        for i, freq in enumerate(spectrum.frequencies):
            index = frequency_bin(float(freq))
            if index is not None:
                maxima[index] = max(maxima[index], spectrum.get_decibels(i))
        return cls(tuple(maxima))

    @property
    def excess_low_db(self) -> float:
        """How much louder the 100 Hz-1 kHz bin is than the 1-10 kHz bin."""
        return self.max_decibels_for_bin[CLICK_LOW_BIN] - self.max_decibels_for_bin[CLICK_HIGH_BIN]

    @property
    def likely_click(self) -> bool:
        """
        True when the sound has more energy above 1 kHz than below.

        Speech and music carry most of their energy below 1 kHz while clicks
        are dominated by higher frequencies.  Only meaningful for sounds
        shorter than about 0.2 s.
        """
        return self.excess_low_db < 0

    @staticmethod
    def bin_upper_frequency(bin_index: int) -> float:
        return 10.0 ** (bin_index + 1)

    def format_rows(self):
        """Printable lines describing each bin."""
        return [
            f"up to {self.bin_upper_frequency(k):6.0f} Hz: {db:8.3f} dB max"
            for k, db in enumerate(self.max_decibels_for_bin)
        ]
