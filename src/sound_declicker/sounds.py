"""
Discrete sounds within a clip, and the segmenter that finds them.

A sound is a stretch of audio anchored by "loud" frames (louder than a
threshold) where consecutive loud frames are no further apart than a
closeness threshold.  Quiet frames in between belong to the sound; they
never end it on their own.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .audio_clip import AudioClip
from .config import PartitionParams
from .errors import InvalidArgument
from .spectrum import BinnedSpectrum, PowerSpectrum

logger = logging.getLogger(__name__)


@dataclass
class Sound:
    """A loud segment of a clip, with frame bounds inclusive."""
    start_frame: int
    end_frame: int
    max_loudness_db: float
    # Filled in by compute_spectrum(), only when spectral
    # classification is requested.
    power_spectrum: Optional[PowerSpectrum] = None
    binned_spectrum: Optional[BinnedSpectrum] = None

    def __post_init__(self):
        if self.start_frame > self.end_frame:
            raise InvalidArgument(
                f"Sound ends before it starts: [{self.start_frame}, {self.end_frame}]"
            )

    @property
    def frame_duration(self) -> int:
        """Number of frames in the sound.  Always positive."""
        return self.end_frame - self.start_frame + 1

    def time_duration(self, frame_rate: float) -> float:
        """Duration in seconds."""
        return self.frame_duration / frame_rate

    def extend(self, end_frame: int, loudness_db: float):
        """Extend the sound to `end_frame`, folding in its loudness."""
        if end_frame < self.end_frame:
            raise InvalidArgument(
                f"Cannot extend sound ending at {self.end_frame} back to {end_frame}."
            )
        self.end_frame = end_frame
        self.max_loudness_db = max(self.max_loudness_db, loudness_db)

    def distance_to_endpoint(self, frame: int) -> int:
        """Frames from `frame` to the nearer endpoint; 0 inside the sound."""
        if frame < self.start_frame:
            return self.start_frame - frame
        if frame > self.end_frame:
            return frame - self.end_frame
        return 0

    @property
    def has_spectrum(self) -> bool:
        return self.binned_spectrum is not None

    def compute_spectrum(self, clip: AudioClip, window_size: int) -> BinnedSpectrum:
        """
        Measure the sound's spectrum from `clip` if not already done.

        Must run before the clip's samples are modified.
        """
        if self.binned_spectrum is None:
            self.power_spectrum = PowerSpectrum.of_clip(
                clip, window_size, self.start_frame, self.end_frame
            )
            self.binned_spectrum = BinnedSpectrum.from_power_spectrum(self.power_spectrum)
        return self.binned_spectrum

    def describe(self, frame_rate: float) -> List[str]:
        """Printable description, including spectrum details when measured."""
        lines = [
            f"sound [{self.start_frame}, {self.end_frame}]: "
            f"maxLoud = {self.max_loudness_db:.3f} dB, "
            f"duration = {self.time_duration(frame_rate):.4f} s"
        ]
        if self.binned_spectrum is not None:
            lines.append("  binned frequency distribution:")
            lines.extend(f"    {row}" for row in self.binned_spectrum.format_rows())
            lines.append(f"  excessLow: {self.binned_spectrum.excess_low_db:.3f} dB")
            lines.append(f"  likelyClick: {str(self.binned_spectrum.likely_click).lower()}")
        return lines


def find_sounds_in_loudness(
    loudness_db: np.ndarray,
    loudness_threshold_db: float,
    closeness_threshold_frames: int,
) -> List[Sound]:
    """
    Segment a per-frame loudness series into sounds.

    Single forward pass.  A loud frame (strictly above the threshold)
    extends the open sound when it is within `closeness_threshold_frames`
    of that sound's end; otherwise the open sound is emitted and a new one
    starts.  Quiet frames change nothing, so only loud frames are visited.

    Returns:
        Sounds ordered by start frame, mutually non-overlapping
    """
    sounds: List[Sound] = []
    current: Optional[Sound] = None

    loud_frames = np.flatnonzero(np.asarray(loudness_db) > loudness_threshold_db)
    for frame in loud_frames:
        frame = int(frame)
        db = float(loudness_db[frame])
        if current is not None and frame - current.end_frame <= closeness_threshold_frames:
            current.extend(frame, db)
        else:
            if current is not None:
                sounds.append(current)
            current = Sound(frame, frame, db)

    if current is not None:
        sounds.append(current)

    return sounds


def find_sounds(clip: AudioClip, params: Optional[PartitionParams] = None) -> List[Sound]:
    """
    Identify the discrete sounds in `clip`.

    Frame loudness is the loudest channel's amplitude in decibels.

    Args:
        clip: Audio to analyze
        params: Loudness and closeness thresholds (defaults if omitted)

    Returns:
        Ordered list of non-overlapping sounds
    """
    params = params or PartitionParams()
    closeness_frames = params.closeness_frames(clip.frame_rate)
    sounds = find_sounds_in_loudness(
        clip.frame_loudness_db(),
        params.loudness_threshold_db,
        closeness_frames,
    )
    logger.info(
        "found %d sounds (loudness > %.1f dB, closeness %d frames)",
        len(sounds), params.loudness_threshold_db, closeness_frames,
    )
    return sounds
