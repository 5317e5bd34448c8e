"""
Silence everything except the retained sounds.

Frames inside a sound, or within half the closeness threshold of one of its
endpoints, keep full amplitude.  Frames further than the closeness threshold
from every sound are silenced.  In between, amplitude ramps linearly, so
each sound fades in and out over half the closeness threshold.
"""

import logging
from typing import Iterable, Optional

import numpy as np

from .audio_clip import AudioClip
from .errors import InvalidArgument
from .sounds import Sound

logger = logging.getLogger(__name__)


def amplification_for_distance(distance: int, closeness_threshold_frames: int) -> float:
    """Gain for a frame `distance` frames away from the nearest retained sound."""
    if distance == 0 or distance < closeness_threshold_frames / 2:
        return 1.0
    if distance > closeness_threshold_frames:
        return 0.0
    return (closeness_threshold_frames - distance) * 2 / closeness_threshold_frames


def _next_is_closer(current: Optional[Sound], upcoming: Optional[Sound], frame: int) -> bool:
    return (
        current is not None
        and upcoming is not None
        and current.distance_to_endpoint(frame) > upcoming.distance_to_endpoint(frame)
    )


def amplification_envelope(
    num_frames: int,
    retained: Iterable[Sound],
    closeness_threshold_frames: int,
) -> np.ndarray:
    """
    Per-frame gain for a clip of `num_frames` frames.

    Walks the frames once while tracking the closest retained sound with
    two cursors, current and next, advancing when next becomes closer.

    Args:
        num_frames: Clip length in frames
        retained: Retained sounds, ordered by start frame
        closeness_threshold_frames: Fade distance in frames

    Returns:
        Array of num_frames gains in [0, 1]
    """
    if closeness_threshold_frames < 0:
        raise InvalidArgument(
            f"Closeness threshold must not be negative, got {closeness_threshold_frames}."
        )

    sound_iter = iter(retained)
    current = next(sound_iter, None)
    upcoming = next(sound_iter, None)

    envelope = np.zeros(num_frames)
    for frame in range(num_frames):
        if _next_is_closer(current, upcoming, frame):
            current = upcoming
            upcoming = next(sound_iter, None)

        if current is None:
            # No sounds at all.
            break

        envelope[frame] = amplification_for_distance(
            current.distance_to_endpoint(frame), closeness_threshold_frames
        )

    return envelope


def declick(clip: AudioClip, retained: Iterable[Sound], closeness_threshold_frames: int) -> np.ndarray:
    """
    Scale every sample of `clip` in place by its frame's gain.

    All spectra must already have been computed, since they are measured on
    the unmodified samples.

    Returns:
        The envelope that was applied
    """
    envelope = amplification_envelope(clip.num_frames, retained, closeness_threshold_frames)
    clip.samples *= envelope[:, np.newaxis]
    logger.debug(
        "declicked %d frames, %d fully silenced",
        clip.num_frames, int(np.count_nonzero(envelope == 0.0)),
    )
    return envelope
