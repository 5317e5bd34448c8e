"""
Heuristic decision of whether a sound should be kept or discarded as a click.
"""

import logging
from typing import Optional

from .config import ClassifierParams
from .sounds import Sound

logger = logging.getLogger(__name__)


class SoundClassifier:
    """
    Keep/discard decisions based on duration, with the binned spectrum as a
    tie-breaker for borderline-short sounds.
    """

    def __init__(self, params: Optional[ClassifierParams] = None):
        self.params = params or ClassifierParams()

    def is_borderline(self, sound: Sound, frame_rate: float) -> bool:
        """
        True for sounds long enough to be real but short enough that only the
        spectrum can tell them apart from a click.
        """
        duration_s = sound.time_duration(frame_rate)
        return self.params.min_duration_s <= duration_s < self.params.max_click_duration_s

    def should_retain(self, sound: Sound, frame_rate: float, use_spectrum: bool) -> bool:
        """
        Should `sound` be kept?

        The spectrum is consulted only when `use_spectrum` is set and the
        sound already has one; without it the sound is kept.
        """
        duration_s = sound.time_duration(frame_rate)
        if duration_s < self.params.min_duration_s:
            # Too short.
            return False

        if duration_s >= self.params.max_click_duration_s:
            # Long enough that the spectrum does not matter.
            return True

        if use_spectrum and sound.binned_spectrum is not None:
            return not sound.binned_spectrum.likely_click

        return True
