"""
Click removal pipeline.

Implements:
- Segmentation of the clip into discrete sounds by loudness
- Optional per-sound spectral analysis of borderline-short sounds
- Keep/discard classification
- Fading out everything that is not a kept sound
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .audio_clip import AudioClip
from .classifier import SoundClassifier
from .config import DEFAULT_WINDOW_SIZE, ClassifierParams, PartitionParams, Settings, validate_window_size
from .declick import declick
from .errors import InvalidArgument
from .sounds import Sound, find_sounds

logger = logging.getLogger(__name__)


class Declicker:
    """
    Removes clicks from a recording by silencing everything that is not a
    retained sound.

    Features:
    - Loudness-threshold segmentation with a closeness window
    - Duration-based classification
    - Spectral click heuristic for sounds too short to judge by duration
    - Smooth fades around every retained sound
    """

    def __init__(
        self,
        partition: Optional[PartitionParams] = None,
        classifier: Optional[ClassifierParams] = None,
        window_size: int = DEFAULT_WINDOW_SIZE,
        use_spectrum: bool = True,
    ):
        """
        Initialize the declicker with parameters.

        Args:
            partition: Loudness and closeness thresholds for segmentation
            classifier: Duration limits for keeping sounds
            window_size: FFT window for per-sound spectra (power of two)
            use_spectrum: Consult the spectrum for borderline-short sounds
        """
        self.partition = partition or PartitionParams()
        self.classifier = SoundClassifier(classifier)
        self.window_size = validate_window_size(window_size)
        self.use_spectrum = use_spectrum

        # Internal state
        self._clip: Optional[AudioClip] = None
        self._retained: Optional[List[Sound]] = None

    @classmethod
    def from_settings(cls, settings: Settings, use_spectrum: bool = True) -> "Declicker":
        return cls(
            partition=settings.partition,
            classifier=settings.classifier,
            window_size=settings.window_size,
            use_spectrum=use_spectrum,
        )

    def load_audio(self, file_path: Union[str, Path]) -> AudioClip:
        """Load an audio file for processing."""
        return self.set_clip(AudioClip.load(file_path))

    def set_clip(self, clip: AudioClip) -> AudioClip:
        self._clip = clip
        self._retained = None
        return clip

    @property
    def clip(self) -> Optional[AudioClip]:
        return self._clip

    def _require_clip(self) -> AudioClip:
        if self._clip is None:
            raise InvalidArgument("No audio loaded. Call load_audio() first.")
        return self._clip

    def closeness_frames(self) -> int:
        return self.partition.closeness_frames(self._require_clip().frame_rate)

    def find_sounds(self) -> List[Sound]:
        """Segment the loaded clip into sounds."""
        return find_sounds(self._require_clip(), self.partition)

    def classify(self, sounds: List[Sound]) -> List[Tuple[Sound, bool]]:
        """
        Decide which sounds to keep.

        When spectral classification is on, each borderline sound gets its
        spectrum measured (once) before the decision.

        Returns:
            (sound, retained) pairs in the original order
        """
        clip = self._require_clip()
        decisions = []
        for sound in sounds:
            if self.use_spectrum and self.classifier.is_borderline(sound, clip.frame_rate):
                sound.compute_spectrum(clip, self.window_size)
            retained = self.classifier.should_retain(sound, clip.frame_rate, self.use_spectrum)
            logger.debug(
                "sound [%d, %d] %.4f s: %s",
                sound.start_frame, sound.end_frame,
                sound.time_duration(clip.frame_rate),
                "keep" if retained else "drop",
            )
            decisions.append((sound, retained))
        return decisions

    def retained_sounds(self) -> List[Sound]:
        """Find and classify sounds, returning only the ones to keep."""
        sounds = self.find_sounds()
        retained = [sound for sound, keep in self.classify(sounds) if keep]
        logger.info("retaining %d of %d sounds", len(retained), len(sounds))
        return retained

    def process(self) -> List[Sound]:
        """
        Run the full pipeline, modifying the loaded clip in place.

        Returns:
            The retained sounds
        """
        clip = self._require_clip()
        # Classification (and any spectra) must finish before samples change.
        retained = self.retained_sounds()
        declick(clip, retained, self.closeness_frames())
        self._retained = retained
        return retained

    def get_retained(self) -> Optional[List[Sound]]:
        return self._retained

    def save(self, output_path: Union[str, Path]) -> str:
        """Write the (processed) clip in the format it was read in."""
        return self._require_clip().save(output_path)

    def update_parameters(
        self,
        loudness_threshold_db: Optional[float] = None,
        closeness_threshold_s: Optional[float] = None,
        min_duration_s: Optional[float] = None,
        max_click_duration_s: Optional[float] = None,
        window_size: Optional[int] = None,
        use_spectrum: Optional[bool] = None,
    ):
        """Update declicker parameters."""
        settings = Settings(
            partition=self.partition,
            classifier=self.classifier.params,
            window_size=self.window_size,
        ).update(
            loudness_threshold_db=loudness_threshold_db,
            closeness_threshold_s=closeness_threshold_s,
            min_duration_s=min_duration_s,
            max_click_duration_s=max_click_duration_s,
            window_size=window_size,
        )
        self.partition = settings.partition
        self.classifier = SoundClassifier(settings.classifier)
        self.window_size = settings.window_size
        if use_spectrum is not None:
            self.use_spectrum = use_spectrum
