"""
Sound Declicker - remove clicks from recordings of speech and other sounds.

This package finds discrete sounds (loud transients separated by quiet
gaps), classifies short ones as real sounds or spurious clicks using a
spectral heuristic, and fades out everything that is not a kept sound.
Its building blocks are usable on their own:
- a power-of-two FFT
- a Hann-windowed power spectrum estimator
- a decade-binned spectrum with a click heuristic
- the loudness segmenter, classifier and declick transform
"""

__version__ = "0.1.0"

from .audio_clip import AudioClip, linear_amplitude_to_decibels, linear_power_to_decibels
from .classifier import SoundClassifier
from .config import ClassifierParams, PartitionParams, Settings, load_settings, load_settings_file
from .declick import amplification_envelope, declick
from .declicker import Declicker
from .errors import (
    InvalidArgument,
    InvalidTransformSize,
    IOFailure,
    SoundEditError,
    UnknownCommand,
)
from .fft import FFTWorkspace, fft, ifft
from .sounds import Sound, find_sounds
from .spectrum import BinnedSpectrum, PowerSpectrum

__all__ = [
    "AudioClip",
    "BinnedSpectrum",
    "ClassifierParams",
    "Declicker",
    "FFTWorkspace",
    "IOFailure",
    "InvalidArgument",
    "InvalidTransformSize",
    "PartitionParams",
    "PowerSpectrum",
    "Settings",
    "Sound",
    "SoundClassifier",
    "SoundEditError",
    "UnknownCommand",
    "amplification_envelope",
    "declick",
    "fft",
    "find_sounds",
    "ifft",
    "linear_amplitude_to_decibels",
    "linear_power_to_decibels",
    "load_settings",
    "load_settings_file",
    "__version__",
]
