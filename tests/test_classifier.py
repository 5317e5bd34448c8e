import sys
from pathlib import Path

import pytest

# Ensure local src/ is importable when running tests directly from the repo
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sound_declicker.classifier import SoundClassifier
from sound_declicker.config import DB_FLOOR, ClassifierParams
from sound_declicker.sounds import Sound
from sound_declicker.spectrum import BinnedSpectrum

RATE = 1000

CLICK = BinnedSpectrum((DB_FLOOR, DB_FLOOR, -50.0, -20.0, DB_FLOOR))
VOICE = BinnedSpectrum((DB_FLOOR, -60.0, -10.0, -30.0, DB_FLOOR))


def _sound(num_frames, spectrum=None):
    return Sound(0, num_frames - 1, -10.0, binned_spectrum=spectrum)


@pytest.fixture
def classifier():
    return SoundClassifier(ClassifierParams(min_duration_s=0.09, max_click_duration_s=0.2))


def test_too_short_is_dropped(classifier):
    assert not classifier.should_retain(_sound(89), RATE, use_spectrum=False)
    assert not classifier.should_retain(_sound(89, VOICE), RATE, use_spectrum=True)


def test_minimum_duration_is_inclusive(classifier):
    assert classifier.should_retain(_sound(90), RATE, use_spectrum=False)


def test_long_sounds_ignore_the_spectrum(classifier):
    assert classifier.should_retain(_sound(200, CLICK), RATE, use_spectrum=True)
    assert classifier.should_retain(_sound(5000, CLICK), RATE, use_spectrum=True)


def test_borderline_click_depends_on_spectrum(classifier):
    sound = _sound(150, CLICK)
    assert not classifier.should_retain(sound, RATE, use_spectrum=True)
    assert classifier.should_retain(sound, RATE, use_spectrum=False)


def test_borderline_voice_is_kept(classifier):
    assert classifier.should_retain(_sound(150, VOICE), RATE, use_spectrum=True)


def test_borderline_without_spectrum_is_kept(classifier):
    assert classifier.should_retain(_sound(150), RATE, use_spectrum=True)


def test_is_borderline(classifier):
    assert not classifier.is_borderline(_sound(89), RATE)
    assert classifier.is_borderline(_sound(90), RATE)
    assert classifier.is_borderline(_sound(199), RATE)
    assert not classifier.is_borderline(_sound(200), RATE)


def test_default_parameters():
    params = SoundClassifier().params
    assert params.min_duration_s == 0.09
    assert params.max_click_duration_s == 0.2
