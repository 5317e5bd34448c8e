import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure local src/ is importable when running tests directly from the repo
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sound_declicker.audio_clip import AudioClip
from sound_declicker.config import DB_FLOOR, PartitionParams
from sound_declicker.errors import InvalidArgument
from sound_declicker.sounds import Sound, find_sounds, find_sounds_in_loudness


def _loudness(num_frames, loud):
    """Loudness series at the floor except for {frame: dB} entries."""
    series = np.full(num_frames, DB_FLOOR)
    for frame, db in loud.items():
        series[frame] = db
    return series


def _bounds(sounds):
    return [(s.start_frame, s.end_frame) for s in sounds]


def test_no_loud_frames_means_no_sounds():
    assert find_sounds_in_loudness(_loudness(100, {}), -40.0, 10) == []
    assert find_sounds_in_loudness(np.array([]), -40.0, 10) == []


def test_frames_within_closeness_merge():
    """A gap of exactly the closeness threshold keeps one sound."""
    sounds = find_sounds_in_loudness(_loudness(100, {10: -10.0, 20: -10.0}), -40.0, 10)
    assert _bounds(sounds) == [(10, 20)]


def test_frames_beyond_closeness_split():
    sounds = find_sounds_in_loudness(_loudness(100, {10: -10.0, 21: -10.0}), -40.0, 10)
    assert _bounds(sounds) == [(10, 10), (21, 21)]


def test_threshold_is_strict():
    """A frame exactly at the threshold is not loud."""
    sounds = find_sounds_in_loudness(_loudness(50, {5: -40.0, 30: -39.9}), -40.0, 3)
    assert _bounds(sounds) == [(30, 30)]


def test_quiet_frames_do_not_end_a_sound():
    """Loud frames chained by closeness span a long quiet-filled stretch."""
    loud = {frame: -20.0 for frame in range(0, 200, 8)}
    sounds = find_sounds_in_loudness(_loudness(400, loud), -40.0, 8)
    assert _bounds(sounds) == [(0, 192)]


def test_max_loudness_is_tracked():
    sounds = find_sounds_in_loudness(
        _loudness(100, {10: -30.0, 12: -5.0, 14: -25.0, 60: -35.0}), -40.0, 5
    )
    assert _bounds(sounds) == [(10, 14), (60, 60)]
    assert sounds[0].max_loudness_db == pytest.approx(-5.0)
    assert sounds[1].max_loudness_db == pytest.approx(-35.0)


def test_sounds_are_ordered_and_disjoint():
    rng = np.random.default_rng(7)
    loudness = rng.uniform(-80.0, 0.0, size=2000)
    sounds = find_sounds_in_loudness(loudness, -10.0, 4)
    assert sounds
    for earlier, later in zip(sounds, sounds[1:]):
        assert earlier.end_frame < later.start_frame
        assert later.start_frame - earlier.end_frame > 4


def test_zero_closeness_never_merges():
    sounds = find_sounds_in_loudness(_loudness(10, {2: -1.0, 3: -1.0}), -40.0, 0)
    assert _bounds(sounds) == [(2, 2), (3, 3)]


def test_find_sounds_uses_loudest_channel():
    """A frame is loud when any channel is."""
    samples = np.zeros((1000, 2))
    samples[100, 0] = 0.5
    samples[150, 1] = -0.5
    samples[900, 1] = 0.001  # -60 dB, below the threshold
    clip = AudioClip(samples, 1000)

    sounds = find_sounds(clip, PartitionParams(loudness_threshold_db=-40.0, closeness_threshold_s=0.05))

    assert _bounds(sounds) == [(100, 150)]
    assert sounds[0].max_loudness_db == pytest.approx(-6.0206, abs=1e-3)


def test_find_sounds_truncates_closeness_to_frames():
    """0.0159 s at 1 kHz is 15 frames, not 16."""
    samples = np.zeros(200)
    samples[[10, 26]] = 0.9
    clip = AudioClip(samples, 1000)
    sounds = find_sounds(clip, PartitionParams(closeness_threshold_s=0.0159))
    assert _bounds(sounds) == [(10, 10), (26, 26)]


def test_sound_geometry():
    sound = Sound(100, 199, -12.0)
    assert sound.frame_duration == 100
    assert sound.time_duration(1000) == pytest.approx(0.1)
    assert sound.distance_to_endpoint(150) == 0
    assert sound.distance_to_endpoint(100) == 0
    assert sound.distance_to_endpoint(90) == 10
    assert sound.distance_to_endpoint(205) == 6
    assert not sound.has_spectrum


def test_single_frame_sound():
    sound = Sound(5, 5, -3.0)
    assert sound.frame_duration == 1


def test_extend():
    sound = Sound(0, 0, -30.0)
    sound.extend(10, -10.0)
    sound.extend(20, -20.0)
    assert (sound.end_frame, sound.max_loudness_db) == (20, -10.0)
    with pytest.raises(InvalidArgument):
        sound.extend(5, 0.0)
    assert sound.end_frame == 20


def test_sound_must_not_end_before_it_starts():
    with pytest.raises(InvalidArgument):
        Sound(5, 3, -1.0)


def test_compute_spectrum_is_lazy():
    n = np.arange(4096)
    clip = AudioClip(0.5 * np.sin(2 * np.pi * 4000 * n / 16000), 16000)
    sound = Sound(0, 4095, -6.0)

    binned = sound.compute_spectrum(clip, 256)
    assert sound.has_spectrum
    assert sound.power_spectrum.window_size == 256
    assert binned.likely_click

    # A second call reuses the first measurement.
    clip.samples[:] = 0.0
    assert sound.compute_spectrum(clip, 1024) is binned
    assert sound.power_spectrum.window_size == 256


def test_describe():
    sound = Sound(0, 999, -6.5)
    lines = sound.describe(1000)
    assert lines == ["sound [0, 999]: maxLoud = -6.500 dB, duration = 1.0000 s"]

    clip = AudioClip(np.zeros(2048), 1000)
    sound.compute_spectrum(clip, 256)
    lines = sound.describe(1000)
    assert lines[1] == "  binned frequency distribution:"
    assert len(lines) == 1 + 1 + 5 + 2
    assert lines[-2] == "  excessLow: 0.000 dB"
    assert lines[-1] == "  likelyClick: false"
