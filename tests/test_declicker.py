import sys
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

# Ensure local src/ is importable when running tests directly from the repo
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sound_declicker import Declicker, Settings
from sound_declicker.audio_clip import AudioClip
from sound_declicker.config import ClassifierParams, PartitionParams
from sound_declicker.errors import InvalidArgument, InvalidTransformSize


def _tone(freq, duration, sr, amplitude=0.5):
    t = np.arange(int(round(duration * sr))) / sr
    return amplitude * np.sin(2 * np.pi * freq * t)


def _tone_with_click(sr=8000):
    """One second of tone in a two-second clip, plus an isolated click."""
    audio = np.zeros(2 * sr)
    audio[sr // 2:sr // 2 + sr] = _tone(440, 1.0, sr)
    audio[100] = 0.9
    return audio


def _two_bursts(sr=16000):
    """A 300 Hz burst at 0.2 s and a 3 kHz burst at 1.0 s, each 0.15 s long."""
    audio = np.zeros(int(1.5 * sr))
    burst = int(0.15 * sr)
    low_start, high_start = int(0.2 * sr), int(1.0 * sr)
    audio[low_start:low_start + burst] = _tone(300, 0.15, sr)
    audio[high_start:high_start + burst] = _tone(3000, 0.15, sr)
    return audio, (low_start, low_start + burst), (high_start, high_start + burst)


def test_isolated_click_is_silenced():
    sr = 8000
    audio = _tone_with_click(sr)
    declicker = Declicker()
    declicker.set_clip(AudioClip(audio.copy(), sr))

    retained = declicker.process()

    assert len(retained) == 1
    assert 4000 <= retained[0].start_frame < 4010
    samples = declicker.clip.samples[:, 0]
    assert samples[100] == 0.0
    np.testing.assert_array_equal(samples[4100:11900], audio[4100:11900])
    assert declicker.get_retained() == retained


def test_short_high_pitched_sound_is_dropped_with_spectrum():
    sr = 16000
    audio, (low_start, low_end), (high_start, high_end) = _two_bursts(sr)
    declicker = Declicker(use_spectrum=True)
    declicker.set_clip(AudioClip(audio.copy(), sr))

    decisions = declicker.classify(declicker.find_sounds())

    assert [retained for _, retained in decisions] == [True, False]
    low, high = (sound for sound, _ in decisions)
    assert low.has_spectrum and not low.binned_spectrum.likely_click
    assert high.has_spectrum and high.binned_spectrum.likely_click

    declicker.process()
    samples = declicker.clip.samples[:, 0]
    assert np.max(np.abs(samples[high_start:high_end])) == 0.0
    np.testing.assert_array_equal(samples[low_start:low_end], audio[low_start:low_end])


def test_without_spectrum_both_bursts_are_kept():
    sr = 16000
    audio, _, (high_start, high_end) = _two_bursts(sr)
    declicker = Declicker(use_spectrum=False)
    declicker.set_clip(AudioClip(audio.copy(), sr))

    retained = declicker.process()

    assert len(retained) == 2
    assert not any(sound.has_spectrum for sound in retained)
    samples = declicker.clip.samples[:, 0]
    np.testing.assert_array_equal(samples[high_start:high_end], audio[high_start:high_end])


def test_process_file_round_trip(tmp_path):
    sr = 8000
    input_path = tmp_path / "input.wav"
    output_path = tmp_path / "output.wav"
    sf.write(str(input_path), _tone_with_click(sr), sr, subtype="PCM_16")

    declicker = Declicker()
    declicker.load_audio(input_path)
    declicker.process()
    assert declicker.save(output_path) == str(output_path)

    out, out_sr = sf.read(str(output_path))
    assert out_sr == sr
    assert sf.info(str(output_path)).subtype == "PCM_16"
    assert out[100] == 0.0
    assert np.max(np.abs(out[5000:11000])) > 0.45


def test_requires_loaded_audio(tmp_path):
    declicker = Declicker()
    with pytest.raises(InvalidArgument):
        declicker.process()
    with pytest.raises(InvalidArgument):
        declicker.save(tmp_path / "out.wav")


def test_closeness_frames_follow_clip_rate():
    declicker = Declicker(partition=PartitionParams(closeness_threshold_s=0.25))
    declicker.set_clip(AudioClip(np.zeros(100), 44100))
    assert declicker.closeness_frames() == 11025


def test_invalid_window_size():
    with pytest.raises(InvalidTransformSize):
        Declicker(window_size=1000)
    with pytest.raises(InvalidArgument):
        Declicker(window_size=1)


def test_from_settings():
    settings = Settings().update(loudness_threshold_db=-30.0, min_duration_s=0.05, window_size=512)
    declicker = Declicker.from_settings(settings, use_spectrum=False)
    assert declicker.partition.loudness_threshold_db == -30.0
    assert declicker.classifier.params.min_duration_s == 0.05
    assert declicker.window_size == 512
    assert declicker.use_spectrum is False


def test_update_parameters():
    declicker = Declicker(classifier=ClassifierParams(min_duration_s=0.05))
    declicker.update_parameters(closeness_threshold_s=0.1, window_size=256, use_spectrum=False)

    assert declicker.partition.closeness_threshold_s == 0.1
    assert declicker.partition.loudness_threshold_db == -40.0
    assert declicker.classifier.params.min_duration_s == 0.05
    assert declicker.window_size == 256
    assert declicker.use_spectrum is False

    with pytest.raises(InvalidArgument):
        declicker.update_parameters(max_click_duration_s=-1.0)
