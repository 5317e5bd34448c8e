"""
Audio sample data and its format.

AudioClip gives random access to every sample of a decoded file, addressed
by (frame, channel), and remembers the container format so the clip can be
written back out exactly as it came in.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import librosa
import numpy as np
import soundfile as sf
from mutagen import File as MutagenFile
from mutagen import MutagenError

from .config import DB_FLOOR
from .errors import InvalidArgument, IOFailure

logger = logging.getLogger(__name__)

# Integer type the decoder widens each subtype into when reading raw values.
_BUFFER_DTYPES = {
    "PCM_S8": "int16",
    "PCM_U8": "int16",
    "PCM_16": "int16",
    "PCM_24": "int32",
    "PCM_32": "int32",
    "FLOAT": "float32",
    "DOUBLE": "float64",
}

# Bytes per sample for the common subtypes (used by `info`).
_SUBTYPE_BYTES = {
    "PCM_S8": 1,
    "PCM_U8": 1,
    "PCM_16": 2,
    "PCM_24": 3,
    "PCM_32": 4,
    "FLOAT": 4,
    "DOUBLE": 8,
    "ULAW": 1,
    "ALAW": 1,
}


def linear_amplitude_to_decibels(amplitude):
    """
    Convert an amplitude, nominally in [-1,1], to decibels relative to 1.0.

    The sign is discarded.  Zero (and anything below the floor) maps to
    DB_FLOOR.  Accepts scalars or arrays.
    """
    magnitude = np.abs(np.asarray(amplitude, dtype=np.float64))
    with np.errstate(divide="ignore"):
        decibels = np.maximum(20.0 * np.log10(magnitude), DB_FLOOR)
    if decibels.ndim == 0:
        return float(decibels)
    return decibels


def linear_power_to_decibels(power):
    """Convert a non-negative power ratio to decibels, floored at DB_FLOOR."""
    power = np.asarray(power, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        decibels = np.where(power > 0, 10.0 * np.log10(power), DB_FLOOR)
    decibels = np.maximum(decibels, DB_FLOOR)
    if decibels.ndim == 0:
        return float(decibels)
    return decibels


class AudioClip:
    """
    Decoded audio: a (num_frames, num_channels) array of float samples
    nominally in [-1,1], plus the frame rate and container details.
    """

    def __init__(
        self,
        samples: np.ndarray,
        frame_rate: float,
        format: Optional[str] = None,
        subtype: Optional[str] = None,
        endian: str = "FILE",
        source_path: Optional[Union[str, Path]] = None,
    ):
        samples = np.asarray(samples, dtype=np.float64)
        if samples.ndim == 1:
            samples = samples.reshape(-1, 1)
        if samples.ndim != 2 or samples.shape[1] < 1:
            raise InvalidArgument("Samples must be shaped (frames, channels).")
        if frame_rate <= 0:
            raise InvalidArgument(f"Frame rate must be positive, got {frame_rate}.")

        self.samples = samples
        self.frame_rate = frame_rate
        self.format = format
        self.subtype = subtype
        self.endian = endian
        self.source_path = Path(source_path) if source_path is not None else None

    @classmethod
    def load(cls, file_path: Union[str, Path]) -> "AudioClip":
        """Decode an audio file into a clip."""
        path = Path(file_path)
        try:
            info = sf.info(str(path))
            samples, frame_rate = sf.read(str(path), dtype="float64", always_2d=True)
        except (sf.LibsndfileError, RuntimeError, OSError) as e:
            raise IOFailure(f"Cannot read audio file {path}: {e}") from e

        logger.debug(
            "loaded %s: %d frames, %d channels, %s Hz, %s/%s",
            path, samples.shape[0], samples.shape[1], frame_rate,
            info.format, info.subtype,
        )
        return cls(
            samples,
            frame_rate,
            format=info.format,
            subtype=info.subtype,
            endian=getattr(info, "endian", "FILE"),
            source_path=path,
        )

    def save(self, output_path: Union[str, Path]) -> str:
        """
        Encode the clip in its original format, then carry over the source
        file's tags when both formats support them.
        """
        output_path = Path(output_path)
        try:
            sf.write(
                str(output_path),
                self.samples,
                int(self.frame_rate),
                subtype=self.subtype,
                endian=self.endian,
                format=self.format,
            )
        except (sf.LibsndfileError, RuntimeError, OSError, ValueError, TypeError) as e:
            raise IOFailure(f"Cannot write audio file {output_path}: {e}") from e

        if self.source_path is not None and self.source_path.exists():
            copy_metadata(self.source_path, output_path)

        logger.info("wrote %s", output_path)
        return str(output_path)

    def copy(self) -> "AudioClip":
        return AudioClip(
            self.samples.copy(),
            self.frame_rate,
            format=self.format,
            subtype=self.subtype,
            endian=self.endian,
            source_path=self.source_path,
        )

    @property
    def num_frames(self) -> int:
        return self.samples.shape[0]

    @property
    def num_channels(self) -> int:
        return self.samples.shape[1]

    @property
    def num_samples(self) -> int:
        return self.samples.size

    @property
    def first_frame_index(self) -> int:
        return 0

    @property
    def last_frame_index(self) -> int:
        return self.num_frames - 1

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return self.num_frames / self.frame_rate

    @property
    def bytes_per_sample(self) -> Optional[int]:
        return _SUBTYPE_BYTES.get(self.subtype)

    def get_sample(self, frame: int, channel: int) -> float:
        return float(self.samples[frame, channel])

    def set_sample(self, frame: int, channel: int, value: float):
        self.samples[frame, channel] = value

    def get_interleaved_sample(self, index: int) -> float:
        """Sample `index` in file order: frame-major, channel-minor."""
        frame, channel = divmod(index, self.num_channels)
        return self.get_sample(frame, channel)

    def get_decibels(self, frame: int, channel: int) -> float:
        return linear_amplitude_to_decibels(self.samples[frame, channel])

    def frame_loudness_db(self) -> np.ndarray:
        """Loudness of every frame: the loudest channel, in decibels."""
        if self.num_frames == 0:
            return np.empty(0, dtype=np.float64)
        return linear_amplitude_to_decibels(np.max(np.abs(self.samples), axis=1))


def describe_file(file_path: Union[str, Path]) -> dict:
    """Format details of an audio file, for the `info` command."""
    path = Path(file_path)
    try:
        info = sf.info(str(path))
        duration = librosa.get_duration(path=str(path))
    except (sf.LibsndfileError, RuntimeError, OSError) as e:
        raise IOFailure(f"Cannot read audio file {path}: {e}") from e

    bytes_per_sample = _SUBTYPE_BYTES.get(info.subtype)
    return {
        "format": f"{info.format} ({info.format_info})",
        "subtype": f"{info.subtype} ({info.subtype_info})",
        "endian": getattr(info, "endian", "FILE"),
        "channels": info.channels,
        "frame rate (Hz)": info.samplerate,
        "bytes per sample": bytes_per_sample if bytes_per_sample is not None else "unknown",
        "frame size (bytes)": (
            bytes_per_sample * info.channels if bytes_per_sample is not None else "unknown"
        ),
        "num frames": info.frames,
        "num samples": info.frames * info.channels,
        "duration (s)": duration,
    }


def _narrow_to_file_width(data: np.ndarray, subtype: str) -> np.ndarray:
    """
    Undo the decoder's widening so each sample takes the file's own width.

    libsndfile left-aligns narrow integer samples in its read buffer: 8-bit
    samples arrive in the high byte of an int16 and 24-bit samples in the top
    three bytes of an int32.
    """
    if subtype == "PCM_S8":
        return (data.astype(np.int16) >> 8).astype(np.int8)
    if subtype == "PCM_U8":
        return ((data.astype(np.int16) >> 8) + 128).astype(np.uint8)
    if subtype == "PCM_24":
        little = data.astype("<i4").view(np.uint8).reshape(-1, 4)
        return np.ascontiguousarray(little[:, 1:])
    return data


def read_sample_bytes(file_path: Union[str, Path], max_bytes: int) -> bytes:
    """
    Return up to `max_bytes` bytes of raw sample data, in the file's own
    sample width and little-endian byte order.  Unsigned 8-bit files keep
    their unsigned encoding.
    """
    if max_bytes < 0:
        raise InvalidArgument(f"max must not be negative, got {max_bytes}.")
    path = Path(file_path)
    try:
        with sf.SoundFile(str(path)) as f:
            subtype = f.subtype
            dtype = _BUFFER_DTYPES.get(subtype, "float32")
            width = _SUBTYPE_BYTES[subtype] if subtype in _BUFFER_DTYPES else np.dtype(dtype).itemsize
            bytes_per_frame = width * f.channels
            frames = min(f.frames, -(-max_bytes // bytes_per_frame))
            data = f.read(frames, dtype=dtype)
    except (sf.LibsndfileError, RuntimeError, OSError) as e:
        raise IOFailure(f"Cannot read audio file {path}: {e}") from e
    samples = _narrow_to_file_width(np.asarray(data).ravel(), subtype)
    return samples.astype(samples.dtype.newbyteorder("<")).tobytes()[:max_bytes]


def copy_metadata(source_path: Path, dest_path: Path) -> bool:
    """
    Copy text tags from source to destination audio file.

    Vorbis-comment containers (FLAC, OGG) get each comment copied by name;
    ID3-tagged containers (WAV, AIFF, MP3) get each ID3 frame copied.

    Returns:
        True if tags were copied, False if there was nothing to copy or the
        formats are incompatible
    """
    try:
        source_audio = MutagenFile(str(source_path))
        if source_audio is None or not source_audio.tags:
            return False

        dest_audio = MutagenFile(str(dest_path))
        if dest_audio is None:
            return False

        source_tags = source_audio.tags
        if hasattr(source_tags, "getall"):
            # ID3 frames
            if dest_audio.tags is None:
                dest_audio.add_tags()
            if not hasattr(dest_audio.tags, "add"):
                return False
            for frame in source_tags.values():
                dest_audio.tags.add(frame)
        else:
            # Vorbis comments
            if dest_audio.tags is None:
                dest_audio.add_tags()
            if hasattr(dest_audio.tags, "getall"):
                return False
            for key in source_tags.keys():
                dest_audio.tags[key] = source_tags[key]

        dest_audio.save()
        return True

    except (MutagenError, OSError, ValueError, TypeError, KeyError) as e:
        # Tags are nice to have; the written audio stays valid without them.
        logger.warning("Could not copy metadata from %s to %s: %s", source_path, dest_path, e)
        return False
