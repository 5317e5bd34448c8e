"""
Shared constants and analysis parameters.

The decibel floor and the logarithmic bin layout live here so the spectrum
estimator, the binned spectrum and the tests all agree on them.
"""

import json
import numbers
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import FrozenSet, Optional, Tuple

from .errors import InvalidArgument, InvalidTransformSize

# Lowest level reported anywhere, used when the log argument is zero or negligible.
DB_FLOOR = -100.0

# Number of decade-wide frequency bins: [1,10), [10,100), ... [10k,100k).
NUM_FREQUENCY_BINS = 5

# Click heuristic compares the loudest element below 1 kHz with the loudest above it.
CLICK_LOW_BIN = 2
CLICK_HIGH_BIN = 3

DEFAULT_WINDOW_SIZE = 1024


def is_power_of_two(n: int) -> bool:
    return n >= 1 and (n & (n - 1)) == 0


def validate_window_size(window_size: int) -> int:
    """Check that `window_size` can be used for spectral analysis."""
    if isinstance(window_size, bool) or not isinstance(window_size, numbers.Integral):
        raise InvalidArgument(f"Window size must be an integer, got {window_size!r}.")
    if window_size < 2:
        raise InvalidArgument(f"Window size must be at least 2, got {window_size}.")
    if not is_power_of_two(window_size):
        raise InvalidTransformSize(f"Window size must be a power of two, got {window_size}.")
    return int(window_size)


def _check_non_negative(name: str, value: float):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgument(f"{name} must be a number, got {value!r}.")
    if value < 0:
        raise InvalidArgument(f"{name} must not be negative, got {value}.")


@dataclass
class PartitionParams:
    """Parameters used to partition a clip into discrete sounds."""
    # A frame louder than this (in dB relative to full scale) anchors a sound.
    loudness_threshold_db: float = -40.0
    # Loud frames at most this far apart belong to the same sound.  Also
    # sets the fade length used when declicking.
    closeness_threshold_s: float = 0.2

    def __post_init__(self):
        if isinstance(self.loudness_threshold_db, bool) or not isinstance(
            self.loudness_threshold_db, (int, float)
        ):
            raise InvalidArgument(
                f"loudness_threshold_db must be a number, got {self.loudness_threshold_db!r}."
            )
        _check_non_negative("closeness_threshold_s", self.closeness_threshold_s)

    def closeness_frames(self, frame_rate: float) -> int:
        """Closeness threshold converted to whole frames (truncated)."""
        return int(self.closeness_threshold_s * frame_rate)


@dataclass
class ClassifierParams:
    """Duration limits used to decide which sounds to keep."""
    # Sounds shorter than this are never kept.
    min_duration_s: float = 0.09
    # Sounds at least this long are always kept, whatever their spectrum.
    max_click_duration_s: float = 0.2

    def __post_init__(self):
        _check_non_negative("min_duration_s", self.min_duration_s)
        _check_non_negative("max_click_duration_s", self.max_click_duration_s)


@dataclass
class Settings:
    """Complete set of analysis parameters for one run."""
    partition: PartitionParams = field(default_factory=PartitionParams)
    classifier: ClassifierParams = field(default_factory=ClassifierParams)
    window_size: int = DEFAULT_WINDOW_SIZE

    def __post_init__(self):
        validate_window_size(self.window_size)

    def update(
        self,
        loudness_threshold_db: Optional[float] = None,
        closeness_threshold_s: Optional[float] = None,
        min_duration_s: Optional[float] = None,
        max_click_duration_s: Optional[float] = None,
        window_size: Optional[int] = None,
    ) -> "Settings":
        """Return a copy with every non-None override applied."""
        partition = PartitionParams(
            loudness_threshold_db=(
                self.partition.loudness_threshold_db
                if loudness_threshold_db is None else loudness_threshold_db
            ),
            closeness_threshold_s=(
                self.partition.closeness_threshold_s
                if closeness_threshold_s is None else closeness_threshold_s
            ),
        )
        classifier = ClassifierParams(
            min_duration_s=(
                self.classifier.min_duration_s
                if min_duration_s is None else min_duration_s
            ),
            max_click_duration_s=(
                self.classifier.max_click_duration_s
                if max_click_duration_s is None else max_click_duration_s
            ),
        )
        return Settings(
            partition=partition,
            classifier=classifier,
            window_size=self.window_size if window_size is None else window_size,
        )


def _section(data: dict, name: str, cls):
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise InvalidArgument(f"Settings section {name!r} must be an object.")
    known = {f.name for f in fields(cls)}
    unknown = set(section) - known
    if unknown:
        raise InvalidArgument(
            f"Unknown key(s) in settings section {name!r}: {', '.join(sorted(unknown))}"
        )
    return cls(**section)


def load_settings(path: str) -> Settings:
    """Load analysis settings from a JSON file; see load_settings_file()."""
    return load_settings_file(path)[0]


def load_settings_file(path: str) -> Tuple[Settings, FrozenSet[str]]:
    """
    Load analysis settings from a JSON file, along with the names of the
    parameters the file sets.

    The file looks like::

        {"partition": {"loudness_threshold_db": -45},
         "classifier": {"min_duration_s": 0.05},
         "window_size": 512}

    Every key is optional; missing ones keep their defaults.
    """
    settings_path = Path(path)
    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise InvalidArgument(f"Cannot read settings file {settings_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise InvalidArgument(f"Malformed settings file {settings_path}: {e}") from e

    if not isinstance(data, dict):
        raise InvalidArgument(f"Settings file {settings_path} must contain a JSON object.")

    unknown = set(data) - {"partition", "classifier", "window_size"}
    if unknown:
        raise InvalidArgument(f"Unknown settings key(s): {', '.join(sorted(unknown))}")

    try:
        partition = _section(data, "partition", PartitionParams)
        classifier = _section(data, "classifier", ClassifierParams)
    except TypeError as e:
        raise InvalidArgument(f"Invalid settings in {settings_path}: {e}") from e

    settings = Settings(
        partition=partition,
        classifier=classifier,
        window_size=data.get("window_size", DEFAULT_WINDOW_SIZE),
    )
    given = set(data.get("partition", {})) | set(data.get("classifier", {}))
    if "window_size" in data:
        given.add("window_size")
    return settings, frozenset(given)
