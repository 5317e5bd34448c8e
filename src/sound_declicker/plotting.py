"""
Render a power spectrum to an image file.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import matplotlib.ticker as mticker
import numpy as np
from matplotlib.figure import Figure

from .config import DB_FLOOR, NUM_FREQUENCY_BINS
from .errors import IOFailure
from .spectrum import BinnedSpectrum, PowerSpectrum

logger = logging.getLogger(__name__)


def plot_spectrum(
    spectrum: PowerSpectrum,
    output_path: Union[str, Path],
    title: Optional[str] = None,
) -> str:
    """
    Draw the spectrum on a log-frequency axis, with the decade bins of the
    click heuristic shaded, and save it (format from the file extension).
    """
    output_path = Path(output_path)
    # Element 0 is 0 Hz and cannot sit on a log axis.
    freqs = spectrum.frequencies[1:]
    levels = spectrum.decibels[1:]
    binned = BinnedSpectrum.from_power_spectrum(spectrum)

    fig = Figure(figsize=(10, 4), dpi=100, facecolor="#1a1a2e")
    ax = fig.add_subplot(111)
    ax.set_facecolor("#1a1a2e")

    if len(freqs) > 0:
        ax.fill_between(freqs, DB_FLOOR, levels, color="#ff9f43", alpha=0.5, zorder=1)
        ax.plot(freqs, levels, color="#ffcc00", linewidth=1.2, alpha=0.9, zorder=2)

    for k, max_db in enumerate(binned.max_decibels_for_bin):
        low, high = 10.0 ** k, 10.0 ** (k + 1)
        ax.hlines(max_db, low, high, colors="#00d9ff", linestyles="--", linewidth=1.0, zorder=3)

    ceiling = max(10.0, float(np.max(levels)) + 5.0) if len(levels) else 10.0
    ax.set_xlim(1.0, 10.0 ** NUM_FREQUENCY_BINS)
    ax.set_ylim(DB_FLOOR, ceiling)
    ax.set_xscale("log")
    ax.set_xlabel("Frequency (Hz)", color="#888888", fontsize=8)
    ax.set_ylabel("Level (dB)", color="#888888", fontsize=8)
    ax.tick_params(colors="#888888", labelsize=8)
    ax.grid(True, color="#222222", linestyle="--", linewidth=0.5, alpha=0.6)
    ax.set_title(
        title or f"Power spectrum (window {spectrum.window_size})",
        color="#ffffff", fontsize=10, fontweight="bold",
    )
    ax.xaxis.set_major_formatter(mticker.LogFormatter())
    ax.xaxis.set_minor_formatter(mticker.NullFormatter())

    try:
        fig.savefig(str(output_path), facecolor=fig.get_facecolor())
    except (OSError, ValueError) as e:
        raise IOFailure(f"Cannot write plot {output_path}: {e}") from e

    logger.info("wrote %s", output_path)
    return str(output_path)
