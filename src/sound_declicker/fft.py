"""
Power-of-two complex FFT.

Iterative Cooley-Tukey decimation in time.  Each of the log2(n) butterfly
stages derives its twiddle phase from a bit reversal of the butterfly
position, and a final bit-reversal permutation restores natural order.

Numeric convention:
- forward transform: X[k] = sum_j x[j] * exp(-2*pi*i*j*k/n), scale 1
- inverse transform: x[j] = (1/n) * sum_k X[k] * exp(+2*pi*i*j*k/n)

This matches the FOURIER function of common spreadsheet tools and
numpy.fft.fft / numpy.fft.ifft.  Downstream power estimates only use the
magnitude of the output, which does not depend on the sign convention.

The result is an interleaved (re, im) array of length 2n.
"""

from functools import lru_cache
from typing import Optional

import numpy as np

from .config import is_power_of_two
from .errors import InvalidArgument, InvalidTransformSize


class FFTWorkspace:
    """
    Scratch storage that lets repeated transforms of one size avoid allocation.

    The array returned by fft() when a workspace is passed is the workspace's
    own `output` buffer.  The caller owns the workspace for the duration of a
    call and must copy the result out before reusing it; a workspace must never
    be shared between concurrent calls.
    """

    def __init__(self, n: int):
        _check_size(n)
        self.n = n
        self.buffer = np.empty(n, dtype=np.complex128)
        self.output = np.empty(2 * n, dtype=np.float64)


def _check_size(n: int):
    if not is_power_of_two(n):
        raise InvalidTransformSize(f"The number of FFT elements is not a power of 2: {n}")


def _bit_reverse(values: np.ndarray, nu: int) -> np.ndarray:
    """Reverse the low `nu` bits of each value."""
    result = np.zeros_like(values)
    remaining = values.copy()
    for _ in range(nu):
        result = (result << 1) | (remaining & 1)
        remaining >>= 1
    return result


@lru_cache(maxsize=32)
def _plan(n: int):
    """
    Precompute, for size n, the butterfly indices and twiddle phases of every
    stage plus the final reordering permutation.  Arrays are read-only since
    they are shared through the cache.
    """
    nu = n.bit_length() - 1
    positions = np.arange(n, dtype=np.int64)
    stages = []
    half = n // 2
    shift = nu - 1
    while half >= 1:
        # Top element of each butterfly: first half of every 2*half block.
        tops = positions.reshape(-1, 2 * half)[:, :half].ravel()
        # Twiddle numerator p, from the bit-reversed block position.
        p = _bit_reverse(tops >> shift, nu)
        tops.setflags(write=False)
        p.setflags(write=False)
        stages.append((half, tops, p))
        half //= 2
        shift -= 1
    permutation = _bit_reverse(positions, nu)
    permutation.setflags(write=False)
    return tuple(stages), permutation


def fft(
    input_real,
    input_imag,
    forward: bool = True,
    workspace: Optional[FFTWorkspace] = None,
) -> np.ndarray:
    """
    Transform the complex sequence `input_real + i*input_imag`.

    Args:
        input_real: Real parts, length n (a power of two)
        input_imag: Imaginary parts, length n
        forward: True for the forward transform, False for the inverse
        workspace: Optional FFTWorkspace of size n to reuse buffers

    Returns:
        Array of length 2n holding interleaved (re, im) pairs.  When a
        workspace is given this is workspace.output.

    Raises:
        InvalidTransformSize: n is not a power of two (or is zero)
        InvalidArgument: the inputs differ in length or are not 1-D
    """
    real = np.asarray(input_real, dtype=np.float64)
    imag = np.asarray(input_imag, dtype=np.float64)
    if real.ndim != 1 or imag.ndim != 1:
        raise InvalidArgument("FFT inputs must be one-dimensional.")
    if real.shape != imag.shape:
        raise InvalidArgument(
            f"FFT inputs differ in length: {real.shape[0]} and {imag.shape[0]}"
        )

    n = real.shape[0]
    _check_size(n)

    if workspace is None:
        x = np.empty(n, dtype=np.complex128)
        output = np.empty(2 * n, dtype=np.float64)
    else:
        if workspace.n != n:
            raise InvalidArgument(
                f"Workspace is sized for {workspace.n} elements, input has {n}."
            )
        x = workspace.buffer
        output = workspace.output

    # Work on a copy; the inputs are never modified.
    x.real = real
    x.imag = imag

    # Phase sign: t = x[k + half] * exp(-i * sign * 2*pi*p/n)
    sign = 1.0 if forward else -1.0
    stages, permutation = _plan(n)

    for half, tops, p in stages:
        bottoms = tops + half
        t = x[bottoms] * np.exp(-1j * sign * 2.0 * np.pi * p / n)
        top_values = x[tops]
        x[bottoms] = top_values - t
        x[tops] = top_values + t

    ordered = x[permutation]

    scale = 1.0 if forward else 1.0 / n
    output[0::2] = ordered.real * scale
    output[1::2] = ordered.imag * scale
    return output


def ifft(input_real, input_imag, workspace: Optional[FFTWorkspace] = None) -> np.ndarray:
    """Inverse transform; see fft()."""
    return fft(input_real, input_imag, forward=False, workspace=workspace)


def deinterleave(output: np.ndarray):
    """Split an interleaved (re, im) array into separate real and imaginary arrays."""
    return output[0::2].copy(), output[1::2].copy()
