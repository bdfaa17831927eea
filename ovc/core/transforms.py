"""
Spectral transform kernel.

Provides an iterative radix-2 Cooley-Tukey FFT that works in place on complex
NumPy buffers, a DFT for arbitrary lengths built on it, and the orthonormal
DCT-II / DCT-III pair computed through that DFT.
"""

import numpy as np


def next_power_of_two(n: int) -> int:
    """
    Returns the smallest power of two that is >= n.

    Args:
        n: Requested length (values below 1 map to 1)

    Returns:
        Power-of-two length
    """
    power = 1
    while power < n:
        power *= 2
    return power


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def bit_reversal_permutation(n: int) -> np.ndarray:
    """
    Computes the bit-reversed index order for a buffer of length n.

    Args:
        n: Buffer length, must be a power of two

    Returns:
        Integer array where entry i holds the bit-reversed value of i
    """
    if not is_power_of_two(n):
        raise ValueError(f"Length must be a power of two, got {n}")

    bits = n.bit_length() - 1
    indices = np.arange(n, dtype=np.int64)
    reversed_indices = np.zeros(n, dtype=np.int64)
    for bit in range(bits):
        reversed_indices |= ((indices >> bit) & 1) << (bits - 1 - bit)
    return reversed_indices


def fft_inplace(buffer: np.ndarray, inverse: bool = False) -> np.ndarray:
    """
    In-place iterative Cooley-Tukey FFT.

    Runs a bit-reversal permutation pass followed by log2(n) butterfly
    stages. Each stage views the buffer as blocks of the current butterfly
    size and combines the upper and lower halves with one vector operation.
    The inverse transform rotates with conjugate twiddles and scales the
    output by 1/n.

    Args:
        buffer: Contiguous complex128 array whose length is a power of two
        inverse: Run the inverse transform instead of the forward one

    Returns:
        The same buffer, transformed

    Raises:
        ValueError: If the buffer has the wrong dtype, layout or length
    """
    if buffer.ndim != 1 or buffer.dtype != np.complex128:
        raise ValueError("FFT buffer must be a 1-D complex128 array")
    if not buffer.flags.c_contiguous or not buffer.flags.writeable:
        raise ValueError("FFT buffer must be contiguous and writeable")

    n = buffer.shape[0]
    if not is_power_of_two(n):
        raise ValueError(f"FFT length must be a power of two, got {n}")
    if n == 1:
        return buffer

    buffer[:] = buffer[bit_reversal_permutation(n)]

    sign = 1.0 if inverse else -1.0
    size = 2
    while size <= n:
        half = size // 2
        twiddles = np.exp(sign * 2j * np.pi * np.arange(half) / size)

        blocks = buffer.reshape(-1, size)
        upper = blocks[:, :half].copy()
        lower = blocks[:, half:] * twiddles

        blocks[:, :half] = upper + lower
        blocks[:, half:] = upper - lower
        size *= 2

    if inverse:
        buffer /= n

    return buffer


def fft(x) -> np.ndarray:
    """Forward FFT of a power-of-two length sequence (returns a new array)."""
    return fft_inplace(np.array(x, dtype=np.complex128), inverse=False)


def ifft(x) -> np.ndarray:
    """Inverse FFT of a power-of-two length sequence (returns a new array)."""
    return fft_inplace(np.array(x, dtype=np.complex128), inverse=True)


def padded_spectrum(vector: np.ndarray) -> np.ndarray:
    """
    Zero-pads a real vector to the next power of two and transforms it.

    Args:
        vector: Real-valued 1-D array of length n

    Returns:
        Complex spectrum of length next_power_of_two(n)
    """
    padded_length = next_power_of_two(len(vector))
    buffer = np.zeros(padded_length, dtype=np.complex128)
    buffer[:len(vector)] = vector
    return fft_inplace(buffer)


def dft(x, inverse: bool = False) -> np.ndarray:
    """
    Discrete Fourier transform of any length.

    Power-of-two lengths go straight to fft_inplace. Other lengths use
    Bluestein's chirp-z identity, which rewrites the DFT as a circular
    convolution and evaluates it with three radix-2 transforms of length
    next_power_of_two(2m - 1).

    Args:
        x: 1-D sequence of length m >= 1
        inverse: Run the inverse transform (scaled by 1/m)

    Returns:
        New complex128 array of length m
    """
    x = np.array(x, dtype=np.complex128)
    if x.ndim != 1 or x.shape[0] < 1:
        raise ValueError("DFT input must be a non-empty 1-D sequence")

    m = x.shape[0]
    if is_power_of_two(m):
        return fft_inplace(x, inverse=inverse)
    if inverse:
        return np.conj(dft(np.conj(x))) / m

    # k^2 mod 2m keeps the chirp phase small for long inputs
    k = np.arange(m, dtype=np.int64)
    chirp = np.exp(1j * np.pi * ((k * k) % (2 * m)) / m)

    size = next_power_of_two(2 * m - 1)
    signal = np.zeros(size, dtype=np.complex128)
    signal[:m] = x * np.conj(chirp)
    kernel = np.zeros(size, dtype=np.complex128)
    kernel[:m] = chirp
    kernel[size - m + 1:] = chirp[1:][::-1]

    fft_inplace(signal)
    fft_inplace(kernel)
    signal *= kernel
    fft_inplace(signal, inverse=True)

    return np.conj(chirp) * signal[:m]


def _dct_scale(n: int) -> np.ndarray:
    scale = np.full(n, np.sqrt(2.0 / n))
    scale[0] = np.sqrt(1.0 / n)
    return scale


def dct_ii(x) -> np.ndarray:
    """
    Forward orthonormal DCT-II.

    X[k] = scale(k) * sum_i x[i] * cos(pi * k * (2i + 1) / (2n)), with
    scale(0) = sqrt(1/n) and scale(k > 0) = sqrt(2/n). Computed from the DFT
    of the even extension [x, reversed(x)], so memory stays linear in n.
    """
    x = np.asarray(x, dtype=np.float64)
    if x.ndim != 1 or x.shape[0] < 1:
        raise ValueError("DCT input must be a non-empty 1-D array")

    n = x.shape[0]
    spectrum = dft(np.concatenate([x, x[::-1]]))[:n]
    k = np.arange(n, dtype=np.float64)
    coefficients = np.real(np.exp(-1j * np.pi * k / (2.0 * n)) * spectrum) / 2.0
    return coefficients * _dct_scale(n)


def dct_iii(coefficients) -> np.ndarray:
    """Inverse of dct_ii (orthonormal DCT-III)."""
    coefficients = np.asarray(coefficients, dtype=np.float64)
    if coefficients.ndim != 1 or coefficients.shape[0] < 1:
        raise ValueError("DCT input must be a non-empty 1-D array")

    n = coefficients.shape[0]
    k = np.arange(n, dtype=np.float64)
    buffer = np.zeros(2 * n, dtype=np.complex128)
    buffer[:n] = coefficients * _dct_scale(n) * np.exp(1j * np.pi * k / (2.0 * n))
    return np.real(dft(buffer, inverse=True)[:n]) * (2.0 * n)
