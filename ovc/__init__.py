"""
OVC: Spectral Vector Codec

A lossy codec for high-dimensional embedding vectors built on the Fast Fourier
Transform and the Discrete Cosine Transform, with a compact self-describing
binary envelope and similarity computed directly on compressed payloads.
"""

__version__ = "0.1.0"
