"""
Imaging Package

Preview image downscaling and encoding.
"""

from .compressor import ImageCompressor, decode_reference

__all__ = ["ImageCompressor", "decode_reference"]
