"""
==============================================================================
Preview Image Compressor Module
==============================================================================

Turns an uploaded image into a compact preview reference.

Pipeline:
---------
1. Decode raw bytes with OpenCV (any format OpenCV reads)
2. Downscale to max_width, keeping the aspect ratio
3. Encode as JPEG at the configured quality
4. Return a data URL: data:image/jpeg;base64,<payload>

The catalog stores the returned string as an opaque image_reference.

==============================================================================
"""

from __future__ import annotations

import base64
import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from tracker.core.exceptions import ImageProcessingError


# Module logger
logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image/jpeg;base64,"


class ImageCompressor:
    """
    Downscaler and JPEG encoder for preview images.

    Attributes:
        max_width: Images wider than this are downscaled
        jpeg_quality: JPEG quality (1-100)
        max_upload_bytes: Largest accepted raw input, None for unlimited

    Example:
        >>> compressor = ImageCompressor(max_width=800, jpeg_quality=70)
        >>> reference = compressor.compress(upload_bytes)
        >>> reference[:23]
        'data:image/jpeg;base64,'
    """

    def __init__(
        self,
        max_width: int = 800,
        jpeg_quality: int = 70,
        max_upload_bytes: Optional[int] = None
    ) -> None:
        self.max_width = max_width
        self.jpeg_quality = jpeg_quality
        self.max_upload_bytes = max_upload_bytes

    def compress(self, raw: bytes) -> str:
        """
        Build a preview reference from raw image bytes.

        Args:
            raw: Uploaded file content

        Returns:
            JPEG data URL

        Raises:
            ImageProcessingError: If the input is empty, too large or not an image
        """
        if not raw:
            raise ImageProcessingError("empty upload")

        if self.max_upload_bytes is not None and len(raw) > self.max_upload_bytes:
            raise ImageProcessingError(
                f"upload is {len(raw)} bytes, limit is {self.max_upload_bytes}"
            )

        frame = cv2.imdecode(np.frombuffer(raw, np.uint8), cv2.IMREAD_COLOR)
        if frame is None:
            raise ImageProcessingError("unsupported or corrupt image data")

        frame = self._downscale(frame)

        ok, encoded = cv2.imencode(
            ".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality]
        )
        if not ok:
            raise ImageProcessingError("JPEG encoding failed")

        payload = base64.b64encode(encoded.tobytes()).decode("ascii")
        logger.debug(
            f"Compressed image {len(raw)} → {len(encoded)} bytes "
            f"({frame.shape[1]}x{frame.shape[0]})"
        )
        return DATA_URL_PREFIX + payload

    def target_size(self, width: int, height: int) -> Tuple[int, int]:
        """
        Compute the output size for an input size.

        Returns:
            (width, height) after downscaling
        """
        if width <= self.max_width:
            return width, height
        return self.max_width, max(1, round(height * self.max_width / width))

    def _downscale(self, frame: np.ndarray) -> np.ndarray:
        height, width = frame.shape[:2]
        new_width, new_height = self.target_size(width, height)
        if (new_width, new_height) == (width, height):
            return frame
        return cv2.resize(frame, (new_width, new_height), interpolation=cv2.INTER_AREA)


def decode_reference(reference: str) -> bytes:
    """
    Extract the JPEG bytes from a preview reference.

    Raises:
        ImageProcessingError: If the reference is not a JPEG data URL
    """
    if not reference.startswith(DATA_URL_PREFIX):
        raise ImageProcessingError("not a JPEG data URL")
    try:
        return base64.b64decode(reference[len(DATA_URL_PREFIX):], validate=True)
    except ValueError as e:
        raise ImageProcessingError(f"invalid base64 payload: {e}") from e
