"""Image processing utilities for blockerwatch.

Shared in-memory encoding, hashing, and preprocessing functions used by
the capture and provider modules. Nothing here touches the filesystem.
"""

from __future__ import annotations

import base64
import hashlib
import io
import logging

import cv2
import numpy as np
from PIL import Image

from blockerwatch.domain.models import FrameMetadata, ImageBytes

logger = logging.getLogger(__name__)


def encode_png(image: np.ndarray) -> bytearray:
    """Encode a numpy image array (BGR, OpenCV format) to PNG bytes."""
    success, buffer = cv2.imencode(".png", image)
    if not success:
        raise ValueError("Failed to encode image to PNG")
    return bytearray(buffer.tobytes())


def pil_to_png(image: Image.Image) -> bytearray:
    """Encode a PIL image to PNG bytes."""
    out = io.BytesIO()
    image.save(out, format="PNG")
    return bytearray(out.getbuffer())


def decode_image(data: ImageBytes) -> np.ndarray | None:
    """Decode encoded image bytes into a BGR numpy array.

    Returns None when the bytes are not a decodable image.
    """
    if not data:
        return None
    array = np.frombuffer(data, dtype=np.uint8)
    return cv2.imdecode(array, cv2.IMREAD_COLOR)


def frame_metadata(data: ImageBytes) -> FrameMetadata:
    """Read dimensions and channel count without decoding pixel data."""
    with Image.open(io.BytesIO(data)) as img:
        width, height = img.size
        channels = len(img.getbands())
    return FrameMetadata(width=width, height=height, channels=channels)


def content_hash(data: ImageBytes) -> str:
    """SHA-256 hex digest of the encoded frame."""
    return hashlib.sha256(data).hexdigest()


def zero_buffer(buffer: bytearray) -> None:
    """Overwrite a frame buffer in place before it is released."""
    buffer[:] = bytes(len(buffer))


def thumbnail(image: Image.Image, width: int, height: int) -> Image.Image:
    """Downscale a PIL image to fit within width x height, keeping aspect."""
    if image.width <= width and image.height <= height:
        return image
    copy = image.copy()
    copy.thumbnail((width, height))
    return copy


def resize_for_mllm(
    image: np.ndarray,
    max_dimension: int = 1568,
    min_dimension: int = 768,
) -> np.ndarray:
    """Resize an image for multimodal model input.

    Preserves aspect ratio. Downscales large images and upscales
    small images so text is readable by the vision model.
    """
    h, w = image.shape[:2]
    largest = max(h, w)

    if largest > max_dimension:
        scale = max_dimension / largest
        new_w = int(w * scale)
        new_h = int(h * scale)
        return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)
    elif largest < min_dimension:
        # Upscale small images so text is large enough to read
        scale = min_dimension / largest
        new_w = int(w * scale)
        new_h = int(h * scale)
        return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_CUBIC)

    return image


def to_base64_png(data: ImageBytes) -> str:
    """Decode a frame, resize it for a vision model, and return base64 PNG."""
    image = decode_image(data)
    if image is None:
        raise ValueError("Frame is not a decodable image")
    resized = resize_for_mllm(image)
    encoded = encode_png(resized)
    try:
        return base64.b64encode(encoded).decode("utf-8")
    finally:
        zero_buffer(encoded)
