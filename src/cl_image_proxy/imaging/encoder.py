"""Output encoding of a final image handle."""

import asyncio
from enum import StrEnum
from io import BytesIO
from typing import ClassVar, Final

from PIL import Image
from pydantic import BaseModel, ConfigDict

from ..common.errors import TransformFault
from .handle import ImageHandle


class OutputFormat(StrEnum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"

    @property
    def content_type(self) -> str:
        return CONTENT_TYPES[self]

    @classmethod
    def parse(cls, value: str) -> "OutputFormat | None":
        """Map a request format name (``jpg`` included) to an OutputFormat."""
        name = value.strip().lower()
        if name == "jpg":
            return cls.JPEG
        try:
            return cls(name)
        except ValueError:
            return None


CONTENT_TYPES: Final[dict[OutputFormat, str]] = {
    OutputFormat.JPEG: "image/jpeg",
    OutputFormat.PNG: "image/png",
    OutputFormat.WEBP: "image/webp",
}


class EncodedImage(BaseModel):
    body: bytes
    content_type: str

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


def _save(img: Image.Image, pil_format: str, **save_kwargs: object) -> bytes:
    buffer = BytesIO()
    img.save(buffer, format=pil_format, **save_kwargs)
    return buffer.getvalue()


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    # JPEG does not support alpha channel
    if img.mode not in ("RGB", "L", "CMYK"):
        converted = img.convert("RGB")
        try:
            return _save(converted, "JPEG", quality=quality)
        finally:
            converted.close()
    return _save(img, "JPEG", quality=quality)


def _encode_webp(img: Image.Image, quality: int) -> bytes:
    if img.mode not in ("RGB", "RGBA"):
        converted = img.convert("RGBA" if "A" in img.getbands() or "transparency" in img.info else "RGB")
        try:
            return _save(converted, "WEBP", quality=quality)
        finally:
            converted.close()
    return _save(img, "WEBP", quality=quality)


async def encode(handle: ImageHandle, fmt: OutputFormat, quality: int) -> EncodedImage:
    """
    Encode the image held by handle.

    - jpeg: lossy at quality
    - png: lossless, quality ignored
    - webp: lossy at quality, encoded on a worker thread

    Raises:
        TransformFault: If Pillow fails to encode the image.
    """
    img = handle.image
    try:
        match fmt:
            case OutputFormat.JPEG:
                body = _encode_jpeg(img, quality)
            case OutputFormat.PNG:
                body = _save(img, "PNG", optimize=True)
            case OutputFormat.WEBP:
                body = await asyncio.to_thread(_encode_webp, img, quality)
    except (OSError, ValueError, KeyError) as exc:
        raise TransformFault("encode", exc) from exc

    return EncodedImage(body=body, content_type=fmt.content_type)
