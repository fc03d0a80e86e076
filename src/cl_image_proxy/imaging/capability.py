"""Image transform capability: decode, resize, crop, blend and watermark.

The pipeline only talks to the ImageCapability protocol; PillowCapability
is the implementation used by the service. Every Pillow failure surfaces
as TransformFault.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from io import BytesIO
from typing import Final, Protocol
from typing_extensions import override

from PIL import Image, ImageChops

from ..common.errors import TransformFault
from .handle import ImageHandle

# Sampling filter codes: Nearest = 1, Triangle = 2, CatmullRom = 3, Gaussian = 4, Lanczos3 = 5
RESAMPLING_FILTERS: Final[dict[int, Image.Resampling]] = {
    1: Image.Resampling.NEAREST,
    2: Image.Resampling.BILINEAR,
    3: Image.Resampling.BICUBIC,
    4: Image.Resampling.HAMMING,
    5: Image.Resampling.LANCZOS,
}

_RGB_BLEND_MODES: Final[dict[str, Callable[[Image.Image, Image.Image], Image.Image]]] = {
    "multiply": ImageChops.multiply,
    "screen": ImageChops.screen,
    "overlay": ImageChops.overlay,
    "darken": ImageChops.darker,
    "lighten": ImageChops.lighter,
    "difference": ImageChops.difference,
    "add": ImageChops.add,
    "subtract": ImageChops.subtract,
    "soft_light": ImageChops.soft_light,
    "hard_light": ImageChops.hard_light,
}

BLEND_MODES: Final[frozenset[str]] = frozenset({"over", *_RGB_BLEND_MODES})


@contextmanager
def _pillow_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except TransformFault:
        raise
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        raise TransformFault(operation, exc) from exc


class ImageCapability(Protocol):
    """Operations the pipeline executor may invoke."""

    def decode(self, data: bytes) -> ImageHandle: ...

    def resize(self, handle: ImageHandle, width: int, height: int, filter: int) -> ImageHandle: ...

    def crop(self, handle: ImageHandle, x1: int, y1: int, x2: int, y2: int) -> ImageHandle: ...

    def blend(self, primary: ImageHandle, secondary: ImageHandle, mode: str) -> None: ...

    def watermark(self, primary: ImageHandle, secondary: ImageHandle, x: int, y: int) -> None: ...


class PillowCapability(ImageCapability):
    """ImageCapability backed by Pillow."""

    @override
    def decode(self, data: bytes) -> ImageHandle:
        with _pillow_errors("decode"):
            img = Image.open(BytesIO(data))
            try:
                img.load()
            except BaseException:
                img.close()
                raise
        return ImageHandle(img)

    @override
    def resize(self, handle: ImageHandle, width: int, height: int, filter: int) -> ImageHandle:
        """Resample to exactly width x height. Returns a new handle."""
        if filter not in RESAMPLING_FILTERS:
            raise TransformFault("resize", ValueError(f"unknown sampling filter {filter}"))
        with _pillow_errors("resize"):
            resized = handle.image.resize((width, height), RESAMPLING_FILTERS[filter])
        return ImageHandle(resized)

    @override
    def crop(self, handle: ImageHandle, x1: int, y1: int, x2: int, y2: int) -> ImageHandle:
        """Cut the box (x1, y1)-(x2, y2). Returns a new handle."""
        with _pillow_errors("crop"):
            if x2 <= x1 or y2 <= y1:
                raise ValueError(f"empty crop box ({x1}, {y1}, {x2}, {y2})")
            cropped = handle.image.crop((x1, y1, x2, y2))
            cropped.load()
        return ImageHandle(cropped)

    @override
    def blend(self, primary: ImageHandle, secondary: ImageHandle, mode: str) -> None:
        """Blend secondary onto primary at the origin, in place.

        The overlapping region (top-left aligned) is combined with ``mode``;
        the rest of primary is untouched.
        """
        if mode not in BLEND_MODES:
            raise TransformFault("blend", ValueError(f"unknown blend mode {mode!r}"))

        with _pillow_errors("blend"):
            width = min(primary.width, secondary.width)
            height = min(primary.height, secondary.height)
            box = (0, 0, width, height)

            if mode == "over":
                base = primary.image.convert("RGBA")
                top = secondary.image.convert("RGBA").crop(box)
                base.alpha_composite(top)
            else:
                base = primary.image.convert("RGB")
                top = secondary.image.convert("RGB").crop(box)
                combined = _RGB_BLEND_MODES[mode](base.crop(box), top)
                base.paste(combined, box)

        primary.replace(base)

    @override
    def watermark(self, primary: ImageHandle, secondary: ImageHandle, x: int, y: int) -> None:
        """Draw secondary over primary with its top-left corner at (x, y), in place."""
        with _pillow_errors("watermark"):
            base = primary.image.convert("RGBA")
            mark = secondary.image.convert("RGBA")
            base.paste(mark, (x, y), mark)

        primary.replace(base)
