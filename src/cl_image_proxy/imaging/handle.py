"""Scoped ownership of a decoded pixel buffer."""

from __future__ import annotations

from types import TracebackType

from PIL import Image

from ..common.errors import HandleReleasedError


class ImageHandle:
    """Exclusive owner of one decoded image.

    The buffer is closed by ``release()``, which must happen exactly once.
    Use the handle as a context manager to guarantee release on every exit
    path. ``replace()`` swaps the buffer for an in-place edit and closes the
    previous one.
    """

    __slots__ = ("_image",)

    def __init__(self, image: Image.Image):
        self._image: Image.Image | None = image

    @property
    def released(self) -> bool:
        return self._image is None

    @property
    def image(self) -> Image.Image:
        if self._image is None:
            raise HandleReleasedError("image handle already released")
        return self._image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def replace(self, image: Image.Image) -> None:
        """Take ownership of ``image`` and close the buffer held until now."""
        previous = self.image
        if image is previous:
            return
        self._image = image
        previous.close()

    def release(self) -> None:
        if self._image is None:
            raise HandleReleasedError("image handle released twice")
        image, self._image = self._image, None
        image.close()

    def __enter__(self) -> "ImageHandle":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._image is not None:
            self.release()

    def __repr__(self) -> str:
        if self._image is None:
            return "ImageHandle(released)"
        return f"ImageHandle({self._image.mode} {self._image.width}x{self._image.height})"
