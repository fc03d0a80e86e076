"""Exception hierarchy for the image proxy.

Faults are raised where they happen and caught once at the top of the
request, which picks the response status by fault kind. Only
SecondaryFetchError is recovered locally.
"""

from typing_extensions import override


class ImageProxyError(Exception):
    """Base class for all image proxy errors."""


class InvalidParameterError(ImageProxyError):
    """A request parameter failed validation. The message is the response body."""

    def __init__(self, message: str):
        self.message: str = message
        super().__init__(message)

    @override
    def __str__(self):
        return self.message


class PipelineError(ImageProxyError, ValueError):
    """A pipeline could not be constructed."""


class UnknownStageError(PipelineError):
    def __init__(self, action: str):
        self.action: str = action
        super().__init__(f"Unknown pipeline action: {action!r}")


class InvalidStageError(PipelineError):
    def __init__(self, action: str, reason: str):
        self.action: str = action
        self.reason: str = reason
        super().__init__(f"Invalid parameters for {action!r}: {reason}")


class TransformFault(ImageProxyError):
    """The image capability failed while decoding, transforming or encoding."""

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation: str = operation
        self.cause: BaseException | None = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Image {operation} failed{detail}")


class SecondaryFetchError(ImageProxyError):
    """A companion image could not be obtained. Never surfaced to clients."""

    def __init__(self, url: str, reason: str):
        self.url: str = url
        self.reason: str = reason
        super().__init__(f"Secondary image {url} unavailable: {reason}")


class HandleReleasedError(RuntimeError):
    """An image handle was used or released after it had been released."""
