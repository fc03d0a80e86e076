"""Query-string validation for image requests."""

from collections.abc import Mapping
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from ..common.config import Settings
from ..common.errors import InvalidParameterError
from ..imaging.encoder import OutputFormat

INVALID_SIZE_MESSAGE = "Invalid w or h"
INVALID_FORMAT_MESSAGE = "Invalid format"
INVALID_QUALITY_MESSAGE = "Invalid quality"


class TransformRequest(BaseModel):
    """Validated transform parameters. 0 for width / height means "not given"."""

    width: int = Field(0, ge=0)
    height: int = Field(0, ge=0)
    format: OutputFormat = OutputFormat.WEBP
    quality: int = Field(75, ge=0, le=100)

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


def _parse_non_negative(raw: str | None, message: str) -> int | None:
    if raw is None or raw.strip() == "":
        return None
    value = raw.strip()
    if not value.isdigit() or not value.isascii():
        raise InvalidParameterError(message)
    return int(value)


def parse_size(query: Mapping[str, str]) -> tuple[int, int]:
    """Validate w and h only. Absent or empty values are 0.

    Raises:
        InvalidParameterError: With "Invalid w or h" as message.
    """
    width = _parse_non_negative(query.get("w"), INVALID_SIZE_MESSAGE) or 0
    height = _parse_non_negative(query.get("h"), INVALID_SIZE_MESSAGE) or 0
    return width, height


def parse_transform_request(query: Mapping[str, str], settings: Settings) -> TransformRequest:
    """
    Validate w / h / format / quality.

    Absent or empty w and h are 0. format defaults to settings.default_format
    and quality to settings.default_quality.

    Raises:
        InvalidParameterError: With the response body as message.
    """
    width, height = parse_size(query)

    raw_format = query.get("format") or settings.default_format
    fmt = OutputFormat.parse(raw_format)
    if fmt is None:
        raise InvalidParameterError(INVALID_FORMAT_MESSAGE)

    quality = _parse_non_negative(query.get("quality"), INVALID_QUALITY_MESSAGE)
    if quality is None:
        quality = settings.default_quality
    elif quality > 100:
        raise InvalidParameterError(INVALID_QUALITY_MESSAGE)

    return TransformRequest(width=width, height=height, format=fmt, quality=quality)
