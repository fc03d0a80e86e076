"""Pipeline stage schemas and the pipeline mini-language.

A pipeline is an ordered list of stages, executed left to right. In text
form stages are joined by ``|`` and each stage is ``action!p1,p2,...``::

    resize!800,400,1|crop!0,0,400,400
    resize!800,400,1|watermark!https%3A%2F%2Fcdn.example.com%2Flogo.png,10,10

Parameters are percent-decoded, so secondary image URLs are written
percent-encoded.
"""

from collections.abc import Sequence
from typing import ClassVar, Literal, Self
from urllib.parse import quote, unquote

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..common.errors import InvalidStageError, UnknownStageError

STAGE_SEPARATOR = "|"
ACTION_SEPARATOR = "!"
PARAM_SEPARATOR = ","

# ─────────────────────────────────────────────────────────────
# Base stage
# ─────────────────────────────────────────────────────────────


class BaseStage(BaseModel):
    """Common behaviour of all stages.

    ``param_names`` fixes the positional order of the stage parameters in
    the mini-language.
    """

    action: str
    param_names: ClassVar[tuple[str, ...]] = ()
    multi_image: ClassVar[bool] = False

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_params(cls, params: Sequence[str]) -> Self:
        action = cls.model_fields["action"].default
        # Multi-image stages drop trailing parameters instead of failing
        if cls.multi_image:
            params = params[: len(cls.param_names)]
        if len(params) > len(cls.param_names):
            raise InvalidStageError(
                action, f"expected at most {len(cls.param_names)} parameters, got {len(params)}"
            )
        values: dict[str, object] = dict(zip(cls.param_names, (unquote(p) for p in params)))
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise InvalidStageError(action, _describe(exc)) from exc

    def params(self) -> list[str]:
        return [str(getattr(self, name)) for name in self.param_names]

    def to_text(self) -> str:
        encoded = [quote(p, safe="") for p in self.params()]
        return f"{self.action}{ACTION_SEPARATOR}{PARAM_SEPARATOR.join(encoded)}"


def _describe(exc: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())


# ─────────────────────────────────────────────────────────────
# Single-image stages
# ─────────────────────────────────────────────────────────────


class Resize(BaseStage):
    """Resample to exactly width x height.

    filter: Nearest = 1, Triangle = 2, CatmullRom = 3, Gaussian = 4, Lanczos3 = 5
    """

    action: Literal["resize"] = "resize"
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)
    filter: int = Field(1, ge=1, le=5)

    param_names: ClassVar[tuple[str, ...]] = ("width", "height", "filter")


class Crop(BaseStage):
    """Keep the box from (x1, y1) to (x2, y2)."""

    action: Literal["crop"] = "crop"
    x1: int = Field(..., ge=0)
    y1: int = Field(..., ge=0)
    x2: int = Field(..., ge=0)
    y2: int = Field(..., ge=0)

    param_names: ClassVar[tuple[str, ...]] = ("x1", "y1", "x2", "y2")


# ─────────────────────────────────────────────────────────────
# Multi-image stages
# ─────────────────────────────────────────────────────────────


class Blend(BaseStage):
    action: Literal["blend"] = "blend"
    secondary_url: str = Field(..., min_length=1)
    mode: str = "over"

    param_names: ClassVar[tuple[str, ...]] = ("secondary_url", "mode")
    multi_image: ClassVar[bool] = True


class Watermark(BaseStage):
    action: Literal["watermark"] = "watermark"
    secondary_url: str = Field(..., min_length=1)
    x: int = 0
    y: int = 0

    param_names: ClassVar[tuple[str, ...]] = ("secondary_url", "x", "y")
    multi_image: ClassVar[bool] = True


PipelineStage = Resize | Crop | Blend | Watermark
Pipeline = list[PipelineStage]

STAGE_TYPES: dict[str, type[PipelineStage]] = {
    "resize": Resize,
    "crop": Crop,
    "blend": Blend,
    "watermark": Watermark,
}


# ─────────────────────────────────────────────────────────────
# Mini-language
# ─────────────────────────────────────────────────────────────


def parse_stage(text: str) -> PipelineStage:
    """Parse one ``action!p1,p2`` segment.

    Raises:
        UnknownStageError: If the action is not a known stage.
        InvalidStageError: If the parameters do not fit the stage.
    """
    action, _, options = text.strip().partition(ACTION_SEPARATOR)
    stage_type = STAGE_TYPES.get(action)
    if stage_type is None:
        raise UnknownStageError(action)
    params = options.split(PARAM_SEPARATOR) if options else []
    return stage_type.from_params(params)


def parse_pipeline(text: str) -> Pipeline:
    """Parse a ``|`` separated pipeline. Empty segments are skipped."""
    return [parse_stage(segment) for segment in text.split(STAGE_SEPARATOR) if segment.strip()]


def format_pipeline(stages: Sequence[PipelineStage]) -> str:
    return STAGE_SEPARATOR.join(stage.to_text() for stage in stages)
