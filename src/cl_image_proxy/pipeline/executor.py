"""Pipeline Executor - applies stages to a primary image handle in order."""

from collections.abc import Mapping, Sequence

from loguru import logger

from ..common.errors import UnknownStageError
from ..imaging.capability import ImageCapability
from ..imaging.handle import ImageHandle
from .secondary import SecondaryFetchGate
from .stages import Blend, Crop, PipelineStage, Resize, Watermark

_KNOWN_STAGES = (Resize, Crop, Blend, Watermark)


def validate_pipeline(pipeline: Sequence[object]) -> None:
    """Reject a pipeline holding anything but the four known stages.

    Raises:
        UnknownStageError: For the first unknown element.
    """
    for stage in pipeline:
        if not isinstance(stage, _KNOWN_STAGES):
            action = getattr(stage, "action", type(stage).__name__)
            raise UnknownStageError(str(action))


class PipelineExecutor:
    """Threads a primary image handle through a pipeline.

    Ownership: the caller keeps ownership of the handle it passes in and
    owns the returned handle, which may be the same object. Intermediate
    handles created along the way are released by the executor as soon as
    the next stage replaces them, and on failure.
    """

    def __init__(self, capability: ImageCapability, secondary_gate: SecondaryFetchGate):
        self.capability: ImageCapability = capability
        self.secondary_gate: SecondaryFetchGate = secondary_gate

    async def execute(
        self,
        primary: ImageHandle,
        pipeline: Sequence[PipelineStage],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> ImageHandle:
        validate_pipeline(pipeline)

        current = primary
        try:
            for stage in pipeline:
                produced = await self._apply(current, stage, headers)
                if produced is not current and current is not primary:
                    current.release()
                current = produced
        except BaseException:
            if current is not primary:
                current.release()
            raise

        return current

    async def _apply(
        self,
        handle: ImageHandle,
        stage: PipelineStage,
        headers: Mapping[str, str] | None,
    ) -> ImageHandle:
        logger.debug(f"Applying {stage.to_text()} to {handle!r}")
        match stage:
            case Resize(width=width, height=height, filter=resample):
                return self.capability.resize(handle, width, height, resample)
            case Crop(x1=x1, y1=y1, x2=x2, y2=y2):
                return self.capability.crop(handle, x1, y1, x2, y2)
            case Blend() | Watermark():
                return await self.secondary_gate.apply(handle, stage, headers)
