"""Unit tests for pipeline stage schemas and the pipeline mini-language."""

import pytest

from cl_image_proxy.common.errors import InvalidStageError, PipelineError, UnknownStageError
from cl_image_proxy.pipeline.stages import (
    Blend,
    Crop,
    Resize,
    Watermark,
    format_pipeline,
    parse_pipeline,
    parse_stage,
)

# ============================================================================
# SCHEMA TESTS
# ============================================================================


def test_resize_defaults():
    """Test Resize defaults to the nearest filter."""
    stage = Resize(width=10, height=20)
    assert stage.action == "resize"
    assert stage.filter == 1


def test_resize_filter_range():
    """Test Resize rejects filters outside 1..5."""
    with pytest.raises(ValueError):
        _ = Resize(width=10, height=10, filter=6)


def test_stages_are_frozen():
    """Test stages cannot be mutated after construction."""
    stage = Crop(x1=0, y1=0, x2=10, y2=10)
    with pytest.raises(ValueError):
        stage.x2 = 20  # type: ignore[misc]


def test_multi_image_flag():
    """Test only blend and watermark are multi-image stages."""
    assert not Resize.multi_image
    assert not Crop.multi_image
    assert Blend.multi_image
    assert Watermark.multi_image


# ============================================================================
# PARSING
# ============================================================================


def test_parse_resize_then_crop():
    """Test the two-stage pipeline produced for a cover crop."""
    assert parse_pipeline("resize!800,400,1|crop!0,0,400,400") == [
        Resize(width=800, height=400, filter=1),
        Crop(x1=0, y1=0, x2=400, y2=400),
    ]


def test_parse_skips_empty_segments():
    """Test empty segments between separators are ignored."""
    assert parse_pipeline("|resize!10,10||") == [Resize(width=10, height=10)]
    assert parse_pipeline("") == []


def test_parse_watermark_decodes_url():
    """Test secondary URLs are percent-decoded."""
    stage = parse_stage("watermark!https%3A%2F%2Fmt.ci%2Flogo.png,10,20")
    assert stage == Watermark(secondary_url="https://mt.ci/logo.png", x=10, y=20)


def test_parse_blend_default_mode():
    """Test blend without a mode composites 'over'."""
    stage = parse_stage("blend!https%3A%2F%2Fmt.ci%2Flogo.png")
    assert isinstance(stage, Blend)
    assert stage.mode == "over"


def test_parse_unknown_action():
    """Test unknown actions fail at construction."""
    with pytest.raises(UnknownStageError) as exc_info:
        _ = parse_pipeline("resize!10,10|rotate!90")
    assert exc_info.value.action == "rotate"


def test_parse_invalid_parameters():
    """Test non-numeric parameters are rejected."""
    with pytest.raises(InvalidStageError):
        _ = parse_stage("resize!wide,tall")


def test_parse_too_many_parameters():
    """Test extra positional parameters are rejected."""
    with pytest.raises(InvalidStageError):
        _ = parse_stage("crop!0,0,10,10,10")


def test_parse_multi_image_ignores_trailing_parameters():
    """Test blend / watermark drop parameters beyond their own."""
    stage = parse_stage("watermark!https%3A%2F%2Fmt.ci%2Flogo.png,10,10,10,10")
    assert stage == Watermark(secondary_url="https://mt.ci/logo.png", x=10, y=10)

    blend = parse_stage("blend!https%3A%2F%2Fmt.ci%2Flogo.png,multiply,extra")
    assert blend == Blend(secondary_url="https://mt.ci/logo.png", mode="multiply")


def test_parse_missing_parameters():
    """Test missing required parameters are rejected."""
    with pytest.raises(InvalidStageError):
        _ = parse_stage("crop!0,0")


def test_pipeline_errors_are_value_errors():
    """Test pipeline errors can be handled as ValueError."""
    assert issubclass(PipelineError, ValueError)
    assert issubclass(UnknownStageError, PipelineError)
    assert issubclass(InvalidStageError, PipelineError)


# ============================================================================
# FORMATTING
# ============================================================================


def test_format_pipeline():
    """Test stages render back to the mini-language."""
    stages = [
        Resize(width=800, height=400, filter=1),
        Crop(x1=0, y1=0, x2=400, y2=400),
        Watermark(secondary_url="https://cdn.example.com/logo.png", x=10, y=10),
    ]
    assert format_pipeline(stages) == (
        "resize!800,400,1|crop!0,0,400,400|watermark!https%3A%2F%2Fcdn.example.com%2Flogo.png,10,10"
    )


def test_format_then_parse_preserves_url_with_comma():
    """Test a URL containing a comma survives formatting."""
    stage = Blend(secondary_url="https://cdn.example.com/a,b.png", mode="multiply")
    assert parse_pipeline(format_pipeline([stage])) == [stage]
