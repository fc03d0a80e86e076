"""Derive the resize / crop stages for a requested bounding box."""

from .stages import Crop, Pipeline, Resize

# Sampling filter used for every resolved resize (Nearest)
RESIZE_FILTER = 1


def resolve_pipeline(width: int, height: int, natural_width: int, natural_height: int) -> Pipeline:
    """
    Plan the stages that fit a natural_width x natural_height image into
    the requested box, preserving aspect ratio.

    Args:
        width: Requested width, 0 derives it from height
        height: Requested height, 0 derives it from width
        natural_width: Width of the decoded source image
        natural_height: Height of the decoded source image

    Returns:
        The ordered stages. Empty means "serve the source unchanged": either
        nothing was requested or the request would upscale the source.

    Raises:
        ValueError: If a requested dimension is negative or a natural one is not positive
    """
    if width < 0 or height < 0:
        raise ValueError(f"Requested size must be non-negative, got {width}x{height}")
    if natural_width <= 0 or natural_height <= 0:
        raise ValueError(f"Natural size must be positive, got {natural_width}x{natural_height}")

    # Upscaling beyond the source resolution is refused
    if width > natural_width or height > natural_height:
        return []

    if width == 0 and height == 0:
        return []

    if width > 0 and height > 0:
        target_ratio = width / height
        natural_ratio = natural_width / natural_height
        if target_ratio == natural_ratio:
            return [Resize(width=width, height=height, filter=RESIZE_FILTER)]

        # Scale to cover the box at the natural ratio, then crop the overflow
        if target_ratio > natural_ratio:
            scaled_width = width
            scaled_height = natural_height * width // natural_width
        else:
            scaled_width = natural_width * height // natural_height
            scaled_height = height

        # Crop is anchored at the top-left corner, not centered
        return [
            Resize(width=scaled_width, height=scaled_height, filter=RESIZE_FILTER),
            Crop(x1=0, y1=0, x2=width, y2=height),
        ]

    if width == 0:
        width = height * natural_width // natural_height
    else:
        height = width * natural_height // natural_width
    return [Resize(width=width, height=height, filter=RESIZE_FILTER)]
