"""Imaging - Pillow-backed capability, handles and encoders."""

from .capability import ImageCapability, PillowCapability
from .encoder import EncodedImage, OutputFormat, encode
from .handle import ImageHandle

__all__ = ["EncodedImage", "ImageCapability", "ImageHandle", "OutputFormat", "PillowCapability", "encode"]
