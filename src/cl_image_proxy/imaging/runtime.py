"""Process-wide imaging runtime initialization.

Codec plugins are registered and the WebP encoder is verified once per
process, at startup, never per request.
"""

import threading

from loguru import logger
from PIL import Image, features
from PIL import __version__ as pillow_version

_lock = threading.Lock()
_initialized: bool = False


def initialize_runtime() -> None:
    """Initialize Pillow's codec registry. Safe to call repeatedly.

    Raises:
        RuntimeError: If Pillow was built without WebP support.
    """
    global _initialized

    if _initialized:
        return

    with _lock:
        if _initialized:
            return

        _ = Image.init()
        if not features.check("webp"):
            raise RuntimeError("Pillow was built without WebP support; install a Pillow wheel with libwebp")

        _initialized = True
        logger.info(f"Imaging runtime initialized (Pillow {pillow_version})")


def is_initialized() -> bool:
    return _initialized
