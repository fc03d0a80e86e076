"""Secondary Fetch Gate - companion images for multi-image stages.

A companion image that is not whitelisted, cannot be fetched or cannot be
decoded turns its stage into a no-op; the primary image is returned
unchanged and the request carries on.
"""

from collections.abc import Mapping, Sequence

import httpx
from loguru import logger

from ..common.errors import SecondaryFetchError, TransformFault
from ..imaging.capability import ImageCapability
from ..imaging.handle import ImageHandle
from .stages import Blend, Watermark

# Inbound headers that describe the inbound connection, not the image request
_NON_FORWARDED_HEADERS = frozenset({"host", "content-length", "connection", "transfer-encoding"})


def in_white_list(url: str, allowed_hosts: Sequence[str]) -> bool:
    """Check the URL's hostname against hostname suffixes. Empty list allows all."""
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.host:
        return False
    if not allowed_hosts:
        return True
    return any(parsed.host.endswith(suffix) for suffix in allowed_hosts)


def forwarded_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {
        name: value for name, value in headers.items() if name.lower() not in _NON_FORWARDED_HEADERS
    }


class SecondaryFetchGate:
    """Fetches, decodes and applies companion images for blend / watermark stages."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        capability: ImageCapability,
        allowed_hosts: Sequence[str] = (),
        timeout: float | None = None,
    ):
        self.client: httpx.AsyncClient = client
        self.capability: ImageCapability = capability
        self.allowed_hosts: tuple[str, ...] = tuple(allowed_hosts)
        self.timeout: float | None = timeout

    async def fetch(self, url: str, headers: Mapping[str, str] | None = None) -> bytes:
        """Fetch companion image bytes.

        Raises:
            SecondaryFetchError: If the URL is not whitelisted or the fetch fails.
        """
        if not in_white_list(url, self.allowed_hosts):
            raise SecondaryFetchError(url, "host not in white list")

        try:
            response = await self.client.get(
                url,
                headers=forwarded_headers(headers),
                timeout=self.timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as exc:
            raise SecondaryFetchError(url, f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise SecondaryFetchError(url, f"status {response.status_code}")
        return response.content

    async def apply(
        self,
        primary: ImageHandle,
        stage: Blend | Watermark,
        headers: Mapping[str, str] | None = None,
    ) -> ImageHandle:
        """Run a multi-image stage against primary, in place.

        Returns:
            primary, mutated when the companion image was applied.
        """
        try:
            data = await self.fetch(stage.secondary_url, headers)
        except SecondaryFetchError as exc:
            logger.warning(f"Skipping {stage.action} stage: {exc}")
            return primary

        try:
            secondary = self.capability.decode(data)
        except TransformFault as exc:
            logger.warning(f"Skipping {stage.action} stage: cannot decode {stage.secondary_url}: {exc}")
            return primary

        with secondary:
            match stage:
                case Blend():
                    self.capability.blend(primary, secondary, stage.mode)
                case Watermark():
                    self.capability.watermark(primary, secondary, stage.x, stage.y)

        return primary
