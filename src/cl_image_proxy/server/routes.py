"""Image route factory."""

from fastapi import APIRouter, BackgroundTasks, Request, Response

from .service import ImageService


def create_router(service: ImageService) -> APIRouter:
    """Create router with injected dependencies.

    Args:
        service: ImageService handling every image request

    Returns:
        Configured APIRouter with the health check and the catch-all image endpoint
    """
    router = APIRouter()

    @router.get("/healthz", include_in_schema=False)
    async def healthz():
        return {"status": "ok"}

    @router.get("/{object_key:path}")
    async def get_image(object_key: str, request: Request, background_tasks: BackgroundTasks) -> Response:
        """Serve an object, resized / cropped / re-encoded per the query string.

        Query:
            w, h: target box in pixels, 0 or absent derives from the other side
            format: jpeg | jpg | png | webp
            quality: 0-100
        """
        url = str(request.url)
        result = await service.serve(
            url=url,
            key=object_key,
            query=request.query_params,
            headers=request.headers,
        )
        if result.cacheable:
            background_tasks.add_task(service.remember, url, result)

        return Response(content=result.body, status_code=result.status, headers=result.headers)

    # Mark functions as used (accessed via FastAPI decorator)
    _ = healthz
    _ = get_image

    return router
