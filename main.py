from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
import logging

from models import AlbumRequest
from cache import AlbumCache
from errors import AlbumError, InvalidInputError
from icloud_client import SharedStreamsClient
from resolver import AlbumResolver
from settings import get_settings


logger = logging.getLogger(__name__)

settings = get_settings()

# Initialize FastAPI app
app = FastAPI(title="Shared Album Proxy")

# Initialize components, once per process
album_cache = AlbumCache(
    ttl_seconds=settings.cache_ttl_seconds,
    max_entries=settings.cache_max_entries,
)
streams_client = SharedStreamsClient(
    host=settings.streams_host,
    timeout=settings.upstream_timeout_seconds,
)
album_resolver = AlbumResolver(
    album_cache,
    streams_client,
    default_album_id=settings.default_album_id,
    preferred_derivatives=settings.preferred_derivatives,
    poster_frame_key=settings.poster_frame_key,
)

router = APIRouter()


def get_resolver() -> AlbumResolver:
    return album_resolver


@app.on_event("shutdown")
async def shutdown_event():
    """Close the upstream HTTP client"""
    await streams_client.close()


@app.exception_handler(AlbumError)
async def album_error_handler(request: Request, exc: AlbumError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse(
        {"error": "Internal server error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@app.get("/api/healthz")
async def health_check():
    """Simple health check endpoint"""
    return {"status": "ok"}


@router.post("/photo-album")
async def photo_album(request: Request, resolver: AlbumResolver = Depends(get_resolver)):
    """Resolve a shared album URL into direct photo and video URLs"""
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Invalid JSON body on photo-album request")
        raise InvalidInputError("Invalid JSON")

    try:
        album_request = AlbumRequest.model_validate(body)
    except ValidationError:
        raise InvalidInputError("Missing or invalid albumUrl")

    album = await resolver.resolve(album_request.album_url)
    return JSONResponse(album.to_json())


@router.get("/photo-album")
async def photo_album_probe():
    """Liveness probe for the album endpoint"""
    return {"ok": True}


@router.options("/photo-album")
async def photo_album_options():
    return Response(
        status_code=status.HTTP_204_NO_CONTENT,
        headers={"Allow": "GET, POST, OPTIONS"},
    )


# Served at the root and under /api, where the site frontend calls it
app.include_router(router)
app.include_router(router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port)
