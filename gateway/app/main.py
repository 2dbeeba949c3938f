"""
FastAPI backend server for the Chat Archive Gateway.

Provides REST API endpoints for logging in, paging through chat history
and retrieving media files through the local media cache.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.concurrency import run_in_threadpool

from gateway.app.services import AuthService, ChatLog, ChatLogError
from gateway.errors import (
    BackendUnavailable,
    GatewayError,
    InvalidFilename,
    LocalIOFailure,
    ObjectNotFound,
    RemoteFetchFailed,
    Unauthorized,
)
from gateway.settings import settings
from gateway.storage import MediaCache, RetryPolicy, create_object_source
from gateway.types import (
    AuthCheckResponse,
    ChatPageResponse,
    HealthCheckResponse,
    LoginRequest,
    LoginResponse,
)

logger = logging.getLogger(__name__)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.api.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title=settings.api.title,
    description=settings.api.description,
    version=settings.api.version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# Global services
auth_service: Optional[AuthService] = None
chat_log: Optional[ChatLog] = None
media_cache: Optional[MediaCache] = None


async def init_services():
    """Initialize services on startup."""
    global auth_service, chat_log, media_cache

    for issue in settings.validate():
        logger.warning(f"Config: {issue}")

    auth_service = AuthService(settings.auth)

    chat_log = ChatLog(
        local_path=settings.chat.local_path,
        remote_url=settings.chat.remote_url,
        default_page_size=settings.chat.default_page_size,
        download_timeout=settings.chat.download_timeout,
    )
    await run_in_threadpool(chat_log.ensure_available)

    try:
        source = create_object_source(settings.source)
        media_cache = MediaCache(
            source=source,
            cache_dir=settings.cache.cache_dir,
            eviction_seconds=settings.cache.eviction_seconds,
            retry_policy=RetryPolicy(
                max_attempts=settings.cache.retry_attempts,
                backoff_seconds=settings.cache.retry_backoff_seconds,
            ),
        )
        media_cache.disk.purge_partials()
        logger.info(f"Media cache initialized at {settings.cache.cache_dir}")
    except Exception as e:
        logger.error(f"Failed to initialize media cache: {str(e)}", exc_info=True)
        media_cache = None


@app.on_event("startup")
async def startup_event():
    """FastAPI startup event handler."""
    logger.info("Starting the Chat Archive Gateway")
    await init_services()


@app.on_event("shutdown")
async def shutdown_event():
    """FastAPI shutdown event handler."""
    logger.info("Shutting down the Chat Archive Gateway")
    if media_cache:
        media_cache.shutdown()


def require_auth(authorization: Optional[str] = Header(None)) -> Dict:
    """Dependency rejecting requests without a valid bearer token."""
    if not auth_service:
        raise HTTPException(status_code=503, detail="Auth service not initialized")
    try:
        return auth_service.verify_header(authorization)
    except Unauthorized as e:
        logger.debug(f"Unauthorized request: {e}")
        raise HTTPException(status_code=401, detail="Unauthorized")


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - API health check."""
    return {
        "name": settings.api.title,
        "status": "operational",
        "version": settings.api.version,
    }


@app.get("/health", tags=["Health"], response_model=HealthCheckResponse)
async def health_check():
    """Health check endpoint."""
    return HealthCheckResponse(
        status="healthy" if media_cache else "degraded",
        timestamp=datetime.now(timezone.utc).isoformat(),
        media=media_cache.stats() if media_cache else None,
    )


@app.post("/api/login", tags=["Auth"], response_model=LoginResponse)
async def login(request: LoginRequest):
    """
    Exchange admin credentials for a bearer token.

    Returns:
        LoginResponse with token, or 401 with success=false
    """
    if not auth_service:
        raise HTTPException(status_code=503, detail="Auth service not initialized")

    token = auth_service.login(request.username, request.password)
    if token is None:
        return JSONResponse(status_code=401, content={"success": False})
    return LoginResponse(success=True, token=token)


@app.get("/api/check", tags=["Auth"], response_model=AuthCheckResponse)
async def check_auth(authorization: Optional[str] = Header(None)):
    """Report whether the request carries a valid token."""
    logged_in = False
    if auth_service:
        try:
            auth_service.verify_header(authorization)
            logged_in = True
        except Unauthorized:
            logged_in = False
    return AuthCheckResponse(logged_in=logged_in)


@app.get("/api/chat", tags=["Chat"], response_model=ChatPageResponse)
async def get_chat(
    page: Optional[int] = Query(None, description="1 = most recent page"),
    page_size: Optional[int] = Query(None, alias="pageSize", description="Messages per page"),
    user: Dict = Depends(require_auth),
):
    """
    Get one page of chat history.

    Pages count backwards from the newest message; messages within a page
    stay in chronological order.
    """
    if not chat_log:
        raise HTTPException(status_code=503, detail="Chat service not initialized")

    try:
        result = await run_in_threadpool(chat_log.page, page, page_size)
    except ChatLogError as e:
        logger.error(f"Failed to read chat log: {e}")
        raise HTTPException(status_code=500, detail="Server error")

    return ChatPageResponse(
        messages=result["messages"],
        page=result["page"],
        total_pages=result["total_pages"],
    )


@app.get("/api/media/{filename}", tags=["Media"])
async def get_media(filename: str, user: Dict = Depends(require_auth)):
    """
    Get a media file, downloading it into the local cache if needed.

    Args:
        filename: Object key, a single path segment

    Returns:
        The file bytes with a content type guessed from the filename

    Raises:
        400: Invalid filename
        404: Object not found in the remote store
        502: Remote store kept failing
        503: Remote store misconfigured or media service not initialized
        500: Local disk failure
    """
    if not media_cache:
        raise HTTPException(status_code=503, detail="Media service not initialized")

    try:
        local_path = await media_cache.resolve(filename)
        return FileResponse(local_path)

    except InvalidFilename as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ObjectNotFound as e:
        logger.warning(f"Media not found: {filename}")
        raise HTTPException(status_code=404, detail=str(e))
    except BackendUnavailable as e:
        logger.error(f"Media backend unavailable: {e}")
        raise HTTPException(status_code=503, detail="Media backend unavailable")
    except RemoteFetchFailed as e:
        logger.error(f"Failed to download {filename}: {e}")
        raise HTTPException(status_code=502, detail="Failed to download media")
    except LocalIOFailure as e:
        logger.error(f"Cache I/O failure for {filename}: {e}")
        raise HTTPException(status_code=500, detail="Server error")
    except GatewayError as e:
        logger.error(f"Error resolving {filename}: {e}")
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error serving {filename}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error")


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting FastAPI server")
    uvicorn.run(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.api.log_level.lower(),
    )
