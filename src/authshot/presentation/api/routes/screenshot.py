from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.responses import PlainTextResponse, Response

from authshot.application.use_cases.capture_screenshot import CaptureScreenshotUseCase
from authshot.config import Settings
from authshot.domain.errors import (
    InvalidTargetUrlError,
    LoginTimedOutError,
    MissingCredentialsError,
    MissingTargetError,
)
from authshot.presentation.api.metrics import screenshots_total, sessions_total
from authshot.presentation.dependencies import get_capture_use_case, get_settings

router = APIRouter(prefix="/v1", tags=["screenshot"])


@router.get("/screenshot", response_model=None)
async def screenshot(  # type: ignore[misc]
    url: str | None = None,
    login: str | None = None,
    use_case: CaptureScreenshotUseCase = Depends(get_capture_use_case),
    cfg: Settings = Depends(get_settings),
) -> Response:
    # Query params override environment defaults
    target = url or cfg.target_url or None
    login_url = login or cfg.login_url or None
    try:
        result = await use_case.execute(target, login_url)
    except (MissingCredentialsError, InvalidTargetUrlError) as e:
        return PlainTextResponse(str(e), status_code=400)
    except MissingTargetError as e:
        return PlainTextResponse(str(e))
    except LoginTimedOutError as e:
        return PlainTextResponse(str(e), status_code=504)

    screenshots_total.labels(cache="hit" if result.from_cache else "miss").inc()
    if result.session_status:
        sessions_total.labels(status=result.session_status).inc()
    return Response(content=result.image, media_type=result.content_type)
