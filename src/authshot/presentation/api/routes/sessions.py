from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.responses import PlainTextResponse

from authshot.application.ports.browser_port import BrowserFactoryPort
from authshot.application.use_cases.clear_session import ClearSessionUseCase
from authshot.application.use_cases.ensure_session import EnsureSessionUseCase
from authshot.config import Settings
from authshot.domain.errors import LoginTimedOutError, MissingCredentialsError, MissingTargetError, SessionStoreError
from authshot.presentation.api.metrics import sessions_total
from authshot.presentation.dependencies import (
    get_browser_factory,
    get_clear_use_case,
    get_ensure_session,
    get_settings,
)

router = APIRouter(prefix="/v1", tags=["sessions"])


@router.delete("/sessions", response_model=None)
def clear_session(  # type: ignore[misc]
    login: str | None = None,
    use_case: ClearSessionUseCase = Depends(get_clear_use_case),
    cfg: Settings = Depends(get_settings),
) -> PlainTextResponse:
    login_url = login or cfg.login_url or None
    try:
        use_case.execute(login_url)
    except MissingTargetError as e:
        return PlainTextResponse(str(e), status_code=400)
    except SessionStoreError as e:
        return PlainTextResponse(str(e), status_code=500)
    return PlainTextResponse(f"Cleared cookies for {login_url}")


@router.post("/auth/ensure_session", response_model=None)
async def ensure_session(  # type: ignore[misc]
    login: str | None = None,
    url: str | None = None,
    use_case: EnsureSessionUseCase = Depends(get_ensure_session),
    browsers: BrowserFactoryPort = Depends(get_browser_factory),
    cfg: Settings = Depends(get_settings),
) -> dict[str, str | None] | PlainTextResponse:
    login_url = login or cfg.login_url or None
    if not login_url:
        return PlainTextResponse("Missing login URL", status_code=400)
    try:
        creds = cfg.credentials()
    except MissingCredentialsError as e:
        return PlainTextResponse(str(e), status_code=400)

    async with browsers.open_page() as page:
        try:
            result = await use_case.execute(
                page, login_url, creds, selectors=cfg.selector_config(), expected_destination=url
            )
        except LoginTimedOutError as e:
            sessions_total.labels(status="TIMED_OUT").inc()
            return PlainTextResponse(str(e), status_code=504)

    sessions_total.labels(status=result.status).inc()
    return {
        "status": result.status,
        "final_url": result.final_url,
        "expires_at": result.expires_at.isoformat() if result.expires_at else None,
        "message": result.message,
    }
