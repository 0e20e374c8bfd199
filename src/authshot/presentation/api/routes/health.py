from fastapi import APIRouter, Depends

from authshot.config import Settings
from authshot.presentation.dependencies import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health(cfg: Settings = Depends(get_settings)) -> dict[str, object]:  # type: ignore[misc]
    # Never echoes the credentials themselves
    return {
        "status": "ok",
        "credentials_configured": cfg.has_credentials,
        "default_login_url": cfg.login_url or None,
    }
