from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from authshot.config import settings
from authshot.logger import configure_logging
from authshot.presentation.api.metrics import registry
from authshot.presentation.api.routes.health import router as health_router
from authshot.presentation.api.routes.screenshot import router as screenshot_router
from authshot.presentation.api.routes.sessions import router as sessions_router

configure_logging(settings.log_level)

app = FastAPI(title="authshot", version="0.1.0")
app.include_router(health_router)
app.include_router(screenshot_router)
app.include_router(sessions_router)


@app.get("/metrics")
def metrics() -> Response:  # type: ignore[misc]
    data = generate_latest(registry)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
