import logging
import time

from fastapi import FastAPI, Request
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

logger = logging.getLogger(__name__)

links_created = Counter("share_links_created_total", "Share links created")
links_revoked = Counter("share_links_revoked_total", "Share links revoked by owners")
link_resolutions = Counter("share_link_resolutions_total", "Successful share link resolutions", ["visitor"])
failed_password_attempts = Counter("share_link_failed_password_total", "Wrong passwords submitted for share links")
lockouts_started = Counter("share_link_lockouts_total", "Per-code lockouts after repeated wrong passwords")
code_generation_exhausted = Counter(
    "share_code_generation_exhausted_total",
    "Short code generation gave up after exhausting retries; code length must grow"
)
code_collisions = Counter("share_code_collisions_total", "Short code uniqueness conflicts resolved by retry")


def setup_monitoring(app: FastAPI) -> None:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        if request.url.path.startswith("/share"):
            logger.info("%s %s - %s - %.4fs", request.method, request.url.path,
                        response.status_code, process_time)

        return response
