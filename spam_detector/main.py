import logging
import time

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from spam_detector.config import settings
from spam_detector.routes.watchlist import router as watchlist_router
from spam_detector.services.detector import detector
from spam_detector.services.honeypot import honeypot_checker
from spam_detector.services.provider_pool import rpc_pool
from spam_detector.services.storage import JsonStorage

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(name)-20s | %(levelname)-7s | %(message)s",
)
logger = logging.getLogger("app")


class RequestTimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"{request.method} {request.url.path} → {response.status_code} "
            f"({duration_ms:.1f}ms)"
        )
        return response


app = FastAPI(
    title="Token Spam Detector API",
    description=(
        "Watch newly created token contracts and flag spam tokens: "
        "impersonations, airdrop campaigns and honeypot baiting."
    ),
    version="0.1.0",
)

app.add_middleware(RequestTimingMiddleware)

app.include_router(watchlist_router)


@app.on_event("startup")
async def startup():
    logger.info("Loading honeypot list...")
    await honeypot_checker.load(JsonStorage(settings.data_path, "honeypots.json"))
    logger.info(
        f"Ready: chain {settings.chain_id}, {rpc_pool.size} RPC providers, "
        f"{len(detector.analyzer.modules)} analyzer modules"
    )


@app.on_event("shutdown")
async def shutdown():
    await rpc_pool.close()


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "chain_id": settings.chain_id,
        **detector.stats(),
    }
