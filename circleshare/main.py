import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from circleshare.api.audience import router as audience_router
from circleshare.api.circles import router as circles_router
from circleshare.api.content import router as content_router
from circleshare.api.friendship import router as friendship_router
from circleshare.api.subscriptions import router as subscriptions_router
from circleshare.core.config import settings
from circleshare.services.notifier import Notifier, log_event

log = logging.getLogger("circleshare")
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    notifier = None
    if settings.NOTIFIER_ENABLED:
        notifier = Notifier(maxsize=settings.NOTIFIER_QUEUE_SIZE, handlers=[log_event])
        notifier.start()
        log.info("Notifier started (queue size %s)", settings.NOTIFIER_QUEUE_SIZE)
    app.state.notifier = notifier
    yield
    if notifier is not None:
        await notifier.stop()
        log.info("Notifier stopped")


app = FastAPI(title="circleshare", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(friendship_router)
app.include_router(subscriptions_router)
app.include_router(circles_router)
app.include_router(content_router)
app.include_router(audience_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
