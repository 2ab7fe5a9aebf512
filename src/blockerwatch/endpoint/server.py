"""FastAPI HTTP server exposing blockers to local collaborators.

Dashboards and automation query active/resolved blockers, resolve them,
trigger manual detections, and manage the signature catalog here.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from blockerwatch import __version__
from blockerwatch.activity.loop import WatchLoop
from blockerwatch.domain.models import (
    Blocker,
    BlockerSignature,
    BlockerStats,
    DetectionContext,
    HealthReport,
    TriggerKind,
)
from blockerwatch.engine.detector import BlockerDetector
from blockerwatch.rules.matcher import SignatureError

logger = logging.getLogger(__name__)


class ResolveRequest(BaseModel):
    action: str | None = Field(default=None, description="Action that resolved the blocker")


class DetectRequest(BaseModel):
    window_name: str = Field(default="", description="Focused window title")
    activity_duration_ms: int = Field(default=0, ge=0)


class DetectResponse(BaseModel):
    detected: bool
    blocker: Blocker | None = None


class InsightsResponse(BaseModel):
    id: str
    insights: str


def create_app(detector: BlockerDetector, watch_loop: WatchLoop | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        detector: Detection facade the routes operate on.
        watch_loop: Optional activity loop run in the background while
            the server is up.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Startup
        report = await detector.initialize()
        logger.info("Detector ready (%s)", report.state.value)
        task: asyncio.Task | None = None
        if watch_loop is not None:
            task = asyncio.create_task(watch_loop.run())
        yield
        # Shutdown
        if task is not None:
            watch_loop.stop()
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await detector.close()
        logger.info("Endpoint stopped")

    app = FastAPI(
        title="blockerwatch",
        description="Local blocker detection endpoint",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.detector = detector

    @app.get("/health")
    async def health() -> HealthReport:
        return detector.health()

    @app.get("/blockers")
    async def list_active() -> list[Blocker]:
        return detector.list_active_blockers()

    @app.get("/blockers/resolved")
    async def list_resolved(limit: int = 50) -> list[Blocker]:
        return detector.list_resolved_blockers(limit)

    @app.get("/blockers/stats")
    async def stats() -> BlockerStats:
        return detector.get_stats()

    @app.get("/blockers/{blocker_id}")
    async def get_blocker(blocker_id: str) -> Blocker:
        blocker = detector.get_blocker(blocker_id)
        if blocker is None:
            raise HTTPException(status_code=404, detail=f"Unknown blocker: {blocker_id}")
        return blocker

    @app.post("/blockers/{blocker_id}/resolve")
    async def resolve(blocker_id: str, request: ResolveRequest | None = None) -> dict[str, str]:
        action = request.action if request is not None else None
        blocker = await detector.resolve_blocker(blocker_id, action)
        if blocker is None:
            return {"status": "ignored", "reason": f"Unknown blocker: {blocker_id}"}
        return {"status": "ok", "id": blocker_id}

    @app.get("/blockers/{blocker_id}/insights")
    async def insights(blocker_id: str) -> InsightsResponse:
        text = await detector.insights(blocker_id)
        if text is None:
            raise HTTPException(status_code=404, detail=f"Unknown blocker: {blocker_id}")
        return InsightsResponse(id=blocker_id, insights=text)

    @app.post("/detect")
    async def detect(request: DetectRequest) -> DetectResponse:
        blocker = await detector.detect(
            DetectionContext(
                window_name=request.window_name,
                activity_duration_ms=request.activity_duration_ms,
                trigger=TriggerKind.MANUAL,
            )
        )
        return DetectResponse(detected=blocker is not None, blocker=blocker)

    @app.get("/signatures")
    async def list_signatures() -> list[BlockerSignature]:
        return detector.orchestrator.matcher.signatures()

    @app.post("/signatures", status_code=201)
    async def add_signature(signature: BlockerSignature) -> BlockerSignature:
        try:
            detector.orchestrator.matcher.add(signature)
        except SignatureError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return signature

    @app.delete("/signatures/{signature_id}")
    async def remove_signature(signature_id: str) -> dict[str, str]:
        if not detector.orchestrator.matcher.remove(signature_id):
            raise HTTPException(status_code=404, detail=f"Unknown signature: {signature_id}")
        return {"status": "ok", "id": signature_id}

    return app
