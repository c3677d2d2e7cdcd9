import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.middleware.cors import CORSMiddleware

from game_analyzer.config import load_settings
from game_analyzer.errors import SessionAnalysisFailed, SessionNotFound
from game_analyzer.middleware.request_id import RequestIdMiddleware
from game_analyzer.orchestrator import AnalysisOrchestrator
from game_analyzer.probe import ConnectivityProbe
from game_analyzer.providers.factory import get_insight_client
from game_analyzer.store import SessionStore
from game_analyzer.telemetry import HTTP_REQUEST_DURATION_SECONDS, HTTP_REQUESTS_TOTAL

_settings = load_settings()

logger = logging.getLogger("game_analyzer")
# Emit under uvicorn:
# - honor LOG_LEVEL (default INFO)
# - attach a StreamHandler if none present
# - no propagation, so uvicorn's root handlers don't duplicate lines
logger.setLevel(getattr(logging, _settings.log_level, logging.INFO))
if not logger.handlers:
    _h = logging.StreamHandler()
    _h.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(_h)
logger.propagate = False
api_logger = logging.getLogger("game_analyzer.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: build the analysis pipeline and kick off the one-time probe
    settings = load_settings()
    client = get_insight_client(settings)
    probe = ConnectivityProbe(
        client,
        recheck_after_s=settings.probe_recheck_s,
        warm_up=settings.warmup_enabled,
    )
    orchestrator = AnalysisOrchestrator(
        client,
        probe,
        action_type=settings.shot_action_type,
        generate_timeout_s=settings.generate_timeout_s,
        insight_max_chars=settings.insight_max_chars,
        queue_size=settings.analysis_queue_size,
    )
    app.state.settings = settings
    app.state.probe = probe
    app.state.orchestrator = orchestrator
    app.state.session_store = SessionStore(orchestrator)
    app.state.probe_task = asyncio.create_task(probe.check())
    api_logger.info(json.dumps({
        "event": "analyzer_config",
        "provider": client.provider_name,
        "model": client.model,
        "url": client.base_url,
        "actionType": settings.shot_action_type,
    }))

    try:
        yield
    finally:
        # Shutdown
        task: asyncio.Task = app.state.probe_task
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        await client.aclose()


app = FastAPI(
    title="Gameplay Analyzer API",
    description="Real-time gameplay metrics and end-of-session skill analysis with optional AI insights.",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origin_list,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-Id"],
    allow_credentials=False,
)
app.add_middleware(RequestIdMiddleware)


# HTTP metrics middleware
@app.middleware("http")
async def _http_metrics_middleware(request: Request, call_next):
    t0 = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        # Label by route template so session ids don't explode cardinality
        route = request.scope.get("route")
        path = getattr(route, "path", None) or request.url.path
        HTTP_REQUESTS_TOTAL.labels(method=request.method, path=path, status_class=f"{status_code // 100}xx").inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(method=request.method, path=path).observe(time.perf_counter() - t0)


@app.exception_handler(SessionNotFound)
async def _session_not_found(request: Request, exc: SessionNotFound):
    return JSONResponse({"detail": "session not found", "sessionId": exc.session_id}, status_code=404)


def get_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def _request_id(request: Request):
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id")


async def _read_json(request: Request) -> Dict[str, Any]:
    """Parse the body permissively; anything but a JSON object reads as empty."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        parsed = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


@app.get("/health", tags=["meta"], description="Liveness plus AI probe state and store sizes.")
async def health(request: Request, store: SessionStore = Depends(get_store)):
    return {
        "status": "ok",
        "probeState": request.app.state.probe.to_dict(),
        "activeSessions": store.active_count,
        "totalPlayers": len(store.profiles),
    }


@app.get("/metrics", tags=["meta"], include_in_schema=False)
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/api/analyzer/status", tags=["meta"], description="Insight provider and diagnostic queue status.")
async def analyzer_status(request: Request):
    return request.app.state.orchestrator.status()


@app.post("/api/session/start", tags=["sessions"], description="Start a gameplay session; returns a sessionId.")
async def session_start(request: Request, store: SessionStore = Depends(get_store)):
    body = await _read_json(request)
    player_id = body.get("playerId") or request.query_params.get("playerId")
    if player_id is None or not str(player_id).strip():
        return JSONResponse({"detail": "playerId required"}, status_code=400)
    session = store.start(str(player_id).strip())
    api_logger.info(json.dumps({
        "event": "session_start_request",
        "requestId": _request_id(request),
        "sessionId": session.session_id,
    }))
    return {"sessionId": session.session_id, "startTime": session.start_time}


@app.post(
    "/api/session/{session_id}/action",
    tags=["sessions"],
    description="Ingest one gameplay action; returns the real-time snapshot and running session metrics.",
)
async def session_action(session_id: str, request: Request, store: SessionStore = Depends(get_store)):
    body = await _read_json(request)
    result = await store.ingest(session_id, body)
    return {"realtimeSnapshot": result.realtime_snapshot, "sessionMetrics": result.session_metrics}


@app.post(
    "/api/session/{session_id}/end",
    tags=["sessions"],
    description="End a session and return its analysis and the updated player profile.",
)
async def session_end(session_id: str, request: Request, store: SessionStore = Depends(get_store)):
    try:
        report = await store.end(session_id)
    except SessionAnalysisFailed as e:
        fallback = store.orchestrator.fallback_analysis(e.session)
        api_logger.error(json.dumps({
            "event": "session_end_failed",
            "requestId": _request_id(request),
            "sessionId": session_id,
        }))
        return JSONResponse(
            {"error": "analysis_failed", "fallbackAnalysis": fallback.to_dict()},
            status_code=500,
        )
    return {
        "analysis": report.outcome.result.to_dict(),
        "playerProfile": report.profile.to_dict(),
        "session": {
            "sessionId": report.session.session_id,
            "playerId": report.session.player_id,
            "duration": report.session.duration,
            "totalActions": len(report.session.actions),
        },
    }


@app.get("/api/player/{player_id}/stats", tags=["players"], description="Cross-session profile for a player.")
async def player_stats(player_id: str, store: SessionStore = Depends(get_store)):
    profile = store.profiles.get(player_id)
    if profile is None:
        return JSONResponse({"detail": "player not found", "playerId": player_id}, status_code=404)
    return profile.to_dict()


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    openapi_schema["tags"] = [
        {"name": "meta", "description": "Service metadata, liveness and metrics"},
        {"name": "sessions", "description": "Session lifecycle and action ingest"},
        {"name": "players", "description": "Cross-session player profiles"},
    ]
    openapi_schema["servers"] = [
        {"url": "http://localhost:3000", "description": "Local dev"}
    ]
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi  # type: ignore[assignment]
