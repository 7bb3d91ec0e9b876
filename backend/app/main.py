from __future__ import annotations

import io
import logging
import threading
from typing import Optional

from fastapi import Depends, FastAPI, Form, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from tourist_safety.conditions import EmptyTrace, NoCandidateAvailable, NotFound, TransitionRejected
from tourist_safety.lifecycle import TransitionResult
from tourist_safety.models import Coordinates, NearestUnit
from tourist_safety.playback import TraceAnimator
from tourist_safety.snapshot import (
    SnapshotError,
    load_snapshot,
    serialize_alert,
    serialize_point,
    serialize_tourist,
    serialize_unit,
)
from tourist_safety.system import DashboardSession, OperatorSession, UnknownEntity

from .config import DATA_DIR, LOG_LEVEL, OPERATOR_NAME, PLAYBACK_INTERVAL_SECONDS
from .report import build_efir_pdf

logger = logging.getLogger(__name__)

CONDITION_STATUS = {
    TransitionRejected: 409,
    NoCandidateAvailable: 409,
    EmptyTrace: 422,
    NotFound: 404,
}

app = FastAPI(title="Tourist Safety Monitoring API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_session: Optional[DashboardSession] = None
_session_lock = threading.Lock()


@app.on_event("startup")
def startup() -> None:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.on_event("shutdown")
def shutdown() -> None:
    if _session is not None:
        _session.close()


def build_session() -> DashboardSession:
    return DashboardSession(
        load_snapshot(DATA_DIR),
        session=OperatorSession(operator=OPERATOR_NAME),
        animator=TraceAnimator(interval=PLAYBACK_INTERVAL_SECONDS),
    )


def get_session() -> DashboardSession:
    global _session
    with _session_lock:
        if _session is None:
            _session = build_session()
    return _session


@app.exception_handler(UnknownEntity)
def unknown_entity_handler(request: Request, exc: UnknownEntity) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def raise_condition(condition) -> None:
    raise HTTPException(status_code=CONDITION_STATUS[type(condition)], detail=condition.message)


def nearest_payload(nearest: NearestUnit) -> dict:
    return {"unit": serialize_unit(nearest.unit), "distance_km": round(nearest.distance_km, 3)}


def transition_payload(result: TransitionResult) -> dict:
    if not result.accepted:
        raise_condition(result.condition)
    body = {"alert": serialize_alert(result.alert), "previous_status": result.previous.value}
    if result.assignment is not None:
        body["dispatch"] = nearest_payload(result.assignment)
    return body


def playback_payload(session: DashboardSession) -> dict:
    view = session.playback_state()
    cursor = session.animator.cursor
    return {
        "touristId": view.tourist_id,
        "state": view.state.value,
        "index": view.index,
        "length": view.length,
        "point": serialize_point(cursor.current) if cursor else None,
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/tourists")
def tourists(q: str = "", session: DashboardSession = Depends(get_session)):
    return [serialize_tourist(t) for t in session.search_tourists(q)]


@app.get("/api/tourist/{tourist_id}")
def tourist_detail(tourist_id: str, session: DashboardSession = Depends(get_session)):
    tourist = session.tourist(tourist_id)
    body = serialize_tourist(tourist)
    body["alerts"] = [serialize_alert(a) for a in session.alerts_for_tourist(tourist_id)]
    body["hasNewAlert"] = bool(session.new_alerts_for_tourist(tourist_id))
    return body


@app.get("/api/alerts")
def alerts(session: DashboardSession = Depends(get_session)):
    return [serialize_alert(a) for a in session.alerts_newest_first()]


@app.get("/api/alerts/{alert_id}")
def alert_detail(alert_id: str, session: DashboardSession = Depends(get_session)):
    return serialize_alert(session.alert(alert_id))


@app.get("/api/police-units")
def police_units(session: DashboardSession = Depends(get_session)):
    return [serialize_unit(u) for u in session.snapshot.units]


@app.get("/api/summary")
def summary(session: DashboardSession = Depends(get_session)):
    stats = session.summary()
    return {
        "operator": session.operator,
        "active_tourists": stats.active_tourists,
        "active_alerts": stats.active_alerts,
        "tourists_in_risk_zones": stats.tourists_in_risk_zones,
        "high_risk_zones": stats.high_risk_zones,
        "last_refresh": session.snapshot.loaded_at.isoformat(),
    }


@app.get("/api/nearest")
def nearest(lat: float, lng: float, limit: int = Query(3, ge=1), session: DashboardSession = Depends(get_session)):
    point = Coordinates(latitude=lat, longitude=lng)
    found = session.nearest_unit(point)
    if isinstance(found, NotFound):
        raise_condition(found)
    return {
        "nearest": nearest_payload(found),
        "ranked": [nearest_payload(n) for n in session.resolver.rank(point, session.snapshot.units, limit)],
    }


@app.post("/api/alerts")
def create_alert(
    tourist_id: str = Form(...),
    category: str = Form(...),
    description: str = Form(""),
    session: DashboardSession = Depends(get_session),
):
    return serialize_alert(session.create_alert(tourist_id, category, description))


@app.post("/api/alerts/simulate")
def simulate_alert(session: DashboardSession = Depends(get_session)):
    alert = session.simulate_alert()
    if alert is None:
        raise HTTPException(status_code=409, detail="No tourists to simulate an alert for")
    return serialize_alert(alert)


@app.post("/api/alerts/{alert_id}/acknowledge")
def acknowledge_alert(alert_id: str, session: DashboardSession = Depends(get_session)):
    return transition_payload(session.acknowledge(alert_id))


@app.post("/api/alerts/{alert_id}/dispatch")
def dispatch_alert(alert_id: str, session: DashboardSession = Depends(get_session)):
    return transition_payload(session.dispatch(alert_id))


@app.post("/api/alerts/{alert_id}/resolve")
def resolve_alert(alert_id: str, session: DashboardSession = Depends(get_session)):
    return transition_payload(session.resolve(alert_id))


# Handlers that touch the animator are async so its timers stay on the server's event loop.


@app.post("/api/refresh")
async def refresh(session: DashboardSession = Depends(get_session)):
    try:
        snapshot = await run_in_threadpool(load_snapshot, DATA_DIR)
    except (OSError, SnapshotError) as exc:
        logger.error("Snapshot refresh from %s failed: %s", DATA_DIR, exc)
        raise HTTPException(status_code=503, detail=f"Snapshot refresh failed: {exc}") from exc
    session.refresh(snapshot)
    return {"ok": True, "loaded_at": snapshot.loaded_at.isoformat()}


@app.get("/api/playback")
async def playback_state(session: DashboardSession = Depends(get_session)):
    return playback_payload(session)


@app.post("/api/playback/{tourist_id}/start")
async def playback_start(tourist_id: str, session: DashboardSession = Depends(get_session)):
    started = session.start_playback(tourist_id)
    if isinstance(started, EmptyTrace):
        raise_condition(started)
    return playback_payload(session)


@app.post("/api/playback/pause")
async def playback_pause(session: DashboardSession = Depends(get_session)):
    session.pause()
    return playback_payload(session)


@app.post("/api/playback/resume")
async def playback_resume(session: DashboardSession = Depends(get_session)):
    session.resume()
    return playback_payload(session)


@app.post("/api/playback/step-forward")
async def playback_step_forward(session: DashboardSession = Depends(get_session)):
    session.step_forward()
    return playback_payload(session)


@app.post("/api/playback/step-backward")
async def playback_step_backward(session: DashboardSession = Depends(get_session)):
    session.step_backward()
    return playback_payload(session)


@app.post("/api/playback/cancel")
async def playback_cancel(session: DashboardSession = Depends(get_session)):
    session.cancel_playback()
    return playback_payload(session)


@app.delete("/api/playback")
async def playback_clear(session: DashboardSession = Depends(get_session)):
    session.clear_selection()
    return playback_payload(session)


@app.post("/api/tourist/{tourist_id}/efir")
def export_efir(
    tourist_id: str,
    incident_type: str = Form("Missing Person"),
    description: str = Form(""),
    session: DashboardSession = Depends(get_session),
):
    tourist = session.tourist(tourist_id)
    content = build_efir_pdf(
        tourist,
        session.alerts_for_tourist(tourist_id),
        officer=session.operator,
        incident_type=incident_type,
        description=description,
    )
    filename = f"E-FIR_{tourist.name.replace(' ', '_')}.pdf"
    return StreamingResponse(
        io.BytesIO(content),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
