import asyncio
from contextlib import asynccontextmanager
from typing import Optional
from dataclasses import asdict
import hashlib
import os
import time
import traceback

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import logging
from fastapi import FastAPI, Depends, Query, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from picksboard.core.config import settings
from picksboard.core.errors import InvalidArgument
from picksboard.core.db import SessionLocal, get_session, init_db, engine
from picksboard.core.http import init_http_clients, close_http_clients
from picksboard.core.timeutils import utcnow
from picksboard.data import repository
from picksboard.data.mappers import league_name
from picksboard.jobs import build_btts_picks
from picksboard.services import runline

scheduler = AsyncIOScheduler()
logger = logging.getLogger(__name__)
APP_STARTED_AT = utcnow()
JOB_LOCKS: dict[str, asyncio.Lock] = {}
JOB_STATUS: dict[str, dict] = {}

JOBS = {
    "build_btts_picks": build_btts_picks.run,
}


def _advisory_key(name: str) -> int:
    digest = hashlib.blake2b(f"picksboard:{name}".encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") & 0x7FFF_FFFF_FFFF_FFFF


async def _try_advisory_lock(conn, key: int) -> bool:
    try:
        row = (await conn.execute(text("SELECT pg_try_advisory_lock(:k) AS ok"), {"k": int(key)})).first()
        return bool(row.ok) if row else False
    except Exception as e:
        logger.warning(f"Failed to acquire advisory lock {key}: {e}")
        return False


async def _advisory_unlock(conn, key: int) -> None:
    try:
        await conn.execute(text("SELECT pg_advisory_unlock(:k)"), {"k": int(key)})
    except Exception as e:
        logger.warning(f"Failed to release advisory lock {key}: {e}")


def _require_admin(x_admin_token: str | None = Header(default=None, alias="X-Admin-Token")):
    token = (settings.admin_token or "").strip()
    if not token:
        raise HTTPException(status_code=403, detail="Admin token is not configured")
    if x_admin_token != token:
        raise HTTPException(status_code=403, detail="Forbidden")


def _invalid_api_key() -> bool:
    v = (settings.football_data_key or "").strip()
    return v in {"", "YOUR_KEY"}


def _validate_runtime_config(*, for_scheduler: bool) -> None:
    env = (settings.app_env or "dev").strip().lower()
    if env in {"prod", "production"}:
        if not (settings.admin_token or "").strip():
            raise RuntimeError("ADMIN_TOKEN is required in prod")
        if _invalid_api_key() and settings.is_live:
            raise RuntimeError("FOOTBALL_DATA_API_KEY is required in prod")
    else:
        if for_scheduler and _invalid_api_key() and settings.is_live:
            logger.warning("FOOTBALL_DATA_API_KEY is not configured; build_btts_picks will find no fixtures")


def _get_lock(name: str) -> asyncio.Lock:
    lock = JOB_LOCKS.get(name)
    if lock is None:
        lock = asyncio.Lock()
        JOB_LOCKS[name] = lock
    return lock


def _set_status(store: dict, key: str, **values):
    cur = store.get(key) or {}
    cur.update(values)
    store[key] = cur


def _serialize_status(store: dict) -> dict:
    out: dict = {}
    for k, v in store.items():
        row = dict(v)
        for ts_key in ("started_at", "finished_at"):
            ts = row.get(ts_key)
            if ts is not None:
                row[ts_key] = ts.isoformat()
        out[k] = row
    return out


def _create_task(coro, *, label: str):
    task = asyncio.create_task(coro)

    def _done(t: asyncio.Task):
        try:
            t.result()
        except Exception:
            logger.exception("background_task_failed label=%s", label)

    task.add_done_callback(_done)
    return task


async def _run_job(job_name: str, job_fn, triggered_by: str | None = None, meta: Optional[dict] = None):
    lock = _get_lock(job_name)
    if lock.locked():
        logger.warning("job_skip_already_running job=%s", job_name)
        return
    async with lock:
        key = _advisory_key(job_name)
        async with engine.connect() as lock_conn:
            if not await _try_advisory_lock(lock_conn, key):
                logger.warning("job_skip_global_lock job=%s", job_name)
                return
            try:
                async with SessionLocal() as session:
                    run_id = await repository.job_run_start(session, job_name, triggered_by, meta=meta)
                    _set_status(JOB_STATUS, job_name, status="running", started_at=utcnow(), finished_at=None, error=None)
                    t0 = time.perf_counter()
                    try:
                        result = await job_fn(session)
                        dur_ms = int((time.perf_counter() - t0) * 1000)
                        _set_status(JOB_STATUS, job_name, status="ok", finished_at=utcnow(), error=None, result=result)
                        await repository.job_run_finish(
                            session, run_id, "ok", None, meta={"duration_ms": dur_ms, "result": result}
                        )
                    except Exception:
                        logger.exception("job_failed job=%s", job_name)
                        tb = traceback.format_exc(limit=50)
                        dur_ms = int((time.perf_counter() - t0) * 1000)
                        _set_status(JOB_STATUS, job_name, status="failed", finished_at=utcnow(), error="exception")
                        await session.rollback()
                        await repository.job_run_finish(session, run_id, "failed", tb[-8000:], meta={"duration_ms": dur_ms})
            finally:
                await _advisory_unlock(lock_conn, key)


async def _scheduled_build_btts_picks():
    await _run_job("build_btts_picks", build_btts_picks.run, triggered_by="scheduler")


def add_scheduled_jobs(target: AsyncIOScheduler) -> None:
    target.add_job(
        _scheduled_build_btts_picks,
        CronTrigger.from_crontab(settings.job_build_btts_picks_cron),
        id="build_btts_picks",
        max_instances=1,
        coalesce=True,
        misfire_grace_time=300,
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    await init_db()
    await init_http_clients()
    _validate_runtime_config(for_scheduler=bool(settings.scheduler_enabled))

    if settings.scheduler_enabled:
        workers_raw = os.getenv("UVICORN_WORKERS") or os.getenv("WEB_CONCURRENCY") or "1"
        try:
            workers = int(workers_raw)
        except ValueError:
            workers = 1
        env = (settings.app_env or "dev").strip().lower()
        if workers > 1:
            logger.error("scheduler_refuse_multiworker workers=%s", workers)
            raise RuntimeError("scheduler is not allowed with UVICORN_WORKERS/WEB_CONCURRENCY > 1; run a separate scheduler service")
        if env in {"prod", "production"} and not settings.allow_web_scheduler:
            logger.error("scheduler_refuse_in_web_process env=%s", env)
            raise RuntimeError("scheduler in web process is disabled in prod; set ALLOW_WEB_SCHEDULER=true or run a separate scheduler service")
        add_scheduled_jobs(scheduler)
        scheduler.start()
    try:
        yield
    finally:
        if settings.scheduler_enabled:
            scheduler.shutdown(wait=False)
        try:
            await close_http_clients()
        except Exception:
            logger.exception("http_client_close_failed")
        try:
            await engine.dispose()
        except Exception:
            logger.exception("engine_dispose_failed")


app = FastAPI(title="Picks Board", lifespan=lifespan)

# Read-only public API from any origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _league_filter(league: Optional[str]) -> Optional[str]:
    if league is None or not league.strip():
        return None
    return league_name(league)


@app.get("/health")
async def health():
    return {"ok": True, "mode": settings.app_mode, "app_started_at": APP_STARTED_AT.isoformat()}


@app.get("/api/v1/btts/picks")
async def api_btts_picks(
    league: Optional[str] = Query(None, description="League slug or name, e.g. premier-league"),
    include_past: bool = False,
    limit: int = Query(50, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
):
    since = None if include_past else utcnow()
    picks = await repository.load_picks(session, league=_league_filter(league), since=since, limit=limit)
    analysis = await repository.load_latest_analysis(session)
    return {
        "picks": picks,
        "total_picks": len(picks),
        "analysis": analysis,
        "threshold": settings.btts_confidence_threshold,
    }


@app.get("/api/v1/btts/team-stats")
async def api_btts_team_stats(
    league: Optional[str] = Query(None, description="League slug or name"),
    session: AsyncSession = Depends(get_session),
):
    rows = await repository.load_team_stats(session, league=_league_filter(league))
    return {"teams": rows, "window_size": settings.recency_window}


@app.get("/api/v1/btts/analysis")
async def api_btts_analysis(session: AsyncSession = Depends(get_session)):
    analysis = await repository.load_latest_analysis(session)
    if analysis is None:
        raise HTTPException(status_code=404, detail="No analysis has been run yet")
    return analysis


@app.post("/api/v1/run-now")
async def api_run_now(
    request: Request,
    job: str = Query("build_btts_picks", description="build_btts_picks"),
    _: None = Depends(_require_admin),
    x_admin_actor: str | None = Header(default=None, alias="X-Admin-Actor"),
):
    """Trigger a job on demand."""
    job_fn = JOBS.get(job)
    if job_fn is None:
        raise HTTPException(status_code=400, detail=f"job must be one of: {', '.join(sorted(JOBS))}")
    if _get_lock(job).locked():
        raise HTTPException(status_code=409, detail=f"{job} is already running")

    actor = (x_admin_actor or "").strip() or "unknown"
    client_ip = request.client.host if request.client else None
    audit_meta = {"actor": actor, "client_ip": client_ip}
    _create_task(_run_job(job, job_fn, triggered_by=f"manual:{actor}", meta=audit_meta), label=f"run-now:{job}")
    logger.info("Triggered run-now for %s", job)
    return {"ok": True, "started": job}


@app.get("/api/v1/jobs/status")
async def api_jobs_status(_: None = Depends(_require_admin)):
    return {"jobs": _serialize_status(JOB_STATUS)}


class RunlineTeamStatsIn(BaseModel):
    team: str
    runline_rate: float
    home_rate: float
    away_rate: float
    recent_form: Optional[float] = None


class RunlineGameIn(BaseModel):
    home_team: str
    away_team: str
    home_odds: int
    away_odds: int
    home_pitcher: Optional[str] = None
    away_pitcher: Optional[str] = None


class RunlineAnalyzeRequest(BaseModel):
    games: list[RunlineGameIn]
    team_stats: list[RunlineTeamStatsIn]
    threshold: Optional[float] = None


def _runline_pick_out(pick: runline.RunlinePick) -> dict:
    row = asdict(pick)
    row["probability"] = pick.probability
    return row


@app.post("/api/v1/runline/analyze")
async def api_runline_analyze(req: RunlineAnalyzeRequest):
    """Rank +1.5 runline picks for a slate of games against supplied team stats."""
    stats = {s.team: runline.RunlineTeamStats(**s.model_dump()) for s in req.team_stats}
    games = [runline.RunlineGame(**g.model_dump()) for g in req.games]
    threshold = req.threshold if req.threshold is not None else settings.runline_confidence_threshold
    try:
        picks = runline.analyze_runline_slate(games, stats, threshold=threshold)
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "picks": [_runline_pick_out(p) for p in picks],
        "total_picks": len(picks),
        "threshold": threshold,
    }
