"""
HTTP surface for the record store, the cache engine and the consistency analyzer.
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, Query, Request, Response

from .schemas import (
    CreateRecordRequest,
    UpdateRecordRequest,
    RecordResponse,
    CacheEntryResponse,
    CacheStatsResponse,
    InvalidateResponse,
    ClearCacheResponse,
    FailureRateResponse,
    StalenessDetailResponse,
    DriftReportResponse,
    DriftSummaryResponse,
    StaleCheckResponse,
    RefreshResponse,
    InvalidationEventResponse,
    InvalidationStatsResponse,
    HealthResponse,
    DriftMonitorStatusResponse,
)
from ..core import dao, heartbeat
from ..core.analyzer import ConsistencyAnalyzer
from ..core.cache_engine import CacheEngine
from ..core.config import (
    VERSION, debug_enabled, build_cache_engine, validate_cache_config,
    get_drift_monitor_auto_fix, get_drift_monitor_interval, is_drift_monitor_enabled
)
from ..core.dao import RecordNotFoundError
from ..core.db import health_check, init_db
from ..core.record_service import RecordService
from util.logging import logger

DRIFT_CHECK_TASK = "drift_check"


def _record_response(record) -> RecordResponse:
    return RecordResponse(id=record.id, value=record.value, version=record.version, last_updated=record.last_updated)


def _entry_response(entry) -> CacheEntryResponse:
    return CacheEntryResponse(
        id=entry.id, value=entry.value, version=entry.version,
        cached_at=entry.cached_at, expires_at=entry.expires_at
    )


def _event_response(event) -> InvalidationEventResponse:
    return InvalidationEventResponse(
        id=event.id,
        record_id=event.record_id,
        db_version=event.db_version,
        cache_version=event.cache_version,
        status=event.status.value,
        reason=event.reason,
        timestamp=event.timestamp
    )


def get_cache_engine(request: Request) -> CacheEngine:
    return request.app.state.cache_engine


def get_record_service(request: Request) -> RecordService:
    return request.app.state.record_service


def get_analyzer(request: Request) -> ConsistencyAnalyzer:
    return request.app.state.analyzer


def create_app(cache_engine: Optional[CacheEngine] = None) -> FastAPI:
    """
    Build the API. The cache engine is created once here (or taken from the
    caller) and lives as long as the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db()
        for issue in validate_cache_config():
            logger.warning(f"Cache configuration: {issue}")

        engine = cache_engine if cache_engine is not None else build_cache_engine()
        app.state.cache_engine = engine
        app.state.record_service = RecordService(engine)
        app.state.analyzer = ConsistencyAnalyzer(engine)

        monitor_thread = None
        if is_drift_monitor_enabled():
            heartbeat.register_task(
                DRIFT_CHECK_TASK,
                get_drift_monitor_interval(),
                heartbeat.drift_check_task(app.state.analyzer, get_drift_monitor_auto_fix())
            )
            monitor_thread = heartbeat.start_background()

        logger.info(f"Cache drift checker {VERSION} started")
        try:
            yield
        finally:
            if monitor_thread is not None:
                heartbeat.stop()
                monitor_thread.join(timeout=5)
                heartbeat.unregister_task(DRIFT_CHECK_TASK)
            removed = engine.clear()
            logger.info(f"Cache drift checker stopped, dropped {removed} cache entries")

    app = FastAPI(
        title="Cache Drift Checker API",
        version=VERSION,
        description="Measures drift between a versioned record store and its cache",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None,
        lifespan=lifespan
    )

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint(cache: CacheEngine = Depends(get_cache_engine)):
        """Check system health."""
        db_health = health_check()
        return HealthResponse(
            status="healthy" if db_health else "unhealthy",
            version=VERSION,
            db_health=db_health,
            record_count=dao.count_records() if db_health else 0,
            cache=cache.stats()
        )

    # Record store endpoints

    @app.post("/db/create", response_model=RecordResponse, status_code=201)
    def create_record_endpoint(request: CreateRecordRequest, service: RecordService = Depends(get_record_service)):
        record = service.create_record(request.value, request.cache_immediately)
        return _record_response(record)

    @app.put("/db/update/{record_id}", response_model=RecordResponse)
    def update_record_endpoint(record_id: int, request: UpdateRecordRequest,
                               service: RecordService = Depends(get_record_service)):
        try:
            record = service.update_record(
                record_id,
                request.value,
                invalidate_cache=request.invalidate_cache,
                simulate_failure=request.simulate_failure
            )
        except RecordNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return _record_response(record)

    # Define /db/all BEFORE /db/{record_id} to avoid path parameter conflict
    @app.get("/db/all", response_model=List[RecordResponse])
    def list_records_endpoint(service: RecordService = Depends(get_record_service)):
        return [_record_response(record) for record in service.list_records()]

    @app.get("/db/{record_id}", response_model=RecordResponse)
    def get_record_endpoint(record_id: int, service: RecordService = Depends(get_record_service)):
        record = service.get_record(record_id)
        if not record:
            raise HTTPException(status_code=404, detail="Record not found")
        return _record_response(record)

    @app.delete("/db/{record_id}", status_code=204)
    def delete_record_endpoint(record_id: int, service: RecordService = Depends(get_record_service)):
        try:
            service.delete_record(record_id)
        except RecordNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return Response(status_code=204)

    # Cache endpoints

    @app.get("/cache/all", response_model=List[CacheEntryResponse])
    def list_cache_endpoint(cache: CacheEngine = Depends(get_cache_engine)):
        return [_entry_response(entry) for entry in cache.list().values()]

    @app.get("/cache/stats", response_model=CacheStatsResponse)
    def cache_stats_endpoint(cache: CacheEngine = Depends(get_cache_engine)):
        return CacheStatsResponse(**cache.stats())

    @app.get("/cache/{record_id}", response_model=CacheEntryResponse)
    def get_cache_endpoint(record_id: int, cache: CacheEngine = Depends(get_cache_engine)):
        entry = cache.get(record_id)
        if not entry:
            raise HTTPException(status_code=404, detail="Cache entry not found")
        return _entry_response(entry)

    @app.delete("/cache/clear", response_model=ClearCacheResponse)
    def clear_cache_endpoint(cache: CacheEngine = Depends(get_cache_engine)):
        removed = cache.clear()
        return ClearCacheResponse(message="Cache cleared successfully", removed=removed)

    @app.delete("/cache/{record_id}", response_model=InvalidateResponse)
    def invalidate_cache_endpoint(record_id: int, cache: CacheEngine = Depends(get_cache_engine)):
        success = cache.invalidate(record_id)
        return InvalidateResponse(
            id=record_id,
            invalidated=success,
            message="Cache invalidated successfully" if success else "Invalidation failed"
        )

    @app.post("/cache/config/failure-rate", response_model=FailureRateResponse)
    def update_failure_rate_endpoint(rate: float = Query(..., ge=0.0, le=1.0),
                                     cache: CacheEngine = Depends(get_cache_engine)):
        new_rate = cache.set_failure_rate(rate)
        return FailureRateResponse(message="Failure rate updated", new_rate=new_rate)

    # Analysis endpoints

    @app.get("/analyze/drift", response_model=DriftReportResponse)
    def analyze_drift_endpoint(auto_fix: bool = False, analyzer: ConsistencyAnalyzer = Depends(get_analyzer)):
        report = analyzer.analyze_drift(auto_fix=auto_fix)
        return DriftReportResponse(
            total_records=report.total_records,
            cached_records=report.cached_records,
            stale_records=report.stale_records,
            drift_score=report.drift_score,
            auto_fixed_count=report.auto_fixed_count,
            verdict=report.verdict.value,
            verdict_description=report.verdict.description,
            generated_at=report.generated_at,
            stale_details=[
                StalenessDetailResponse(
                    record_id=detail.record_id,
                    db_version=detail.db_version,
                    cache_version=detail.cache_version,
                    version_drift=detail.version_drift,
                    auto_fixed=detail.auto_fixed
                )
                for detail in report.stale_details
            ]
        )

    @app.get("/analyze/drift/summary", response_model=DriftSummaryResponse)
    def drift_summary_endpoint(analyzer: ConsistencyAnalyzer = Depends(get_analyzer)):
        return DriftSummaryResponse(**analyzer.get_quick_drift_summary())

    @app.get("/analyze/stale/{record_id}", response_model=StaleCheckResponse)
    def stale_check_endpoint(record_id: int, analyzer: ConsistencyAnalyzer = Depends(get_analyzer)):
        is_stale = analyzer.is_record_stale(record_id)
        return StaleCheckResponse(
            record_id=record_id,
            is_stale=is_stale,
            message="Cache is stale" if is_stale else "Cache is consistent"
        )

    @app.post("/analyze/refresh/{record_id}", response_model=RefreshResponse)
    def force_refresh_endpoint(record_id: int, analyzer: ConsistencyAnalyzer = Depends(get_analyzer)):
        try:
            entry = analyzer.force_refresh(record_id)
        except RecordNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return RefreshResponse(message="Cache refreshed successfully", record_id=record_id, version=entry.version)

    @app.get("/analyze/monitor", response_model=DriftMonitorStatusResponse)
    def drift_monitor_status_endpoint():
        """Periodic drift monitor state, including the latest drift check summary."""
        return DriftMonitorStatusResponse(**heartbeat.get_status())

    @app.get("/analyze/events", response_model=List[InvalidationEventResponse])
    def list_events_endpoint(service: RecordService = Depends(get_record_service)):
        return [_event_response(event) for event in service.list_invalidation_events()]

    @app.get("/analyze/events/recent", response_model=List[InvalidationEventResponse])
    def recent_events_endpoint(limit: int = Query(10, ge=1, le=500),
                               service: RecordService = Depends(get_record_service)):
        return [_event_response(event) for event in service.list_recent_invalidation_events(limit)]

    @app.get("/analyze/events/stats", response_model=InvalidationStatsResponse)
    def event_stats_endpoint(service: RecordService = Depends(get_record_service)):
        return InvalidationStatsResponse(**service.invalidation_stats())

    @app.get("/analyze/events/record/{record_id}", response_model=List[InvalidationEventResponse])
    def record_events_endpoint(record_id: int, service: RecordService = Depends(get_record_service)):
        return [_event_response(event) for event in service.list_events_for_record(record_id)]

    return app


app = create_app()
