"""
Request and response models for the cache drift checker API.
"""

from pydantic import BaseModel, field_validator
from typing import Any, Optional, List, Dict
from datetime import datetime


class CreateRecordRequest(BaseModel):
    value: str
    cache_immediately: bool = True

    @field_validator('value')
    @classmethod
    def value_must_not_be_blank(cls, v):
        if not v.strip():
            raise ValueError('value cannot be blank')
        return v


class UpdateRecordRequest(BaseModel):
    value: str
    invalidate_cache: bool = True
    simulate_failure: bool = False

    @field_validator('value')
    @classmethod
    def value_must_not_be_blank(cls, v):
        if not v.strip():
            raise ValueError('value cannot be blank')
        return v


class RecordResponse(BaseModel):
    id: int
    value: str
    version: int
    last_updated: datetime


class CacheEntryResponse(BaseModel):
    id: int
    value: str
    version: int
    cached_at: datetime
    expires_at: datetime


class CacheStatsResponse(BaseModel):
    total_entries: int
    failure_rate: float
    network_delay_ms: int
    default_ttl_seconds: int
    expired_entries: int


class InvalidateResponse(BaseModel):
    id: int
    invalidated: bool
    message: str


class ClearCacheResponse(BaseModel):
    message: str
    removed: int


class FailureRateResponse(BaseModel):
    message: str
    new_rate: float


class StalenessDetailResponse(BaseModel):
    record_id: int
    db_version: int
    cache_version: int
    version_drift: int
    auto_fixed: bool


class DriftReportResponse(BaseModel):
    total_records: int
    cached_records: int
    stale_records: int
    drift_score: float
    auto_fixed_count: int
    verdict: str
    verdict_description: str
    generated_at: datetime
    stale_details: List[StalenessDetailResponse]


class DriftSummaryResponse(BaseModel):
    total_records: int
    stale_records: int
    drift_score: float
    verdict: str


class StaleCheckResponse(BaseModel):
    record_id: int
    is_stale: bool
    message: str


class RefreshResponse(BaseModel):
    message: str
    record_id: int
    version: int


class InvalidationEventResponse(BaseModel):
    id: Optional[int]
    record_id: int
    db_version: int
    cache_version: Optional[int]
    status: str
    reason: str
    timestamp: datetime


class InvalidationStatsResponse(BaseModel):
    total_invalidation_attempts: int
    failed_invalidations: int
    successful_invalidations: int
    failure_rate: str


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    record_count: int
    cache: Dict[str, Any]


class DriftMonitorStatusResponse(BaseModel):
    status: str
    reason: Optional[str] = None
    tasks: Dict[str, Dict[str, Any]] = {}
