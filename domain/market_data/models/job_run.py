from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class JobType(str, Enum):
    """스케줄러가 관리하는 작업 종류"""
    DAILY_HISTORICAL = "daily-historical"
    FULL_HISTORICAL = "full-historical"
    HOURLY = "hourly"
    LATEST_PRICE = "latest-price"

    @classmethod
    def parse(cls, value: Any) -> "JobType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown job type: {value}") from None


@dataclass
class IngestionSummary:
    """과거 데이터 배치 수집 결과"""
    time_range: str
    start_date: date
    end_date: date
    total_inserted: int = 0
    total_updated: int = 0
    processed: int = 0
    errors: int = 0
    skipped: int = 0
    failed_symbols: List[str] = field(default_factory=list)
    records_by_symbol: Dict[str, int] = field(default_factory=dict)

    @property
    def records_written(self) -> int:
        return self.total_inserted + self.total_updated

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalInserted': self.total_inserted,
            'totalUpdated': self.total_updated,
            'processed': self.processed,
            'errors': self.errors,
            'skipped': self.skipped,
            'range': self.time_range,
            'startDate': self.start_date.isoformat(),
            'endDate': self.end_date.isoformat(),
        }


@dataclass
class RefreshSummary:
    """실시간 갱신(시간봉/최신가) 결과"""
    job_type: str
    trading_date: Optional[date] = None
    processed: int = 0
    inserted: int = 0
    cached: int = 0
    errors: int = 0
    skipped: int = 0
    failed_symbols: List[str] = field(default_factory=list)

    @property
    def records_written(self) -> int:
        return self.inserted

    def to_dict(self) -> Dict[str, Any]:
        return {
            'jobType': self.job_type,
            'tradingDate': self.trading_date.isoformat() if self.trading_date else None,
            'processed': self.processed,
            'inserted': self.inserted,
            'cached': self.cached,
            'errors': self.errors,
            'skipped': self.skipped,
        }


@dataclass
class JobRun:
    """
    스케줄된 작업 1회 실행의 상태.
    로그와 메모리에만 남기며, 실패한 실행은 같은 작업을 다시 트리거하면 됩니다.
    """
    job_type: JobType
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    symbols_planned: int = 0
    symbols_processed: int = 0
    records_written: int = 0
    errors: int = 0
    finished_at: Optional[datetime] = None
    failed: bool = False

    def complete(self, summary: Any) -> None:
        """엔진 결과(IngestionSummary / RefreshSummary)를 반영합니다."""
        self.symbols_processed = summary.processed
        self.records_written = summary.records_written
        self.errors = summary.errors
        self.finished_at = datetime.now(timezone.utc)

    def abort(self) -> None:
        self.failed = True
        self.finished_at = datetime.now(timezone.utc)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def __str__(self) -> str:
        duration = f"{self.duration_seconds:.1f}s" if self.duration_seconds is not None else "running"
        return (f"JobRun(type={self.job_type.value}, planned={self.symbols_planned}, "
                f"processed={self.symbols_processed}, written={self.records_written}, "
                f"errors={self.errors}, failed={self.failed}, duration={duration})")
