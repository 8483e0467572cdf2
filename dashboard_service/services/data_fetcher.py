"""Data-fetch collaborators for widget data bindings"""
import hashlib
import logging
import random
from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional
import httpx

from ..config import settings
from ..models import DataSourceCategory, TimeRange
from ..widgets.registry import DATA_SOURCE_PRESETS

logger = logging.getLogger(__name__)

# Number of points returned per time range
SERIES_LENGTHS: Dict[TimeRange, int] = {
    TimeRange.LAST_7_DAYS: 7,
    TimeRange.LAST_30_DAYS: 30,
    TimeRange.LAST_90_DAYS: 90,
    TimeRange.LAST_12_MONTHS: 12,
    TimeRange.YEAR_TO_DATE: 12,
}

MONTHLY_RANGES = {TimeRange.LAST_12_MONTHS, TimeRange.YEAR_TO_DATE}


class AnalyticsFetcher(ABC):
    """Resolves a {source, field} binding to data for a time range"""

    @abstractmethod
    async def fetch(self, source: str, field: str, time_range: TimeRange) -> Any:
        """
        Fetch data for a binding

        Args:
            source: Data source category
            field: Field within the source, may be a dotted path
            time_range: Time range to cover

        Returns:
            A numeric series (list of {label, value} points) or a scalar

        Raises:
            Exception: The analytics backend is slow or unavailable
        """
        pass

    async def health_check(self) -> bool:
        return True


def _field_format(source: str, field: str) -> str:
    try:
        presets = DATA_SOURCE_PRESETS[DataSourceCategory(source)]
    except ValueError:
        return "number"
    for preset in presets:
        if preset["field"] == field:
            return preset["format"]
    return "number"


class MockAnalyticsFetcher(AnalyticsFetcher):
    """
    Deterministic mock data for local runs and tests.

    The same (source, field, time range) always yields the same values.
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self.today = today or date.today

    def _labels(self, time_range: TimeRange) -> List[str]:
        count = SERIES_LENGTHS[time_range]
        end = self.today()
        if time_range in MONTHLY_RANGES:
            labels = []
            year, month = end.year, end.month
            for _ in range(count):
                labels.append(f"{year:04d}-{month:02d}")
                month -= 1
                if month == 0:
                    year, month = year - 1, 12
            return list(reversed(labels))
        return [(end - timedelta(days=offset)).isoformat() for offset in range(count - 1, -1, -1)]

    async def fetch(self, source: str, field: str, time_range: TimeRange) -> List[Dict[str, Any]]:
        time_range = TimeRange(time_range)
        seed = int(hashlib.sha256(f"{source}:{field}:{time_range.value}".encode()).hexdigest()[:16], 16)
        rng = random.Random(seed)

        fmt = _field_format(source, field)
        if fmt == "percent":
            base, spread = rng.uniform(2, 60), 5.0
        elif fmt == "currency":
            base, spread = rng.uniform(5_000, 250_000), 0.15
        else:
            base, spread = rng.uniform(100, 50_000), 0.2

        points = []
        for label in self._labels(time_range):
            if fmt == "percent":
                value = min(100.0, max(0.0, base + rng.uniform(-spread, spread)))
            else:
                value = base * (1 + rng.uniform(-spread, spread))
            points.append({"label": label, "value": round(value, 2)})

        logger.debug(f"Mock data for {source}.{field} ({time_range.value}): {len(points)} points")
        return points


class HttpAnalyticsFetcher(AnalyticsFetcher):
    """Client for the analytics service"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.ANALYTICS_SERVICE_URL).rstrip("/")
        self.timeout = httpx.Timeout(timeout or settings.ANALYTICS_TIMEOUT)

    async def fetch(self, source: str, field: str, time_range: TimeRange) -> Any:
        time_range = TimeRange(time_range)
        logger.info(f"Fetching analytics {source}.{field} ({time_range.value})")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}/api/analytics/{source}",
                params={"field": field, "timeRange": time_range.value}
            )
            response.raise_for_status()
            result = response.json()

        if isinstance(result, dict) and "data" in result:
            return result["data"]
        return result

    async def health_check(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(5.0)) as client:
                response = await client.get(f"{self.base_url}/health")
                return response.status_code == 200
        except Exception as e:
            logger.warning(f"Analytics service health check failed: {e}")
            return False


# Singleton instance
_fetcher = None


def get_data_fetcher() -> AnalyticsFetcher:
    """Get global data fetcher; the mock is used when no analytics service is configured"""
    global _fetcher
    if _fetcher is None:
        if settings.ANALYTICS_SERVICE_URL:
            _fetcher = HttpAnalyticsFetcher()
        else:
            logger.info("ANALYTICS_SERVICE_URL not set, using mock analytics data")
            _fetcher = MockAnalyticsFetcher()
    return _fetcher
