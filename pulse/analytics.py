from __future__ import annotations
import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, List, Optional, TypeVar
from zoneinfo import ZoneInfo

from pulse.concurrency import bounded_map, join_all
from pulse.config import Settings, settings as default_settings
from pulse.errors import NotFound
from pulse.fieldset import distinct_field_count
from pulse.schemas import Category, CategoryMetrics, EventFilter, EventPage
from pulse.store import EventStore
from pulse.windowing import TimeRange, resolve_window_start, start_of_month

T = TypeVar("T")

log = logging.getLogger(__name__)

class CategoryAnalytics:
    """Read-only analytics over an EventStore.

    Each operation issues its reads concurrently and joins them before
    building a result. Store calls are blocking and run on worker threads.
    """

    def __init__(self, store: EventStore, settings: Optional[Settings] = None):
        self.store = store
        self.s = settings or default_settings
        self.tz = ZoneInfo(self.s.timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    async def _read(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(fn, *args, **kwargs)

    async def _unique_fields(self, f: EventFilter) -> int:
        events = await self._read(self.store.find_events, f, select_fields_only=True, distinct_by_payload=True)
        return distinct_field_count(e.fields for e in events)

    async def compute_metrics(self, category: Category, now: Optional[datetime] = None) -> CategoryMetrics:
        now = now or self.now()
        month = EventFilter(user_id=category.user_id, category_id=category.id, created_from=start_of_month(now))
        all_time = EventFilter(user_id=category.user_id, category_id=category.id)

        unique_field_count, event_count, first = await join_all(
            self._unique_fields(month),
            self._read(self.store.count_events, month),
            self._read(self.store.find_first_event, all_time, "asc", timestamp_only=True),
        )
        log.debug("metrics for category=%s events=%d fields=%d", category.name, event_count, unique_field_count)

        return CategoryMetrics(
            id=category.id,
            name=category.name,
            color=category.color,
            emoji=category.emoji,
            created_at=category.created_at,
            updated_at=category.updated_at,
            unique_field_count=unique_field_count,
            event_count=event_count,
            last_ping=first.created_at if first is not None else None,
        )

    async def list_category_metrics(self, user_id: str, now: Optional[datetime] = None) -> List[CategoryMetrics]:
        now = now or self.now()
        categories = await self._read(self.store.list_categories, user_id)
        log.debug("computing metrics for %d categories of user=%s", len(categories), user_id)
        return await bounded_map(
            lambda c: self.compute_metrics(c, now),
            categories,
            limit=self.s.max_concurrent_categories,
        )

    async def query_events(self, name: str, user_id: str, page: int, limit: int, time_range: TimeRange,
                           now: Optional[datetime] = None) -> EventPage:
        now = now or self.now()
        f = EventFilter(user_id=user_id, category_name=name, created_from=resolve_window_start(time_range, now))

        events, total_count, unique_field_count = await join_all(
            self._read(self.store.find_events, f, order_by="desc", skip=(page - 1) * limit, take=limit),
            self._read(self.store.count_events, f),
            self._unique_fields(f),
        )
        log.debug("events page=%d limit=%d range=%s category=%s total=%d", page, limit, time_range, name, total_count)
        return EventPage(events=events, total_count=total_count, unique_field_count=unique_field_count)

    async def has_events(self, name: str, user_id: str) -> bool:
        category = await self._read(self.store.find_category, name, user_id)
        if category is None:
            raise NotFound(name)
        return (category.event_count or 0) > 0
