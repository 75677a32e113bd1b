from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple
from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from pulse.config import settings
from pulse.db import CategoryRow, EventRow, init_db, make_engine, make_session_factory
from pulse.errors import CategoryExists
from pulse.schemas import Category, Event, EventFilter, OrderBy

log = logging.getLogger(__name__)

class EventStore(Protocol):
    def find_events(self, f: EventFilter, order_by: Optional[OrderBy] = None, skip: Optional[int] = None,
                    take: Optional[int] = None, select_fields_only: bool = False,
                    distinct_by_payload: bool = False) -> List[Event]: ...

    def count_events(self, f: EventFilter) -> int: ...

    def find_first_event(self, f: EventFilter, order_by: OrderBy = "asc", timestamp_only: bool = False) -> Optional[Event]: ...

    def find_category(self, name: str, user_id: str) -> Optional[Category]: ...

    def list_categories(self, user_id: str) -> List[Category]: ...

def _to_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)

def _from_db(ts: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands timestamps back without an offset; they were written as UTC
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts

def payload_key(fields: Any) -> str:
    # json handles integers of any size; default=str covers anything else a payload may hold
    return json.dumps(fields, sort_keys=True, separators=(",", ":"), default=str)

def dedupe_payloads(events: Iterable[Event]) -> List[Event]:
    seen = set()
    out = []
    for e in events:
        key = payload_key(e.fields)
        if key in seen:
            continue
        seen.add(key)
        out.append(e)
    return out

def _category(row: CategoryRow, event_count: Optional[int] = None) -> Category:
    return Category(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        color=int(row.color),
        emoji=row.emoji,
        created_at=_from_db(row.created_at),
        updated_at=_from_db(row.updated_at),
        event_count=event_count,
    )

def _event(row: EventRow) -> Event:
    return Event(id=row.id, category_id=row.category_id, fields=row.fields, created_at=_from_db(row.created_at))

class SqlEventStore:
    """EventStore over SQLAlchemy. Every call opens its own session, so calls are safe to run on worker threads."""

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None):
        self.engine = engine or make_engine(url or settings.database_url)
        self.Session = make_session_factory(self.engine)

    def init_schema(self) -> None:
        init_db(self.engine)

    def _filtered(self, stmt, f: EventFilter):
        stmt = stmt.join(CategoryRow, EventRow.category_id == CategoryRow.id).where(CategoryRow.user_id == f.user_id)
        if f.category_id is not None:
            stmt = stmt.where(CategoryRow.id == f.category_id)
        if f.category_name is not None:
            stmt = stmt.where(CategoryRow.name == f.category_name)
        if f.created_from is not None:
            stmt = stmt.where(EventRow.created_at >= _to_utc(f.created_from))
        return stmt

    def _ordered(self, stmt, order_by: Optional[OrderBy]):
        if order_by == "desc":
            return stmt.order_by(EventRow.created_at.desc(), EventRow.id.desc())
        if order_by == "asc":
            return stmt.order_by(EventRow.created_at.asc(), EventRow.id.asc())
        return stmt

    def find_events(self, f: EventFilter, order_by: Optional[OrderBy] = None, skip: Optional[int] = None,
                    take: Optional[int] = None, select_fields_only: bool = False,
                    distinct_by_payload: bool = False) -> List[Event]:
        if select_fields_only:
            stmt = self._ordered(self._filtered(select(EventRow.fields).select_from(EventRow), f), order_by)
        else:
            stmt = self._ordered(self._filtered(select(EventRow), f), order_by)

        # payload equality is decided in python so JSON columns without an equality operator still dedupe
        if not distinct_by_payload:
            if skip:
                stmt = stmt.offset(skip)
            if take is not None:
                stmt = stmt.limit(take)

        with self.Session() as s:
            if select_fields_only:
                events = [Event(fields=fields) for fields in s.execute(stmt).scalars().all()]
            else:
                events = [_event(r) for r in s.execute(stmt).scalars().all()]

        if distinct_by_payload:
            events = dedupe_payloads(events)
            start = skip or 0
            events = events[start:start + take] if take is not None else events[start:]
        return events

    def count_events(self, f: EventFilter) -> int:
        stmt = self._filtered(select(func.count(EventRow.id)).select_from(EventRow), f)
        with self.Session() as s:
            return int(s.execute(stmt).scalar_one())

    def find_first_event(self, f: EventFilter, order_by: OrderBy = "asc", timestamp_only: bool = False) -> Optional[Event]:
        if timestamp_only:
            stmt = self._ordered(self._filtered(select(EventRow.created_at).select_from(EventRow), f), order_by).limit(1)
            with self.Session() as s:
                ts = s.execute(stmt).scalars().first()
            return Event(created_at=_from_db(ts)) if ts is not None else None

        stmt = self._ordered(self._filtered(select(EventRow), f), order_by).limit(1)
        with self.Session() as s:
            row = s.execute(stmt).scalars().first()
            return _event(row) if row is not None else None

    def find_category(self, name: str, user_id: str) -> Optional[Category]:
        event_count = (
            select(func.count(EventRow.id))
            .where(EventRow.category_id == CategoryRow.id)
            .correlate(CategoryRow)
            .scalar_subquery()
        )
        stmt = select(CategoryRow, event_count).where(CategoryRow.name == name, CategoryRow.user_id == user_id)
        with self.Session() as s:
            row = s.execute(stmt).first()
            if row is None:
                return None
            return _category(row[0], event_count=int(row[1]))

    def list_categories(self, user_id: str) -> List[Category]:
        stmt = (
            select(CategoryRow)
            .where(CategoryRow.user_id == user_id)
            .order_by(CategoryRow.updated_at.desc(), CategoryRow.name.asc())
        )
        with self.Session() as s:
            return [_category(r) for r in s.execute(stmt).scalars().all()]

    def create_category(self, user_id: str, name: str, color: int, emoji: Optional[str] = None) -> Category:
        try:
            with self.Session.begin() as s:
                row = CategoryRow(user_id=user_id, name=name, color=color, emoji=emoji)
                s.add(row)
                s.flush()
                return _category(row, event_count=0)
        except IntegrityError as exc:
            raise CategoryExists(name) from exc

    def create_categories(self, user_id: str, rows: Iterable[Tuple[str, int, Optional[str]]]) -> int:
        """Insert (name, color, emoji) rows, leaving names the user already has untouched."""
        rows = list(rows)
        with self.Session.begin() as s:
            existing = set(s.execute(
                select(CategoryRow.name).where(
                    CategoryRow.user_id == user_id,
                    CategoryRow.name.in_([name for name, _, _ in rows]),
                )
            ).scalars().all())
            inserted = 0
            for name, color, emoji in rows:
                if name in existing:
                    continue
                s.add(CategoryRow(user_id=user_id, name=name, color=color, emoji=emoji))
                existing.add(name)
                inserted += 1
        return inserted

    def delete_category(self, user_id: str, name: str) -> bool:
        with self.Session.begin() as s:
            row = s.execute(
                select(CategoryRow).where(CategoryRow.name == name, CategoryRow.user_id == user_id)
            ).scalars().first()
            if row is None:
                return False
            s.delete(row)
        return True

    def create_event(self, category_id: str, fields: Dict[str, Any], created_at: Optional[datetime] = None) -> Event:
        with self.Session.begin() as s:
            row = EventRow(category_id=category_id, fields=fields)
            if created_at is not None:
                row.created_at = _to_utc(created_at)
            s.add(row)
            s.flush()
            return _event(row)
