from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from pulse.errors import NotFound
from pulse.schemas import Category, Event, parse_color
from pulse.store import SqlEventStore

log = logging.getLogger(__name__)

QUICKSTART_CATEGORIES = [
    ("bug", 0xFF6B6B, "\U0001F41B"),
    ("sale", 0xFFEB6B, "\U0001F911"),
    ("question", 0x6C5CE7, "\U0001F615"),
]

def create_category(store: SqlEventStore, user_id: str, name: str, color: str, emoji: Optional[str] = None) -> Category:
    category = store.create_category(user_id=user_id, name=name.lower(), color=parse_color(color), emoji=emoji)
    log.info("created category=%s user=%s", category.name, user_id)
    return category

def delete_category(store: SqlEventStore, user_id: str, name: str) -> None:
    if not store.delete_category(user_id, name):
        raise NotFound(name)
    log.info("deleted category=%s user=%s", name, user_id)

def insert_quickstart_categories(store: SqlEventStore, user_id: str) -> int:
    count = store.create_categories(user_id, QUICKSTART_CATEGORIES)
    log.info("inserted %d quickstart categories for user=%s", count, user_id)
    return count

def record_event(store: SqlEventStore, user_id: str, name: str, fields: Dict[str, Any],
                 created_at: Optional[datetime] = None) -> Event:
    category = store.find_category(name, user_id)
    if category is None:
        raise NotFound(name)
    return store.create_event(category.id, fields, created_at=created_at)
