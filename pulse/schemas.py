from __future__ import annotations
import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, computed_field, field_validator

OrderBy = Literal["asc", "desc"]

CATEGORY_NAME_RE = re.compile(r"^[a-zA-Z0-9-]+$")
HEX_COLOR_RE = re.compile(r"^#[0-9A-F]{6}$", re.IGNORECASE)

def parse_color(value: str) -> int:
    if not HEX_COLOR_RE.match(value or ""):
        raise ValueError("Color must be a valid hex color")
    return int(value[1:], 16)

def format_color(value: int) -> str:
    return f"#{value:06x}"

def is_emoji(value: str) -> bool:
    if not value:
        return False
    # variation selectors and joiners glue multi-codepoint emoji together
    glue = {"\u200d", "\ufe0e", "\ufe0f"}
    has_symbol = False
    for ch in value:
        if ch in glue or unicodedata.category(ch) in ("Mn", "Sk"):
            continue
        if unicodedata.category(ch) != "So":
            return False
        has_symbol = True
    return has_symbol

def validate_category_name(value: str) -> str:
    if not value:
        raise ValueError("Category name is required")
    if not CATEGORY_NAME_RE.match(value):
        raise ValueError("Category name can only contain letters, numbers or hyphens")
    return value

@dataclass(frozen=True)
class EventFilter:
    user_id: str
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    created_from: Optional[datetime] = None

    def __post_init__(self):
        if self.category_id is None and self.category_name is None:
            raise ValueError("EventFilter needs a category id or name")

class Category(BaseModel):
    id: str
    user_id: str
    name: str
    color: int
    emoji: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    event_count: Optional[int] = None

    @computed_field
    @property
    def color_hex(self) -> str:
        return format_color(self.color)

class Event(BaseModel):
    id: Optional[str] = None
    category_id: Optional[str] = None
    fields: Any = None
    created_at: Optional[datetime] = None

class CategoryMetrics(BaseModel):
    id: str
    name: str
    color: int
    emoji: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    unique_field_count: int
    event_count: int
    last_ping: Optional[datetime] = None

    @computed_field
    @property
    def color_hex(self) -> str:
        return format_color(self.color)

class EventPage(BaseModel):
    events: List[Event] = Field(default_factory=list)
    total_count: int
    unique_field_count: int

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    color: str = Field(..., min_length=1)
    emoji: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return validate_category_name(v)

    @field_validator("color")
    @classmethod
    def _color(cls, v: str) -> str:
        parse_color(v)
        return v

    @field_validator("emoji")
    @classmethod
    def _emoji(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_emoji(v):
            raise ValueError("Invalid Emoji")
        return v

class EventCreate(BaseModel):
    fields: Dict[str, Any] = Field(default_factory=dict)
