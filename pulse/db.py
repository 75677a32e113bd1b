from __future__ import annotations
from datetime import datetime, timezone
import uuid
from sqlalchemy import Column, String, DateTime, Integer, JSON, ForeignKey, Index, UniqueConstraint, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, relationship, sessionmaker

class Base(DeclarativeBase):
    pass

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _new_id() -> str:
    return uuid.uuid4().hex

class CategoryRow(Base):
    __tablename__ = "event_categories"
    id = Column(String(32), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=False)
    name = Column(String(64), nullable=False)
    color = Column(Integer, nullable=False)
    emoji = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    events = relationship("EventRow", back_populates="category", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("name", "user_id", name="uq_category_name_user"),
        Index("idx_category_user_updated", "user_id", "updated_at"),
    )

class EventRow(Base):
    __tablename__ = "events"
    id = Column(String(32), primary_key=True, default=_new_id)
    category_id = Column(String(32), ForeignKey("event_categories.id", ondelete="CASCADE"), nullable=False)
    fields = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    category = relationship("CategoryRow", back_populates="events")

    __table_args__ = (
        Index("idx_event_category_created", "category_id", "created_at"),
    )

def make_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # reads run on worker threads
        engine = create_engine(url, pool_pre_ping=True, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _sqlite_fk(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()
    return engine

def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
