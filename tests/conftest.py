from datetime import datetime, timezone
import pytest
from pulse.store import SqlEventStore

# Wednesday
NOW = datetime(2026, 2, 18, 12, 0, 0, tzinfo=timezone.utc)

@pytest.fixture
def store(tmp_path):
    st = SqlEventStore(f"sqlite:///{tmp_path / 'pulse.sqlite3'}")
    st.init_schema()
    yield st
    st.engine.dispose()

@pytest.fixture
def bug(store):
    """Category 'bug' with three events this month and one last month."""
    cat = store.create_category("u1", "bug", 0xFF6B6B, "\U0001F41B")
    store.create_event(cat.id, {"old": True}, created_at=datetime(2026, 1, 20, 9, 0, tzinfo=timezone.utc))
    store.create_event(cat.id, {"msg": "a"}, created_at=datetime(2026, 2, 3, 9, 0, tzinfo=timezone.utc))
    store.create_event(cat.id, {"msg": "b", "stack": "x"}, created_at=datetime(2026, 2, 16, 9, 0, tzinfo=timezone.utc))
    store.create_event(cat.id, {"msg": "c"}, created_at=datetime(2026, 2, 18, 8, 0, tzinfo=timezone.utc))
    return cat
