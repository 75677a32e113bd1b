from __future__ import annotations
import argparse, asyncio
import orjson
import uvicorn

from pulse import categories
from pulse.analytics import CategoryAnalytics
from pulse.config import settings
from pulse.logging_config import configure_logging
from pulse.store import SqlEventStore
from pulse.windowing import TIME_RANGES

def _dump(obj) -> None:
    print(orjson.dumps(obj, option=orjson.OPT_INDENT_2).decode("utf-8"))

def _store(args) -> SqlEventStore:
    store = SqlEventStore(args.database_url)
    store.init_schema()
    return store

def cmd_init_db(args):
    _store(args)
    _dump({"initialized": args.database_url})

def cmd_quickstart(args):
    count = categories.insert_quickstart_categories(_store(args), args.user)
    _dump({"user": args.user, "inserted": count})

def cmd_metrics(args):
    analytics = CategoryAnalytics(_store(args))
    metrics = asyncio.run(analytics.list_category_metrics(args.user))
    _dump({"categories": [m.model_dump(mode="json") for m in metrics]})

def cmd_events(args):
    analytics = CategoryAnalytics(_store(args))
    page = asyncio.run(analytics.query_events(args.name, args.user, page=args.page, limit=args.limit, time_range=args.time_range))
    _dump(page.model_dump(mode="json"))

def cmd_api(args):
    uvicorn.run("pulse.api:app", host=args.host, port=args.port, reload=False)

def _positive(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return n

def _page_size(value: str) -> int:
    n = _positive(value)
    if n > settings.max_page_size:
        raise argparse.ArgumentTypeError(f"must be <= {settings.max_page_size}")
    return n

def main(argv=None):
    p = argparse.ArgumentParser(prog="pulse")
    p.add_argument("--database-url", default=settings.database_url)
    p.add_argument("--log-level", default=settings.log_level)
    sub = p.add_subparsers(dest="cmd", required=True)

    i = sub.add_parser("init-db")
    i.set_defaults(fn=cmd_init_db)

    q = sub.add_parser("quickstart")
    q.add_argument("--user", required=True)
    q.set_defaults(fn=cmd_quickstart)

    m = sub.add_parser("metrics")
    m.add_argument("--user", required=True)
    m.set_defaults(fn=cmd_metrics)

    e = sub.add_parser("events")
    e.add_argument("name")
    e.add_argument("--user", required=True)
    e.add_argument("--page", type=_positive, default=1)
    e.add_argument("--limit", type=_page_size, default=settings.max_page_size)
    e.add_argument("--time-range", choices=TIME_RANGES, default="month")
    e.set_defaults(fn=cmd_events)

    a = sub.add_parser("api")
    a.add_argument("--host", default=settings.api_host)
    a.add_argument("--port", type=int, default=settings.api_port)
    a.set_defaults(fn=cmd_api)

    args = p.parse_args(argv)
    configure_logging(args.log_level)
    args.fn(args)

if __name__ == "__main__":
    main()
