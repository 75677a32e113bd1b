from __future__ import annotations
from typing import Any, Iterable, Mapping, Set

def field_names(payloads: Iterable[Any]) -> Set[str]:
    names: Set[str] = set()
    for payload in payloads:
        # payloads are schema-less; anything that is not an object has no fields
        if not isinstance(payload, Mapping):
            continue
        for key in payload.keys():
            names.add(str(key))
    return names

def distinct_field_count(payloads: Iterable[Any]) -> int:
    return len(field_names(payloads))
