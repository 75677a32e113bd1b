from __future__ import annotations

class NotFound(LookupError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Category {name} not found")

class CategoryExists(ValueError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Category {name} already exists")
