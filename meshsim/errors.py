class StoreError(Exception):
    """Base class for entity store failures."""

class DuplicateUnitError(StoreError, ValueError):
    """A unit with the same id is already deployed."""

    def __init__(self, unit_id: str):
        super().__init__(f"unit {unit_id!r} already exists")
        self.unit_id = unit_id

class EmptyTargetsError(StoreError, ValueError):
    """A command was issued without any target unit."""

class UnknownEntityError(StoreError, KeyError):
    """No message or command with the requested id."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"unknown {kind} {entity_id!r}")
        self.kind = kind
        self.entity_id = entity_id

    def __str__(self) -> str:
        return self.args[0]
