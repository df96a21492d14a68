from typing import Dict, Optional
from .crypto import generate_mesh_key

# Well-known name the dashboard remembers the shared password under
MESH_KEY_NAME = "meshEncryptionKey"

class KeyRing:
    """In-process holder for the operator's mesh password."""

    def __init__(self, password: Optional[str] = None):
        self._values: Dict[str, str] = {}
        if password:
            self.set(password)

    def set(self, password: str) -> None:
        if not password:
            raise ValueError("mesh password must be non-empty")
        self._values[MESH_KEY_NAME] = password

    def get(self) -> Optional[str]:
        return self._values.get(MESH_KEY_NAME)

    def clear(self) -> None:
        self._values.pop(MESH_KEY_NAME, None)

    def generate(self) -> str:
        """Store a fresh random password and return it."""
        password = generate_mesh_key()
        self.set(password)
        return password

    @property
    def has_key(self) -> bool:
        return MESH_KEY_NAME in self._values
