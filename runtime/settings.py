import os
from typing import Mapping, Optional
from pydantic import BaseModel, Field
from meshsim.model import ConnectionStatus, Operator

ENV_PREFIX = "MESHSIM_"

class Settings(BaseModel):
    """Runtime configuration, overridable through MESHSIM_* environment variables."""
    tick_ms: int = Field(default=5000, gt=0)
    seed: int = 42
    operator_id: str = "unit-1"
    operator_callsign: str = "Alpha-1"
    initial_network_mode: ConnectionStatus = ConnectionStatus.MESH_ONLY
    mesh_password: Optional[str] = None
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from MESHSIM_<FIELD> variables; unset ones keep defaults."""
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        return cls(**values)

    @property
    def operator(self) -> Operator:
        return Operator(id=self.operator_id, callsign=self.operator_callsign)
