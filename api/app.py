import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from meshsim.engine import Engine
from meshsim.errors import DuplicateUnitError, EmptyTargetsError, UnknownEntityError
from meshsim.model import NetworkMode
from meshsim.seed import make_store
from meshsim.store import utcnow
from meshsim.topology import mesh_links
from runtime.runner import TickRunner
from runtime.settings import Settings
from securemsg.crypto import EncryptError, encrypt_message, is_encrypted_message, reveal_content
from securemsg.keyring import KeyRing
from .schemas import CommandIn, EventsResponse, KeyIn, MessageIn, StartRequest, UnitIn

logger = logging.getLogger(__name__)

settings = Settings.from_env()
keyring = KeyRing(settings.mesh_password)
runner: TickRunner | None = None

def _make_runner(seed: Optional[int] = None) -> TickRunner:
    """Fresh store from the initial scenario, wrapped in an engine and runner."""
    store = make_store(network=NetworkMode(settings.initial_network_mode),
                       operator=settings.operator)
    eng = Engine(seed=settings.seed if seed is None else seed, store=store)
    return TickRunner(eng, tick_ms=settings.tick_ms)

def _require_runner() -> TickRunner:
    if not runner:
        raise HTTPException(400, "Simulation not started")
    return runner

async def _stop_runner():
    if runner:
        await runner.stop()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the simulation with the app and stop it on shutdown."""
    global runner
    runner = _make_runner()
    await runner.start()
    yield
    await _stop_runner()

app = FastAPI(title="MeshSim API", lifespan=lifespan)

# Enable CORS for development (dashboard runs on different port)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:8080"],  # Vite dev server
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def root():
    """API root endpoint."""
    return {
        "message": "MeshSim API",
        "docs": "/docs",
        "version": "1.0"
    }

@app.post("/sim/start")
async def start_simulation(req: StartRequest):
    """Start a new simulation from the initial scenario."""
    await _stop_runner()
    global runner
    runner = _make_runner(req.seed)
    if req.run_loop:
        await runner.start()
    return {"running": runner.running, "tick_ms": runner.tick_ms}

@app.post("/sim/tick")
async def tick():
    """Run one simulation tick immediately."""
    r = _require_runner()
    evts = r.tick_once()
    return {"events": [{"kind": e.kind, "ts_ms": e.ts_ms, "data": e.data} for e in evts]}

@app.get("/sim/state")
async def get_state():
    """Get current units and mesh graph."""
    r = _require_runner()
    s = await r.snapshot()
    return {
        "tick": s.tick,
        "networkStatus": s.network_status.value,
        "units": [u.to_dict() for u in s.units],
        "mesh": [n.to_dict() for n in s.mesh],
        "links": [list(pair) for pair in mesh_links(s.mesh)],
    }

@app.get("/sim/events")
async def get_events(since: int = 0, limit: int = 500):
    """Get events since offset."""
    r = _require_runner()
    evts, next_offset = r.events.since(since, limit)
    return EventsResponse(
        next_offset=next_offset,
        events=[{"kind": e.kind, "ts_ms": e.ts_ms, "data": e.data} for e in evts]
    )

@app.post("/units")
async def deploy_unit(unit: UnitIn):
    """Deploy a new unit."""
    r = _require_runner()
    try:
        stored = r.add_unit(unit.to_model(utcnow()))
    except DuplicateUnitError as exc:
        raise HTTPException(409, str(exc))
    return stored.to_dict()

@app.post("/network/toggle")
async def toggle_network():
    """Cycle the simulated network mode."""
    r = _require_runner()
    return {"networkStatus": r.toggle_network_mode().value}

@app.get("/messages")
async def get_messages(reveal: bool = False):
    """List messages, newest first; with reveal, envelopes are decrypted for display."""
    r = _require_runner()
    s = await r.snapshot()
    password = keyring.get() if reveal else None
    out = []
    for m in s.messages:
        d = m.to_dict()
        d["encrypted"] = is_encrypted_message(m.content)
        if reveal:
            d["content"] = reveal_content(m.content, password)
        out.append(d)
    return out

@app.post("/messages")
async def send_message(req: MessageIn):
    """Send a message, optionally encrypted with the mesh password."""
    r = _require_runner()
    content = req.content
    if req.encrypt:
        password = keyring.get()
        if not password:
            raise HTTPException(400, "No mesh encryption key set")
        try:
            content = encrypt_message(content, password)
        except EncryptError as exc:
            logger.error("[API] Message not sent: %s", exc)
            raise HTTPException(500, str(exc))
    return r.send_message(content, req.priority).to_dict()

@app.post("/messages/{message_id}/ack")
async def acknowledge_message(message_id: str):
    r = _require_runner()
    try:
        return r.acknowledge_message(message_id).to_dict()
    except UnknownEntityError as exc:
        raise HTTPException(404, str(exc))

@app.get("/commands")
async def get_commands():
    r = _require_runner()
    s = await r.snapshot()
    return [c.to_dict() for c in s.commands]

@app.post("/commands")
async def issue_command(req: CommandIn):
    """Issue a command to one or more units."""
    r = _require_runner()
    try:
        cmd = r.issue_command(
            req.type,
            req.target_unit_ids,
            req.description,
            coordinates=req.coordinates.to_model() if req.coordinates else None,
            expires_at=req.expires_at,
        )
    except EmptyTargetsError as exc:
        raise HTTPException(422, str(exc))
    return cmd.to_dict()

@app.post("/commands/{command_id}/ack")
async def acknowledge_command(command_id: str):
    r = _require_runner()
    try:
        return r.acknowledge_command(command_id).to_dict()
    except UnknownEntityError as exc:
        raise HTTPException(404, str(exc))

@app.get("/crypto/key")
async def get_key_state():
    """Report whether a mesh password is set (never the password itself)."""
    return {"hasKey": keyring.has_key}

@app.put("/crypto/key")
async def set_key(req: KeyIn):
    keyring.set(req.password)
    return {"hasKey": True}

@app.post("/crypto/key/generate")
async def generate_key():
    """Generate and store a new shareable mesh password."""
    return {"key": keyring.generate()}

@app.delete("/crypto/key")
async def clear_key():
    keyring.clear()
    return {"hasKey": False}
