"""Test simulation ticks: movement, resource drift, clamping, determinism."""
from datetime import datetime, timedelta, timezone
from meshsim.engine import POSITION_JITTER, Engine
from meshsim.model import ConnectionStatus, Coordinates, Unit, UnitStatus, UnitType
from meshsim.seed import make_store
from meshsim.store import EntityStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_unit(uid: str, status: ConnectionStatus, lat: float = 28.2, lng: float = 94.7,
              resources: float = 50) -> Unit:
    return Unit(id=uid, callsign=uid, type=UnitType.ARMOR,
                position=Coordinates(lat, lng),
                status=UnitStatus(personnel=resources, condition=80, ammo=resources, fuel=resources),
                last_update=T0, connection_status=status)


def run(engine: Engine, ticks: int):
    for i in range(ticks):
        engine.step(T0 + timedelta(seconds=5 * (i + 1)))


def test_engine_determinism():
    """Same seed produces identical unit trajectories."""
    eng1 = Engine(42, make_store(now=T0))
    eng2 = Engine(42, make_store(now=T0))
    run(eng1, 20)
    run(eng2, 20)

    assert eng1.snapshot().units == eng2.snapshot().units
    assert eng1.snapshot().mesh == eng2.snapshot().mesh


def test_different_seeds_produce_different_results():
    eng1 = Engine(1, make_store(now=T0))
    eng2 = Engine(2, make_store(now=T0))
    run(eng1, 5)
    run(eng2, 5)
    assert eng1.snapshot().units[0].position != eng2.snapshot().units[0].position


def test_positions_jitter_within_bounds():
    """Every unit moves, OFFLINE ones included, by at most the jitter per tick."""
    store = EntityStore(units=[make_unit("on", ConnectionStatus.ONLINE),
                               make_unit("off", ConnectionStatus.OFFLINE)])
    before = store.units
    Engine(7, store).step(T0 + timedelta(seconds=5))
    after = store.units

    for old, new in zip(before, after):
        assert new.position != old.position
        assert abs(new.position.lat - old.position.lat) <= POSITION_JITTER
        assert abs(new.position.lng - old.position.lng) <= POSITION_JITTER


def test_offline_units_keep_status_and_timestamp():
    store = EntityStore(units=[make_unit("off", ConnectionStatus.OFFLINE)])
    original = store.units[0]
    run(Engine(3, store), 50)

    unit = store.units[0]
    assert unit.status == original.status
    assert unit.last_update == T0


def test_online_units_are_stamped_with_tick_time():
    store = EntityStore(units=[make_unit("on", ConnectionStatus.DEGRADED)])
    tick_time = T0 + timedelta(minutes=1)
    Engine(3, store).step(tick_time)
    assert store.units[0].last_update == tick_time


def test_status_stays_clamped():
    """After many ticks every resource of an active unit stays in [1, 100]."""
    store = EntityStore(units=[
        make_unit("low", ConnectionStatus.ONLINE, resources=0.5),
        make_unit("high", ConnectionStatus.MESH_ONLY, resources=100),
        make_unit("mid", ConnectionStatus.DEGRADED, resources=1.2),
    ])
    eng = Engine(11, store)
    for i in range(500):
        eng.step(T0 + timedelta(seconds=i))
        for u in store.units:
            for value in (u.status.personnel, u.status.ammo, u.status.fuel, u.status.condition):
                assert 1 <= value <= 100


def test_mesh_rebuilt_from_moved_units():
    """The committed mesh always reflects the committed positions."""
    eng = Engine(5, make_store(now=T0))
    run(eng, 3)
    snap = eng.snapshot()
    for unit, node in zip(snap.units, snap.mesh):
        assert node.unit_id == unit.id
        assert node.position == unit.position
        assert node.last_seen == unit.last_update


def test_step_reports_tick_event():
    eng = Engine(5, make_store(now=T0))
    evts = eng.step(T0)
    assert len(evts) == 1
    assert evts[0].kind == "Tick"
    assert evts[0].data["tick"] == 1
    assert evts[0].data["units"] == 5
    assert evts[0].data["active"] == 4
