import pytest

from quantum_double_slit.config import Slit
from quantum_double_slit.particles import Particle, ParticleStore, Phase


def _particle(pid, **kw):
    defaults = dict(x=50.0, y=200.0, vx=4.0, vy=0.0, target_y=150.0, origin_slit=Slit.TOP)
    defaults.update(kw)
    return Particle(id=pid, **defaults)


def test_ids_are_monotonic_and_never_reused():
    store = ParticleStore()
    first = store.next_ids(2)
    store.add_all(_particle(i) for i in first)
    store.clear()
    assert store.next_ids(1) == [2]


def test_add_all_is_atomic():
    store = ParticleStore()
    store.add(_particle(0))
    with pytest.raises(KeyError):
        store.add_all([_particle(1), _particle(0)])
    assert 1 not in store
    assert len(store) == 1


def test_add_all_rejects_duplicates_within_batch():
    store = ParticleStore()
    with pytest.raises(KeyError):
        store.add_all([_particle(3), _particle(3)])
    assert len(store) == 0


def test_retire_is_deferred_until_flush():
    store = ParticleStore()
    store.add_all([_particle(0), _particle(1)])
    store.retire(0)
    assert 0 in store
    assert store.is_retiring(0)
    assert store.flush() == 1
    assert 0 not in store
    assert store.live_ids() == [1]


def test_twin_lookup_is_a_back_reference_only():
    store = ParticleStore()
    a = _particle(0, twin_id=1)
    b = _particle(1, twin_id=0, origin_slit=Slit.BOTTOM, counts_toward_histogram=False)
    store.add_all([a, b])
    assert store.twin_of(a) is b
    store.retire(1)
    assert store.twin_of(a) is None
    store.flush()
    assert store.twin_of(a) is None
    assert a.twin_id == 1


def test_single_particle_has_no_twin():
    store = ParticleStore()
    p = _particle(0)
    store.add(p)
    assert not p.is_twin
    assert store.twin_of(p) is None


def test_target_y_is_immutable():
    p = _particle(0)
    with pytest.raises(AttributeError):
        p.target_y = 10.0
    assert p.target_y == 150.0


def test_particle_advances_by_velocity():
    p = _particle(0, vy=-0.5)
    p.advance()
    assert (p.x, p.y) == (54.0, 199.5)
    assert p.phase is Phase.TO_SLIT


def test_iteration_is_a_snapshot():
    store = ParticleStore()
    store.add_all([_particle(0), _particle(1)])
    seen = []
    for p in store:
        seen.append(p.id)
        store.add(_particle(p.id + 10))
    assert seen == [0, 1]
    assert len(store) == 4
