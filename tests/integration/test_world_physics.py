import numpy as np
import pytest

from herding import presets
from herding.state import Dog, FlockParams, Sheep
from simulation import world


def test_boundary_reflects_and_clamps():
    """A sheep leaving the world is put back on the wall, heading inward."""
    params = FlockParams()
    flock = [Sheep(position=[19.5, 10.0], velocity=[0.6, 0.0])]

    world.step(flock, [], params)

    np.testing.assert_allclose(flock[0].position, [20.0, 10.0])
    assert flock[0].velocity[0] < 0
    np.testing.assert_allclose(flock[0].velocity, [-0.6, 0.0])


def test_boundary_is_per_axis():
    agent = Sheep(position=[-0.5, 21.0], velocity=[-0.2, 0.3])
    world.apply_boundary(agent, 20.0)
    np.testing.assert_array_equal(agent.position, [0.0, 20.0])
    np.testing.assert_allclose(agent.velocity, [0.2, -0.3])

    inside = Sheep(position=[5.0, 20.0], velocity=[0.1, 0.1])
    world.apply_boundary(inside, 20.0)
    # On the wall counts as inside
    np.testing.assert_array_equal(inside.velocity, [0.1, 0.1])


def test_two_sheep_without_dogs():
    """
    Sheep are updated in order: the second sheep reacts to where the first
    one has already moved, not to where it started the step.
    """
    params = FlockParams()
    flock = [
        Sheep(position=[10.0, 10.0], velocity=[0.0, 0.0], id=0),
        Sheep(position=[10.5, 10.0], velocity=[0.0, 0.0], id=1),
    ]

    world.step(flock, [], params, dt=1.0)

    # Sheep 0: pushed off sheep 1, pulled toward the pair's centre.
    a_vx = -0.5 / (0.25 + 1e-5) * 0.15 + 0.4
    np.testing.assert_allclose(flock[0].velocity, [a_vx, 0.0])
    np.testing.assert_allclose(flock[0].position, [10.0 + a_vx, 10.0])

    # Sheep 1 sees sheep 0 at its new position and with its new velocity.
    d = 10.5 - (10.0 + a_vx)
    sep_b = d / (d**2 + 1e-5)
    b_vx = sep_b * 0.15 - 0.4 + 0.3
    np.testing.assert_allclose(flock[1].velocity, [b_vx, 0.0])
    np.testing.assert_allclose(flock[1].position, [10.5 + b_vx, 10.0])


def test_sheep_react_to_moved_dogs():
    """Dogs move before sheep, so sheep feel the dog at its new spot."""
    params = FlockParams()
    flock = [Sheep(position=[10.0, 10.0], velocity=[0.0, 0.0])]
    # 2.5 away at the start of the step: outside the influence radius.
    dogs = [Dog(position=[10.0, 12.5], velocity=[0.0, 0.0], mode="patrol", target=[10.0, 0.0])]

    world.step(flock, dogs, params, rng=np.random.default_rng(0))

    np.testing.assert_allclose(dogs[0].position, [10.0, 11.6])
    expected_vy = -0.8 / (1.6 + 1e-5)
    np.testing.assert_allclose(flock[0].velocity, [0.0, expected_vy], atol=1e-12)


def test_dogs_respect_boundary():
    params = FlockParams()
    flock = [Sheep(position=[10.0, 10.0], velocity=[0.0, 0.0])]
    dogs = [Dog(position=[0.2, 10.0], velocity=[0.0, 0.0], mode="patrol", target=[-5.0, 10.0])]

    world.step(flock, dogs, params)

    np.testing.assert_array_equal(dogs[0].position, [0.0, 10.0])
    assert dogs[0].velocity[0] > 0


def test_step_with_empty_flock():
    params = FlockParams()
    dogs = [
        Dog(position=[5.0, 5.0], velocity=[0.1, 0.0], mode=m)
        for m in ("herd", "fetch", "patrol", "block")
    ]
    world.step([], dogs, params, rng=np.random.default_rng(1))
    for dog in dogs:
        assert np.all(np.isfinite(dog.position))
        assert np.all((dog.position >= 0.0) & (dog.position <= params.world_size))


# -----------------------------------------------------------------------------
# World
# -----------------------------------------------------------------------------


def test_world_initialization():
    """Test World initialization."""
    w = world.World.random(30, 3, seed=42)

    assert w.num_sheep == 30
    assert w.num_dogs == 3
    assert w.t == 0.0
    s = w.get_state()
    assert s.flock.shape == (30, 2)
    assert s.dogs.shape == (3, 2)
    assert len(s.modes) == 3


def test_world_clock_and_pause():
    w = world.World.random(10, 2, dt=0.5, seed=1)

    w.step()
    w.step()
    assert w.t == 1.0
    assert w.steps_taken == 2

    w.pause()
    before = w.get_state().flock.copy()
    w.step()
    assert w.t == 1.0
    np.testing.assert_array_equal(w.get_state().flock, before)

    w.pause()
    w.step()
    assert w.steps_taken == 3


def test_world_run_callback():
    w = world.World.random(10, 1, seed=2)
    seen = []
    w.run(5, callback=lambda wd: seen.append(wd.t))
    assert seen == [1.0, 2.0, 3.0, 4.0, 5.0]


def test_world_rejects_bad_dt():
    with pytest.raises(ValueError):
        world.World([], [], dt=0.0)
    with pytest.raises(ValueError):
        world.World([], [], dt=-1.0)


def test_same_seed_same_run():
    """Runs are reproducible from the seed, including noise draws."""
    params = presets.get_preset("lively", sheep_noise=0.1)

    a = world.World.random(25, 4, params, seed=7)
    b = world.World.random(25, 4, params, seed=7)
    a.run(30)
    b.run(30)

    np.testing.assert_array_equal(a.get_state().flock, b.get_state().flock)
    np.testing.assert_array_equal(a.get_state().dogs, b.get_state().dogs)

    c = world.World.random(25, 4, params, seed=8)
    c.run(30)
    assert not np.array_equal(a.get_state().flock, c.get_state().flock)


def test_dogs_push_flock_away():
    """Test that sheep are repelled by a herd dog standing next to them."""
    params = FlockParams()
    flock = [Sheep(position=[10.0, 10.0], velocity=[0.0, 0.0], id=i) for i in range(5)]
    dogs = [Dog(position=[11.0, 10.0], velocity=[0.0, 0.0], mode="block")]

    w = world.World(flock, dogs, params, seed=3)
    w.step()

    mean_x = np.mean(w.get_state().flock[:, 0])
    assert mean_x < 10.0
