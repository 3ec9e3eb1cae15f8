import dataclasses

import numpy as np
import pytest

from herding import state


def test_params_defaults():
    """Default parameters match the sheepdog setup."""
    p = state.FlockParams()
    assert p.world_size == 20.0
    assert p.sheep_radius == 1.5
    assert p.dog_speed == 0.9
    np.testing.assert_array_equal(p.pen, [17.0, 17.0])


def test_params_are_immutable():
    p = state.FlockParams()
    with pytest.raises(dataclasses.FrozenInstanceError):
        p.world_size = 5.0


def test_params_validation():
    with pytest.raises(ValueError):
        state.FlockParams(world_size=0.0)
    with pytest.raises(ValueError):
        state.FlockParams(world_size=-10.0)
    with pytest.raises(ValueError):
        state.FlockParams(sheep_radius=-1.0)
    with pytest.raises(ValueError):
        state.FlockParams(pen_center=(1.0, 2.0, 3.0))


def test_params_to_dict():
    p = state.FlockParams(pen_center=[3, 4])
    d = p.to_dict()
    assert d["pen_center"] == [3.0, 4.0]
    assert d["max_sheep_speed"] == 0.8
    assert p.pen_center == (3.0, 4.0)


def test_dog_mode_parse():
    assert state.DogMode.parse("herd") is state.DogMode.HERD
    assert state.DogMode.parse(" Patrol ") is state.DogMode.PATROL
    assert state.DogMode.parse(state.DogMode.BLOCK) is state.DogMode.BLOCK
    with pytest.raises(ValueError):
        state.DogMode.parse("chase")


def test_agents_coerce_vectors():
    """Agents store float copies of their vectors."""
    pos = [1, 2]
    s = state.Sheep(position=pos, velocity=(0, 0))
    assert s.position.dtype == np.float64
    s.position[0] = 5.0
    assert pos == [1, 2]

    d = state.Dog(position=[0, 0], velocity=[1, 1], mode="fetch")
    assert d.mode is state.DogMode.FETCH
    assert d.target is None


def test_positions_of_empty_collection():
    assert state.positions([]).shape == (0, 2)
    assert state.velocities([]).shape == (0, 2)


def test_state_serialization():
    """Test FlockState capture and to_dict."""
    flock = [
        state.Sheep(position=[1, 1], velocity=[0, 1], id=0),
        state.Sheep(position=[2, 2], velocity=[1, 0], id=1),
    ]
    dogs = [
        state.Dog(position=[0, 0], velocity=[0, 0], mode="patrol", target=[1, 19]),
        state.Dog(position=[5, 5], velocity=[0, 0], mode="herd"),
    ]
    s = state.FlockState.capture(flock, dogs, t=3.0)
    d = s.to_dict()

    assert d["t"] == 3.0
    assert d["flock"] == [[1.0, 1.0], [2.0, 2.0]]
    assert len(d["dogs"]) == 2
    assert d["modes"] == ["patrol", "herd"]
    assert d["targets"] == [[1.0, 19.0], None]

    # The snapshot does not alias agent state
    flock[0].position[0] = 99.0
    assert s.flock[0, 0] == 1.0
