import pytest

from herding import presets
from herding.state import FlockParams


def test_default_preset_matches_defaults():
    assert presets.get_preset("default") == FlockParams()


def test_flocking_preset():
    p = presets.get_preset("flocking")
    assert p.max_sheep_speed == 0.4
    assert p.sheep_radius == 2.0
    assert p.sheep_noise == 0.2


def test_preset_overrides():
    p = presets.get_preset("lively", world_size=50.0)
    assert p.world_size == 50.0
    assert p.dog_noise == 0.05
    # The stored preset is untouched
    assert presets.get_preset("lively").world_size == 20.0


def test_unknown_preset():
    with pytest.raises(KeyError) as exc:
        presets.get_preset("stampede")
    assert "default" in str(exc.value)


def test_list_presets():
    assert presets.list_presets() == ["default", "flocking", "lively"]


def test_params_from_dict_ignores_unknown_keys():
    p = presets.params_from_dict(
        {"world_size": 30.0, "pen_center": [25, 25], "colour": "blue"}
    )
    assert p.world_size == 30.0
    assert p.pen_center == (25.0, 25.0)
    assert p.dog_speed == FlockParams().dog_speed


def test_round_trip_through_dict():
    p = FlockParams(dog_speed=1.2, pen_center=(3.0, 4.0))
    assert presets.params_from_dict(p.to_dict()) == p


def test_build_params():
    assert presets.build_params() == FlockParams()
    assert presets.build_params("flocking").max_sheep_speed == 0.4

    overlaid = presets.build_params({"key": "flocking", "max_sheep_speed": 0.5})
    assert overlaid.max_sheep_speed == 0.5
    assert overlaid.sheep_radius == 2.0

    custom = presets.build_params({"dog_speed": 2.0})
    assert custom.dog_speed == 2.0

    p = FlockParams(world_size=10.0, pen_center=(8.0, 8.0))
    assert presets.build_params(p) is p

    with pytest.raises(TypeError):
        presets.build_params(42)


def test_preset_to_dict():
    d = presets.PARAM_PRESETS["lively"].to_dict()
    assert d["key"] == "lively"
    assert d["params"]["dog_noise"] == 0.05
