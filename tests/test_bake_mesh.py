import json
import logging
import os

import pytest

import bake_mesh
from heightfield import GridConfig


@pytest.fixture
def config_file(tmp_path):
    def write(params):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"heightfield_parameters": params}))
        return str(path)
    return write


def test_split_parameters():
    service_config, grid = bake_mesh.split_parameters(
        {"seed": 3, "grid_width": 10, "grid_height": 4, "output_scale": 1.0}
    )
    assert service_config == {"output_scale": 1.0}
    assert grid == GridConfig(10, 4)


def test_split_parameters_defaults():
    _, grid = bake_mesh.split_parameters({})
    assert grid == GridConfig(255, 255)


def test_main_bakes_config_seed(tmp_path, config_file):
    path = config_file({"seed": 1337, "grid_width": 8, "grid_height": 8})
    out = tmp_path / "out"
    assert bake_mesh.main(["--config", path, "--output", str(out)]) == 0

    package = out / "seed_1337"
    with open(package / "manifest.json") as f:
        manifest = json.load(f)
    assert manifest["vertex_count"] == 81
    with open(package / "generation_config.json") as f:
        settings = json.load(f)
    assert settings["seed"] == 1337
    assert settings["grid_width"] == 8


def test_main_seed_flag_overrides_config(tmp_path, config_file):
    path = config_file({"seed": 1, "grid_width": 4, "grid_height": 4})
    out = tmp_path / "out"
    assert bake_mesh.main(["--config", path, "--output", str(out), "--seed", "9"]) == 0
    assert os.path.isdir(out / "seed_9")
    assert not os.path.exists(out / "seed_1")


def test_main_missing_config(tmp_path):
    assert bake_mesh.main(["--config", str(tmp_path / "nope.json"), "--output", str(tmp_path)]) == 1


def test_main_bad_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    assert bake_mesh.main(["--config", str(path), "--output", str(tmp_path)]) == 1


def test_main_invalid_grid(tmp_path, config_file):
    path = config_file({"seed": 1, "grid_width": 0, "grid_height": 4})
    assert bake_mesh.main(["--config", path, "--output", str(tmp_path / "out")]) == 1
    assert not os.path.exists(tmp_path / "out")


def test_main_invalid_octaves(tmp_path, config_file):
    path = config_file({"seed": 1, "grid_width": 2, "grid_height": 2, "octaves": []})
    assert bake_mesh.main(["--config", path, "--output", str(tmp_path / "out")]) == 1


def test_main_several_seeds(tmp_path, config_file):
    path = config_file({"grid_width": 4, "grid_height": 4})
    out = tmp_path / "out"
    args = ["--config", path, "--output", str(out), "--seed", "1", "--seed", "2", "--workers", "1"]
    assert bake_mesh.main(args) == 0
    assert os.path.isdir(out / "seed_1")
    assert os.path.isdir(out / "seed_2")


def test_bake_many_returns_hashes(tmp_path):
    results = bake_mesh.bake_many({}, GridConfig(3, 3), [5, 6], str(tmp_path), 1,
                                  logging.getLogger("test"))
    assert set(results) == {5, 6}
    assert results[5] != results[6]


def test_bake_many_worker_pool_matches_serial(tmp_path):
    logger = logging.getLogger("test")
    serial = bake_mesh.bake_many({}, GridConfig(4, 3), [5, 6], str(tmp_path / "serial"), 1, logger)
    pooled = bake_mesh.bake_many({}, GridConfig(4, 3), [5, 6, 5], str(tmp_path / "pooled"), 2, logger)
    assert pooled == serial
    assert sorted(os.listdir(tmp_path / "pooled")) == ["seed_5", "seed_6"]


@pytest.mark.parametrize("payload", [[], "text", {"heightfield_parameters": [1, 2]}])
def test_main_rejects_non_object_config(tmp_path, payload):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(payload))
    assert bake_mesh.main(["--config", str(path), "--output", str(tmp_path / "out")]) == 1
    assert not os.path.exists(tmp_path / "out")
