import json
import logging

import numpy as np
import pytest

from main import apply_overrides, main, parse_args, run


def small_config(tmp_path, **run_control):
    control = {'n_iters': 20, 'n_iters_th': 5, 'skip': 5, 'log_throttle_steps': 10}
    control.update(run_control)
    return {
        'simulation_parameters': {
            'n_parts': 50, 'density': 0.5, 'pot_strength': 5.0, 'temperature': 0.1,
            'rot_dif': 1.0, 'activity': 1.0, 'dt': 0.001, 'seed': 21,
        },
        'run_control': control,
        'observables': {
            'enabled': True, 'step_r': 0.5, 'n_div_angle': 8,
            'output': str(tmp_path / "obs.npz"),
        },
        'visualization': {'enabled': False},
        'logging': {'level': 'INFO', 'log_file': str(tmp_path / "logs" / "sim.log")},
    }


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def test_run_evolves_and_exports(tmp_path):
    state = run(small_config(tmp_path))
    assert state.step_count == 25
    assert state.seed == 21

    with np.load(tmp_path / "obs.npz") as data:
        assert int(data['n_calls']) == 4
        assert int(data['param_n_iters']) == 20
        assert int(data['param_seed']) == 21


def test_run_is_reproducible(tmp_path):
    first = run(small_config(tmp_path))
    second = run(small_config(tmp_path))
    np.testing.assert_array_equal(first.positions, second.positions)


def test_run_rejects_invalid_parameters(tmp_path):
    config = small_config(tmp_path)
    config['simulation_parameters']['dt'] = 0.0
    with pytest.raises(ValueError):
        run(config)


def test_overrides(tmp_path):
    args = parse_args(["--no-visual", "--seed", "7", "--iters", "3", "--output", "x.npz"])
    config = apply_overrides({'visualization': {'enabled': True}}, args)
    assert config['visualization']['enabled'] is False
    assert config['simulation_parameters']['seed'] == 7
    assert config['run_control']['n_iters'] == 3
    assert config['observables']['output'] == "x.npz"


def test_main_end_to_end(tmp_path, restore_logging):
    config = small_config(tmp_path)
    config['visualization']['enabled'] = True
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config))

    assert main(["--config", str(path), "--no-visual", "--iters", "10"]) == 0
    assert (tmp_path / "obs.npz").exists()
    assert (tmp_path / "logs" / "sim.log").exists()


def test_main_reports_bad_configuration(tmp_path, restore_logging):
    config = small_config(tmp_path)
    config['simulation_parameters']['temperature'] = -1.0
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config))
    assert main(["--config", str(path)]) == 1


def test_main_missing_config(tmp_path):
    assert main(["--config", str(tmp_path / "nope.json")]) == 1
