# main.py
"""
Main entry point for the active Brownian particles simulation.

This script orchestrates the entire simulation lifecycle:
1. Loads configuration from a JSON file (default `config.json`).
2. Initializes the logging system.
3. Validates the parameters and builds the simulation state.
4. Thermalizes, then runs the main loop while sampling observables.
5. Exports the observables and handles clean shutdown.
"""
import argparse
import logging
import time
from constants import DEFAULT_WINDOW_SIZE
from utils import setup_logging, load_config, validate_parameters
import numpy as np
import cProfile
import pstats
import io


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate interacting active Brownian particles in 2d")
    parser.add_argument("--config", type=str, default="config.json", help="Path of the JSON configuration")
    parser.add_argument("--no-visual", action="store_true", help="Run without the Pygame window")
    parser.add_argument("--output", type=str, default=None, help="Output file for the observables (.npz)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed, overrides the config")
    parser.add_argument("--iters", type=int, default=None, help="Number of sampled iterations")
    return parser.parse_args(argv)


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Applies the command line overrides on top of the configuration."""
    config.setdefault('simulation_parameters', {})
    config.setdefault('run_control', {})
    config.setdefault('observables', {})
    config.setdefault('visualization', {})

    if args.seed is not None:
        config['simulation_parameters']['seed'] = args.seed
    if args.iters is not None:
        config['run_control']['n_iters'] = args.iters
    if args.output is not None:
        config['observables']['output'] = args.output
    if args.no_visual:
        config['visualization']['enabled'] = False
    return config


def run(config: dict) -> "SimulationState":
    """
    Runs a whole simulation described by a configuration dictionary.

    Returns:
        SimulationState: The final state.
    """
    from simulation import SimulationState
    from observables import Observables

    sim_params = validate_parameters(config.get('simulation_parameters', {}))
    run_params = config.get('run_control', {})
    obs_params = config.get('observables', {})
    vis_params = config.get('visualization', {})

    n_iters = run_params.get('n_iters', 1000)
    n_iters_th = run_params.get('n_iters_th', 0)
    skip = max(1, run_params.get('skip', 1))
    sleep_ms = run_params.get('sleep', 0)
    log_throttle = max(1, run_params.get('log_throttle_steps', 100))
    if n_iters < 0 or n_iters_th < 0 or sleep_ms < 0:
        msg = "Configuration error: n_iters, n_iters_th and sleep should be positive."
        logging.critical(msg)
        raise ValueError(msg)

    # --- Component Initialization ---
    state = SimulationState.from_params(sim_params)
    sim_params['seed'] = state.seed

    observables = None
    if obs_params.get('enabled', True):
        observables = Observables(
            state.box_length, state.n_parts,
            step_r=obs_params.get('step_r', 0.1),
            n_div_angle=obs_params.get('n_div_angle', 30),
            less_obs=obs_params.get('less_obs', False),
            cartesian=obs_params.get('cartesian', False),
        )

    visualizer = None
    if vis_params.get('enabled', False):
        # Pygame is only needed for the live view.
        from visualization import Visualizer
        visualizer = Visualizer(
            state.box_length,
            sim_params={k: v for k, v in sim_params.items() if k != 'backend'},
            fullscreen=vis_params.get('fullscreen', False),
            window_size=tuple(vis_params.get("window_size", DEFAULT_WINDOW_SIZE)),
            particle_color=vis_params.get('particle_color'),
        )

    running = True
    try:
        logging.info(f"Thermalization: {n_iters_th} steps.")
        for _ in range(n_iters_th):
            state.evolve()
            if visualizer is not None and not visualizer.draw(state):
                running = False
                break

        logging.info(f"Sampling: {n_iters} steps, observables every {skip} steps.")
        step_num = 0
        while running and step_num < n_iters:
            state.evolve()
            step_num += 1

            if observables is not None and step_num % skip == 0:
                observables.compute(state)

            if visualizer is not None and not visualizer.draw(state):
                running = False

            # Hot loops must throttle logs
            if step_num % log_throttle == 0:
                logging.info(f"Simulation step {step_num}/{n_iters}")
                mean_force = np.mean(np.linalg.norm(state.forces, axis=1))
                logging.debug(f"Step {step_num} | Mean internal force: {mean_force:.4f}")

            if sleep_ms > 0:
                time.sleep(sleep_ms / 1000.0)

        if not running:
            logging.info("Run stopped by the user.")
    finally:
        if visualizer is not None:
            visualizer.close()

    if observables is not None and obs_params.get('output'):
        export_params = dict(sim_params)
        export_params.update(n_iters=n_iters, n_iters_th=n_iters_th, skip=skip)
        observables.export(obs_params['output'], export_params)

    logging.info("Simulation loop finished.")
    return state


def main(argv=None):
    """
    The main function to run the simulation.
    """
    args = parse_args(argv)

    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"FATAL: Could not load {args.config}. Error: {e}")
        return 1

    setup_logging(config)
    config = apply_overrides(config, args)

    logging.info("--- Active Brownian Simulation Starting ---")

    profile = config['run_control'].get('profile', False)
    profiler = cProfile.Profile()
    if profile:
        profiler.enable()
    try:
        run(config)
    except ValueError:
        logging.critical("Simulation aborted on invalid configuration.")
        return 1
    finally:
        if profile:
            profiler.disable()

    if profile:
        logging.info("--- Performance Profile ---")
        s = io.StringIO()
        # Sort by cumulative time spent in the function
        stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
        stats.print_stats(20)
        logging.info(f"\n{s.getvalue()}")

    logging.info("--- Active Brownian Simulation Shutting Down ---")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
