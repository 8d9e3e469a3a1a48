# utils.py
"""
Utility functions for the simulation framework.

This module provides helper functions, such as logging setup, config
loading and parameter validation, that are used across different parts of
the application but do not belong to the physics or to the rendering.
"""
import logging
import logging.handlers
import json
import os
import numpy as np
from typing import Dict, Any

from constants import BACKENDS, DEFAULT_BACKEND

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary containing a "logging" key with "level",
#       "format", and "log_file" sub-keys.
#   - Side Effects: Configures the root Python logger. Creates a log
#     directory if it doesn't exist. Sets up a console handler and a
#     rotating file handler.
#
# validate_parameters(params: Dict[str, Any]) -> Dict[str, Any]:
#   - Inputs: the "simulation_parameters" section of the config.
#   - Outputs: a new dictionary with "box_length" always set.
#   - Raises: ValueError naming the first invalid parameter. Nothing is
#     clamped.

def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the logging system from a configuration dictionary.

    Sets up logging to both the console and a rotating file.
    """
    log_config = config.get('logging', {})
    log_level = log_config.get('level', 'INFO').upper()
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path = log_config.get('log_file', 'logs/simulation.log')

    # Ensure the log directory exists
    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    # Get the root logger
    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Rotates when the log reaches 1MB, keeps 5 backup logs.
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path, maxBytes=1024*1024, backupCount=5
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level set to {log_level}.")
    logging.debug(f"Log file path: {log_file_path}")

def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
        logging.info("Configuration loaded successfully.")
        return config
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise

def _fail(msg: str) -> None:
    logging.critical(msg)
    raise ValueError(msg)

def _check_positive(params: Dict[str, Any], name: str) -> None:
    if params[name] < 0:
        _fail(f"Configuration error: {name} should be positive, got {params[name]}.")

def _check_strictly_positive(params: Dict[str, Any], name: str) -> None:
    if params[name] <= 0:
        _fail(f"Configuration error: {name} should be strictly positive, got {params[name]}.")

def box_length_from_density(n_parts: int, density: float) -> float:
    """Side of the square box holding n_parts particles at the given density."""
    return float(np.sqrt(n_parts / density))

def validate_parameters(params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Checks the physical parameters before a SimulationState is built.

    Either "box_length" or "density" must be given. The returned dictionary
    always holds "box_length" (and "density" for reference).
    """
    required = ['n_parts', 'pot_strength', 'temperature', 'rot_dif', 'activity', 'dt']
    missing = [name for name in required if name not in params]
    if missing:
        _fail(f"Configuration error: missing simulation parameters {missing}.")

    validated = dict(params)
    if not isinstance(validated['n_parts'], (int, np.integer)) or isinstance(validated['n_parts'], bool):
        _fail(f"Configuration error: n_parts should be an integer, got {validated['n_parts']!r}.")
    _check_strictly_positive(validated, 'n_parts')

    if validated.get('box_length') is not None:
        _check_strictly_positive(validated, 'box_length')
        validated['density'] = validated['n_parts'] / validated['box_length'] ** 2
    elif validated.get('density') is not None:
        _check_strictly_positive(validated, 'density')
        validated['box_length'] = box_length_from_density(validated['n_parts'], validated['density'])
    else:
        _fail("Configuration error: either box_length or density must be given.")

    for name in ('pot_strength', 'temperature', 'rot_dif', 'activity'):
        _check_positive(validated, name)
    _check_strictly_positive(validated, 'dt')

    backend = validated.get('backend', DEFAULT_BACKEND)
    if backend not in BACKENDS:
        _fail(f"Configuration error: unknown backend '{backend}', expected one of {BACKENDS}.")
    validated['backend'] = backend

    seed = validated.get('seed')
    if seed is not None and (not isinstance(seed, (int, np.integer)) or seed < 0):
        _fail(f"Configuration error: seed should be a non-negative integer, got {seed!r}.")

    logging.info("Simulation parameters validated.")
    return validated
