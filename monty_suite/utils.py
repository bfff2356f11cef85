"""
Utility functions for Monty Hall experiments
"""

import json
import logging
import os
import time
from datetime import datetime
from typing import Dict, Optional

from dotenv import load_dotenv

from .game import InvalidArgumentError

logger = logging.getLogger(__name__)

ENV_DEFAULTS = {
    'MONTY_HALL_GAMES': 100,
    'MONTY_HALL_SEED': None,
    'MONTY_HALL_MAX_CONCURRENT': 1,
    'MONTY_HALL_OUTPUT': 'results',
}


def validate_positive_int(value, label: str = "value") -> int:
    """Reject bools, non-integers and anything below 1"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{label} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidArgumentError(f"{label} must be positive, got {value}")
    return value


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise InvalidArgumentError(f"{name} must be an integer, got {raw!r}") from None


def load_env_vars(env_file: Optional[str] = None) -> Dict:
    """Load simulation settings from the environment (and a .env file if present)"""
    load_dotenv(env_file)

    settings = dict(ENV_DEFAULTS)
    for name in ('MONTY_HALL_GAMES', 'MONTY_HALL_MAX_CONCURRENT'):
        raw = os.environ.get(name)
        if raw:
            settings[name] = validate_positive_int(_parse_int(name, raw), name)

    raw_seed = os.environ.get('MONTY_HALL_SEED')
    if raw_seed:
        settings['MONTY_HALL_SEED'] = _parse_int('MONTY_HALL_SEED', raw_seed)

    settings['MONTY_HALL_OUTPUT'] = os.environ.get('MONTY_HALL_OUTPUT') or ENV_DEFAULTS['MONTY_HALL_OUTPUT']
    return settings


def create_experiment_config(n_games: int, seed: Optional[int], n_simulations: int = 1,
                             max_concurrent: int = 1) -> Dict:
    """Create experiment configuration dictionary"""
    from . import __version__

    return {
        'timestamp': datetime.now().isoformat(),
        'version': __version__,
        'n_games': n_games,
        'n_simulations': n_simulations,
        'seed': seed,
        'max_concurrent': max_concurrent,
        'strategies': ['stay', 'switch'],
    }


def save_experiment_metadata(config: Dict, filepath: str):
    """Save experiment configuration to JSON"""
    with open(filepath, 'w') as f:
        json.dump(config, f, indent=2)


def setup_logging(output_dir: Optional[str] = None, level: int = logging.INFO) -> Optional[str]:
    """Log to the console and, when output_dir is given, to a file; return the log file path"""
    handlers = [logging.StreamHandler()]
    log_filepath = None
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        log_filename = f"simulation_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        log_filepath = os.path.join(output_dir, log_filename)
        handlers.append(logging.FileHandler(log_filepath))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(message)s',
        handlers=handlers,
        force=True,
    )
    return log_filepath


def close_log_file(log_filepath: Optional[str]):
    """Detach and close the root FileHandler writing to log_filepath"""
    if not log_filepath:
        return
    root = logging.getLogger()
    target = os.path.abspath(log_filepath)
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            root.removeHandler(handler)
            handler.close()


class Timer:
    """Context manager for timing a block"""

    def __init__(self, name: str = "Operation"):
        self.name = name
        self.start_time = None
        self.elapsed = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed = time.perf_counter() - self.start_time
        logger.info(f"{self.name} took {self.elapsed:.2f} seconds")
