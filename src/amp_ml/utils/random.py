"""
Seed handling for reproducible AMP runs.

Every stochastic component (sample split, each selector, CV folds) receives an
explicit integer seed from the config. The global RNGs are only touched when
the SEED_GLOBAL environment variable asks for it.
"""

import logging
import os
import random

import numpy as np

logger = logging.getLogger(__name__)

SEED_ENV_VAR = "SEED_GLOBAL"
MAX_SEED = 2**32 - 1


def set_random_seed(seed: int):
    """Seed Python's ``random`` and NumPy's legacy global generator."""
    random.seed(seed)
    np.random.seed(seed)


def _parse_seed(raw: str) -> int | None:
    raw = raw.strip()
    if not raw:
        return None
    try:
        seed = int(raw)
    except ValueError:
        logger.warning(f"{SEED_ENV_VAR}='{raw}' is not an integer; ignoring")
        return None
    if not 0 <= seed <= MAX_SEED:
        logger.warning(f"{SEED_ENV_VAR}={seed} outside [0, {MAX_SEED}]; ignoring")
        return None
    return seed


def apply_seed_global() -> int | None:
    """
    Seed the global RNGs from SEED_GLOBAL, if set.

    Used by the CLI for debugging runs; library code never relies on the
    global RNG state.

    Returns:
        The applied seed, or None when the variable is unset or invalid
    """
    raw = os.environ.get(SEED_ENV_VAR)
    if raw is None:
        return None

    seed = _parse_seed(raw)
    if seed is not None:
        set_random_seed(seed)
        logger.info(f"{SEED_ENV_VAR}={seed} applied to global RNGs")
    return seed


def derive_seed(base_seed: int, index: int, stride: int = 1000) -> int:
    """
    Seed for the index-th independent component (e.g. selector position).

    Depends only on (base_seed, index), never on execution order. The result
    wraps modulo 2**32 so it stays a valid NumPy/sklearn seed.
    """
    return (base_seed + index * stride) % (MAX_SEED + 1)
