# core/rng_utils.py - Per-shuffle, per-cell RNG streams
"""
Random Number Generator utilities for reproducible shuffle controls.

Every random stream is a pure function of (base_seed, shuffle_id, cell_id,
component), so shuffles give identical results whatever the number of
workers or the order in which they run.
"""

import numpy as np
import hashlib


class HierarchicalRNG:
    """
    Derives independent RNG streams from a single base seed.

    Key principle: a shuffle draw only depends on the base seed, the shuffle
    index and the cell being shuffled. No generator is ever shared between
    two (shuffle, cell) units.
    """

    def __init__(self, base_seed: int = 0):
        self.base_seed = int(base_seed)

    def get_rng(self, shuffle_id: int, cell_id: int,
                component: str = 'within_bin_shuffle') -> np.random.Generator:

        # Build deterministic seed string that includes all relevant indices
        seed_string = f"{self.base_seed}_{int(shuffle_id)}_{int(cell_id)}_{component}"

        # Hash the string to get a DETERMINISTIC seed
        hash_obj = hashlib.sha256(seed_string.encode('utf-8'))
        hash_int = int.from_bytes(hash_obj.digest()[:8], byteorder='big')

        # Create SeedSequence from the hashed integer
        seed_sequence = np.random.SeedSequence(hash_int)
        return np.random.default_rng(seed_sequence)


def get_rng(base_seed: int, shuffle_id: int, cell_id: int,
            component: str = 'within_bin_shuffle') -> np.random.Generator:
    """Convenience function to get the RNG of one (shuffle, cell) unit."""
    return HierarchicalRNG(base_seed).get_rng(shuffle_id, cell_id, component)
