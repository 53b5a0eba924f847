"""
Randomness utilities for scratchformer.

Provides seed management for reproducibility. Model initialisation and data
shuffling build their own numpy Generators from the configured seed; this
seeds the legacy global RNGs for any third-party code that touches them.

Author: Oliver Perrin
Date: December 2025
"""

import random

import numpy as np


def set_seed(seed: int) -> None:
    random.seed(seed)
    np.random.seed(seed)
