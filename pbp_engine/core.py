from __future__ import annotations

import random
from typing import Dict, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)

# -------------------------
# Helpers
# -------------------------

def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def normalize_weights(d: Dict[K, float]) -> Dict[K, float]:
    s = sum(max(v, 0.0) for v in d.values())
    if s <= 1e-12:
        n = len(d) if d else 1
        return {k: 1.0 / n for k in d} if d else {}
    return {k: max(v, 0.0) / s for k, v in d.items()}


def weighted_choice(rng: random.Random, weights: Dict[K, float]) -> K:
    if not weights:
        raise ValueError("weighted_choice() called with no candidates")
    total = sum(max(w, 0.0) for w in weights.values())
    if total <= 1e-12:
        return next(iter(weights.keys()))
    r = rng.random() * total
    upto = 0.0
    for k, w in weights.items():
        w = max(w, 0.0)
        upto += w
        if upto >= r:
            return k
    return next(iter(weights.keys()))
