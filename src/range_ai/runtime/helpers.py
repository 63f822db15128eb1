"""Device and randomness helpers."""

from __future__ import annotations

import random


def get_torch_device(prefer_gpu: bool = False):
    import torch

    if prefer_gpu and torch.cuda.is_available():
        return torch.device("cuda")
    return torch.device("cpu")


def make_rng(seed: int | None = None, offset: int = 0) -> random.Random:
    """Independent RNG stream; seeded streams differ per offset."""

    if seed is None:
        return random.Random()
    return random.Random(seed * 1_000_003 + offset)


def seed_everything(seed: int | None) -> None:
    if seed is None:
        return
    import torch

    random.seed(seed)
    torch.manual_seed(seed)
