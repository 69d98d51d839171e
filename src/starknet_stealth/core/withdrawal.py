"""Randomized withdrawal planning against timing and amount correlation."""

from __future__ import annotations

import secrets

import numpy as np

from starknet_stealth.utils.constants import WEIGHT_SCALE
from starknet_stealth.utils.errors import InvalidAmount
from starknet_stealth.utils.types import WithdrawalPlanOptions, WithdrawalStep


def random_fraction() -> float:
    """Uniform float in [0, 1] from the OS CSPRNG."""
    return secrets.randbits(32) / 0xFFFFFFFF


def random_delay(min_ms: int, max_ms: int) -> int:
    """Uniform integer delay in [min_ms, max_ms]."""
    if max_ms <= min_ms:
        return min_ms
    return min_ms + secrets.randbelow(max_ms - min_ms + 1)


def _resolve_options(options: WithdrawalPlanOptions | None) -> tuple[int, int, int]:
    options = options or WithdrawalPlanOptions()
    splits = max(1, int(options.splits))
    min_delay = max(0, int(options.min_delay_ms))
    max_raw = options.max_delay_ms if options.max_delay_ms is not None else min_delay
    max_delay = max(min_delay, int(max_raw))
    return splits, min_delay, max_delay


def split_weights(splits: int) -> np.ndarray:
    """Secret-random integer weights, each >= 1, on a 1e9 scale."""
    raw = np.array([random_fraction() for _ in range(splits)], dtype=np.float64)
    total = raw.sum()
    if total <= 0.0:
        raw = np.ones(splits, dtype=np.float64)
        total = float(splits)
    scaled = np.floor(raw / total * WEIGHT_SCALE).astype(np.int64)
    return np.maximum(scaled, 1)


def plan_withdrawals(
    total_amount: int,
    options: WithdrawalPlanOptions | None = None,
) -> list[WithdrawalStep]:
    """Split ``total_amount`` into randomly weighted parts with random delays.

    Every part is strictly positive and the parts sum exactly to the total;
    the last part absorbs the rounding remainder. When ``splits`` is 1, or
    the total is too small to give every part at least one unit, a single
    step carrying the whole amount is returned.

    Raises:
        InvalidAmount: if ``total_amount`` is not positive.
    """
    if isinstance(total_amount, bool) or not isinstance(total_amount, int):
        raise InvalidAmount(f"total_amount must be an int, got {type(total_amount).__name__}")
    if total_amount <= 0:
        raise InvalidAmount("total_amount must be positive")

    splits, min_delay, max_delay = _resolve_options(options)

    if splits == 1 or total_amount < splits:
        return [WithdrawalStep(amount=total_amount, delay_ms=random_delay(min_delay, max_delay))]

    weights = split_weights(splits)
    amounts = [max(1, total_amount * int(w) // WEIGHT_SCALE) for w in weights[:-1]]

    # Keep room for one unit in the last part
    overflow = sum(amounts) - (total_amount - 1)
    i = 0
    while overflow > 0:
        take = min(overflow, amounts[i] - 1)
        amounts[i] -= take
        overflow -= take
        i += 1
    amounts.append(total_amount - sum(amounts))

    return [
        WithdrawalStep(amount=amount, delay_ms=random_delay(min_delay, max_delay))
        for amount in amounts
    ]
