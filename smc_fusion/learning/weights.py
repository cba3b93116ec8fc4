"""
Bounded weight arithmetic shared by the learner and the state store
"""

from typing import Dict, Mapping, Tuple

from smc_fusion.models.learning import MODEL_WEIGHT_BOUNDS

SUM_TOLERANCE = 1e-9


def clamp(value: float, bounds: Tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def normalize_model_weights(
    weights: Mapping[str, float],
    bounds: Tuple[float, float] = MODEL_WEIGHT_BOUNDS
) -> Dict[str, float]:
    """
    Scale weights to sum to 1.0 while keeping every weight inside `bounds`.

    Plain division by the total can push a weight back out of bounds, so
    weights that would cross a bound are pinned to it and the remainder is
    shared proportionally among the rest until nothing crosses.

    Args:
        weights: Model name -> weight (any positive values)
        bounds: (low, high) bounds per weight

    Returns:
        New mapping summing to 1.0 with every value in bounds

    Raises:
        ValueError: If no assignment can satisfy both the sum and the bounds
    """
    low, high = bounds
    count = len(weights)
    if count == 0:
        raise ValueError("No model weights to normalize")
    if count * low > 1.0 + SUM_TOLERANCE or count * high < 1.0 - SUM_TOLERANCE:
        raise ValueError(
            f"{count} weights cannot sum to 1.0 within [{low}, {high}]"
        )

    clamped = {name: clamp(value, bounds) for name, value in weights.items()}
    pinned: Dict[str, float] = {}

    for _ in range(count + 1):
        free = {name: value for name, value in clamped.items() if name not in pinned}
        remaining = 1.0 - sum(pinned.values())
        if not free:
            break

        free_total = sum(free.values())
        scaled = {
            name: (value / free_total * remaining if free_total > 0 else remaining / len(free))
            for name, value in free.items()
        }

        crossed = {
            name: (high if value > high else low)
            for name, value in scaled.items()
            if value > high + SUM_TOLERANCE or value < low - SUM_TOLERANCE
        }
        if not crossed:
            merged = {**pinned, **scaled}
            return {name: merged[name] for name in weights}
        pinned.update(crossed)

    # Every weight pinned: spread the residual over whichever weights have room
    result = dict(pinned)
    residual = 1.0 - sum(result.values())
    for name in result:
        if abs(residual) <= SUM_TOLERANCE:
            break
        room = (high - result[name]) if residual > 0 else (low - result[name])
        step = min(residual, room) if residual > 0 else max(residual, room)
        result[name] += step
        residual -= step
    return {name: result[name] for name in weights}
