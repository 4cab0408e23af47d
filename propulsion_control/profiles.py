from __future__ import annotations
import numpy as np


def generate_setpoints_and_floor(duration: int, scale: float, rng: np.random.Generator | None = None):
    """Random voyage profile.

    Returns (minimum_consumption, setpoint_consumption, setpoint_speed), each of
    length ``duration``. The speed setpoint is piecewise constant around
    ``scale`` m/s, the consumption setpoint follows it with a cubic propeller
    law and the minimum-consumption floor sits below the consumption setpoint.
    """
    if duration <= 0:
        raise ValueError(f"duration must be positive, got {duration}")
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    rng = np.random.default_rng() if rng is None else rng

    # speed legs of random length, each held constant
    setpoint_speed = np.empty(duration)
    t = 0
    while t < duration:
        leg = int(rng.integers(max(1, duration // 10), max(2, duration // 3) + 1))
        setpoint_speed[t:t + leg] = scale * rng.uniform(0.5, 1.2)
        t += leg

    # consumption (kg/s) scales with the cube of speed
    setpoint_consumption = 2.0 * scale * (setpoint_speed / scale) ** 3
    minimum_consumption = setpoint_consumption * rng.uniform(0.2, 0.5, duration)

    return minimum_consumption, setpoint_consumption, setpoint_speed
