# Lever-order controller: relative errors, mode selection and the per-tick step.
# This module is independent of any host and can be driven by the FMU slave
# or by the closed-loop simulator (ClosedLoop).
from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)


class Mode(Enum):
    MINIMUM_CONSUMPTION = 0
    CONSUMPTION = 1
    SPEED = 2


def relative_error(actual: float, reference: float) -> float:
    """Signed gap of reference above actual, relative to actual.

    Returns 0.0 when actual is exactly zero instead of dividing by it.
    """
    if actual == 0.0:
        return 0.0
    return (reference - actual) / actual


@dataclass
class ControllerState:
    # inputs, written by the host before every step
    minimum_consumption: float = 0.0   # kg/s
    setpoint_consumption: float = 0.0  # kg/s
    setpoint_speed: float = 0.0        # m/s
    actual_consumption: float = 0.0    # kg/s
    actual_speed: float = 0.0          # m/s

    # outputs, written by step()
    mode: Mode = Mode.MINIMUM_CONSUMPTION
    lever_order: float = 0.0                   # 0..1, kept between steps
    consumption_relative_minimum: float = 0.0
    consumption_relative_setpoint: float = 0.0
    speed_relative_setpoint: float = 0.0

    def reset(self):
        # clear outputs so the same instance can start a new run
        self.mode = Mode.MINIMUM_CONSUMPTION
        self.lever_order = 0.0
        self.consumption_relative_minimum = 0.0
        self.consumption_relative_setpoint = 0.0
        self.speed_relative_setpoint = 0.0


def _clamp(value: float, lo: float, hi: float) -> float:
    # fmin/fmax return the non-NaN operand, so a NaN lever order ends up at hi
    return float(np.fmax(lo, np.fmin(hi, value)))


def step(state: ControllerState, current_time: float, time_step: float) -> None:
    """Advance the controller by one tick, updating ``state`` in place.

    ``current_time`` and ``time_step`` are part of the host stepping protocol
    and do not enter the control law.
    """
    dev_min = relative_error(state.actual_consumption, state.minimum_consumption)
    dev_cons = relative_error(state.actual_consumption, state.setpoint_consumption)
    dev_speed = relative_error(state.actual_speed, state.setpoint_speed)

    state.consumption_relative_minimum = dev_min
    state.consumption_relative_setpoint = dev_cons
    state.speed_relative_setpoint = dev_speed

    previous_mode = state.mode
    # strict comparisons only: equal deviations fall through to speed mode
    if dev_min > float(np.fmin(dev_cons, dev_speed)):
        state.mode = Mode.MINIMUM_CONSUMPTION
        state.lever_order += dev_min
    elif dev_cons < dev_speed:
        state.mode = Mode.CONSUMPTION
        state.lever_order += dev_cons
    else:
        state.mode = Mode.SPEED
        state.lever_order += dev_speed

    state.lever_order = _clamp(state.lever_order, 0.0, 1.0)

    if state.mode is not previous_mode:
        logger.debug(f"t={current_time}: mode {previous_mode.name} -> {state.mode.name}")
