from __future__ import annotations
import csv
import logging
from dataclasses import dataclass

import numpy as np
import matplotlib.pyplot as plt

from .control import ControllerState, Mode, step
from .profiles import generate_setpoints_and_floor

logger = logging.getLogger(__name__)


class Vessel:
    def __init__(self, max_consumption: float = 30.0, max_speed: float = 12.0,
                 consumption_time_constant: float = 5.0, speed_time_constant: float = 20.0,
                 idle_consumption: float = 1.0, dt: float = 1.0):
        for name, value in (("max_consumption", max_consumption), ("max_speed", max_speed),
                            ("consumption_time_constant", consumption_time_constant),
                            ("speed_time_constant", speed_time_constant),
                            ("idle_consumption", idle_consumption), ("dt", dt)):
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        self.max_consumption = max_consumption  # kg/s at full lever
        self.max_speed = max_speed              # m/s at full consumption
        self.consumption_time_constant = consumption_time_constant
        self.speed_time_constant = speed_time_constant
        self.idle_consumption = idle_consumption

        self.dt = dt  # Time step for discrete time simulation

        self.reset_state()

    def _speed_for(self, consumption: float) -> float:
        return self.max_speed * (consumption / self.max_consumption) ** (1 / 3)

    def transition(self, lever_order: float, disturbance: float):
        # first order lags, gain capped at 1
        alpha_c = min(1.0, self.dt / self.consumption_time_constant)
        alpha_v = min(1.0, self.dt / self.speed_time_constant)

        target_consumption = max(self.idle_consumption, lever_order * self.max_consumption)
        self.consumption += alpha_c * (target_consumption - self.consumption)

        target_speed = self._speed_for(self.consumption) + disturbance
        self.speed += alpha_v * (target_speed - self.speed)

    def get_consumption(self) -> float:
        return self.consumption

    def get_speed(self) -> float:
        return self.speed

    def reset_state(self):
        self.consumption = self.idle_consumption
        self.speed = self._speed_for(self.idle_consumption)


class Trajectory:
    def __init__(self, time: np.ndarray, consumption: np.ndarray, speed: np.ndarray,
                 lever_order: np.ndarray, mode: np.ndarray):
        self.time = time
        self.consumption = consumption
        self.speed = speed
        self.lever_order = lever_order
        self.mode = mode  # integer codes, see Mode

    def mode_counts(self) -> dict:
        return {m: int(np.sum(self.mode == m.value)) for m in Mode}

    def plot(self):
        plt.plot(self.time, self.lever_order)
        plt.xlabel('Time [s]')
        plt.ylabel('Lever order [-]')
        plt.show()

    def plot_completed_voyage(self, voyage: Voyage):
        fig, (ax_c, ax_v, ax_l) = plt.subplots(3, 1, sharex=True)

        ax_c.fill_between(self.time, 0, voyage.minimum_consumption, color='red', alpha=0.2,
                          label='Below minimum')
        ax_c.plot(self.time, self.consumption, label='Consumption')
        ax_c.plot(self.time, voyage.setpoint_consumption, 'r', linestyle='--', label='Setpoint')
        ax_c.set_ylabel('kg/s')
        ax_c.legend(loc='upper right')

        ax_v.plot(self.time, self.speed, label='Speed')
        ax_v.plot(self.time, voyage.setpoint_speed, 'r', linestyle='--', label='Setpoint')
        ax_v.set_ylabel('m/s')
        ax_v.legend(loc='upper right')

        ax_l.plot(self.time, self.lever_order, label='Lever order')
        for m in Mode:
            active = self.mode == m.value
            ax_l.scatter(self.time[active], self.lever_order[active], s=4,
                         label=m.name.replace('_', ' ').lower())
        ax_l.set_ylabel('Lever order [-]')
        ax_l.set_xlabel('Time [s]')
        ax_l.legend(loc='upper right')
        plt.show()


# Accepted header spellings for each voyage column, after lowercasing and
# mapping spaces and hyphens to underscores.
VOYAGE_COLUMNS = {
    'minimum_consumption': ('minimum_consumption', 'min_consumption', 'minimum', 'floor'),
    'setpoint_consumption': ('setpoint_consumption', 'consumption_setpoint', 'consumption'),
    'setpoint_speed': ('setpoint_speed', 'speed_setpoint', 'speed'),
}


def _column_key(name: str) -> str:
    return name.strip().lower().replace(' ', '_').replace('-', '_')


def _is_number(cell: str) -> bool:
    try:
        float(cell)
    except ValueError:
        return False
    return True


@dataclass
class Voyage:
    minimum_consumption: np.ndarray
    setpoint_consumption: np.ndarray
    setpoint_speed: np.ndarray

    def __post_init__(self):
        self.minimum_consumption = np.asarray(self.minimum_consumption, dtype=float)
        self.setpoint_consumption = np.asarray(self.setpoint_consumption, dtype=float)
        self.setpoint_speed = np.asarray(self.setpoint_speed, dtype=float)
        lengths = {name: len(getattr(self, name)) for name in VOYAGE_COLUMNS}
        if len(set(lengths.values())) != 1:
            raise ValueError(f"Voyage columns differ in length: {lengths}")

    def __len__(self):
        return len(self.setpoint_speed)

    @classmethod
    def random_voyage(cls, duration: int, scale: float):
        (minimum_consumption, setpoint_consumption, setpoint_speed) = generate_setpoints_and_floor(duration, scale)
        return cls(minimum_consumption, setpoint_consumption, setpoint_speed)

    @classmethod
    def from_csv(cls, file_name: str):
        """Load a voyage from a CSV file.

        With a header row the columns are found by name (see VOYAGE_COLUMNS) in
        any order. Without one the first three columns are taken as minimum
        consumption, consumption setpoint and speed setpoint.
        """
        with open(file_name, newline='', encoding='utf-8') as fh:
            rows = [row for row in csv.reader(fh) if any(cell.strip() for cell in row)]
        if not rows:
            raise ValueError(f"{file_name}: no voyage data")

        if all(_is_number(cell) for cell in rows[0]):
            if len(rows[0]) < 3:
                raise ValueError(f"{file_name}: expected columns {', '.join(VOYAGE_COLUMNS)}, "
                                 f"got {len(rows[0])} column(s)")
            indices = [0, 1, 2]
            body = rows
        else:
            header = {_column_key(name): i for i, name in enumerate(rows[0])}
            indices, missing = [], []
            for column, aliases in VOYAGE_COLUMNS.items():
                found = next((header[a] for a in aliases if a in header), None)
                if found is None:
                    missing.append(column)
                indices.append(found)
            if missing:
                raise ValueError(f"{file_name}: no column for {', '.join(missing)} "
                                 f"(header: {rows[0]})")
            body = rows[1:]

        data = np.empty((len(body), 3))
        for n, row in enumerate(body, start=1):
            try:
                data[n - 1] = [float(row[i]) for i in indices]
            except (IndexError, ValueError) as exc:
                raise ValueError(f"{file_name}: bad voyage row {n} {row}: {exc}") from exc

        return cls(data[:, 0], data[:, 1], data[:, 2])


class ClosedLoop:
    def __init__(self, plant: Vessel, state: ControllerState | None = None):
        self.plant = plant
        self.state = ControllerState() if state is None else state

    def simulate(self, voyage: Voyage, disturbances: np.ndarray) -> Trajectory:

        T = len(voyage)
        if len(disturbances) < T:
            raise ValueError("Disturbances must be at least as long as voyage duration")

        dt = self.plant.dt
        time = np.arange(T) * dt
        consumption = np.zeros(T)
        speed = np.zeros(T)
        lever_order = np.zeros(T)
        mode = np.zeros(T, dtype=int)

        self.plant.reset_state()
        self.state.reset()
        logger.info(f"Simulating voyage of {T} steps (dt={dt})")

        for t in range(T):
            consumption[t] = self.plant.get_consumption()
            speed[t] = self.plant.get_speed()

            self.state.minimum_consumption = float(voyage.minimum_consumption[t])
            self.state.setpoint_consumption = float(voyage.setpoint_consumption[t])
            self.state.setpoint_speed = float(voyage.setpoint_speed[t])
            self.state.actual_consumption = float(consumption[t])
            self.state.actual_speed = float(speed[t])
            step(self.state, float(time[t]), dt)

            lever_order[t] = self.state.lever_order
            mode[t] = self.state.mode.value
            self.plant.transition(lever_order[t], disturbances[t])

        trajectory = Trajectory(time, consumption, speed, lever_order, mode)
        counts = {m.name: n for m, n in trajectory.mode_counts().items()}
        logger.info(f"Voyage finished, steps per mode: {counts}")
        return trajectory

    def simulate_with_random_disturbances(self, voyage: Voyage, variance: float = 0.05) -> Trajectory:
        disturbances = np.random.normal(0, variance, len(voyage))
        return self.simulate(voyage, disturbances)
