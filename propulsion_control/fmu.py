"""
Propulsion control system as a Python FMU (FMI 2, co-simulation).

Wraps the lever-order controller in ``propulsion_control.control`` so a
co-simulation master can drive it. Value references follow registration
order: the five inputs are 0-4, ``mode`` is 5 and the real outputs are 6-9.

Build with:
    pythonfmu build -f propulsion_control/fmu.py --project-files propulsion_control
"""

from pythonfmu import Fmi2Causality, Fmi2Slave, Fmi2Variability, Integer, Real

from propulsion_control.control import ControllerState, step

# (FMU variable name, ControllerState field, description)
INPUTS = (
    ("minimum_consumption_kgps", "minimum_consumption", "Minimum fuel consumption [kg/s]"),
    ("setpoint_consumption_kgps", "setpoint_consumption", "Fuel consumption setpoint [kg/s]"),
    ("setpoint_speed_mps", "setpoint_speed", "Speed setpoint [m/s]"),
    ("actual_consumption_kgps", "actual_consumption", "Measured fuel consumption [kg/s]"),
    ("actual_speed_mps", "actual_speed", "Measured speed [m/s]"),
)

REAL_OUTPUTS = (
    ("lever_order", "lever_order", "Lever order [0..1]"),
    ("actual_consumption_relative_minimum_consumption", "consumption_relative_minimum",
     "Minimum consumption relative to actual consumption [-]"),
    ("actual_speed_relative_setpoint_speed", "speed_relative_setpoint",
     "Speed setpoint relative to actual speed [-]"),
    ("actual_consumption_relative_setpoint_consumption", "consumption_relative_setpoint",
     "Consumption setpoint relative to actual consumption [-]"),
)


class PropulsionControlSystem(Fmi2Slave):

    author = "propulsion_control"
    description = "Lever order controller selecting minimum consumption, consumption or speed mode"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)

        self.state = ControllerState()

        # Input
        for name, field, description in INPUTS:
            self.register_variable(Real(
                name,
                causality=Fmi2Causality.input,
                description=description,
                getter=lambda field=field: getattr(self.state, field),
                setter=lambda value, field=field: setattr(self.state, field, float(value)),
            ))

        # Output
        self.register_variable(Integer(
            "mode",
            causality=Fmi2Causality.output,
            variability=Fmi2Variability.discrete,
            description="0=minimum consumption mode, 1=consumption mode, 2=speed mode",
            getter=lambda: self.state.mode.value,
        ))
        for name, field, description in REAL_OUTPUTS:
            self.register_variable(Real(
                name,
                causality=Fmi2Causality.output,
                description=description,
                getter=lambda field=field: getattr(self.state, field),
            ))

    def do_step(self, current_time: float, step_size: float) -> bool:
        step(self.state, current_time, step_size)
        return True
