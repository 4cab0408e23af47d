from .control import ControllerState, Mode, relative_error, step
