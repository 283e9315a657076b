# quantalogic_codriver/__init__.py
from .exceptions import (
    AlreadySettledError,
    CodriverError,
    DriverStateError,
    NotSettledError,
    ProtocolError,
    RoutineFinishedError,
)
from .pending import Deferred, as_pending, from_future, is_pending, rejected, resolved
from .routine import GeneratorRoutine, Routine, StateMachineRoutine, Step, as_routine
from .driver import Driver, DriverState, co, driven
from .execution import DriveResult, execute_async
from .runner import RoutineRunner
from .utils import configure_logging

__all__ = [
    'Driver',
    'DriverState',
    'co',
    'driven',
    'Deferred',
    'resolved',
    'rejected',
    'from_future',
    'as_pending',
    'is_pending',
    'Routine',
    'GeneratorRoutine',
    'StateMachineRoutine',
    'Step',
    'as_routine',
    'execute_async',
    'DriveResult',
    'RoutineRunner',
    'configure_logging',
    'CodriverError',
    'ProtocolError',
    'AlreadySettledError',
    'NotSettledError',
    'RoutineFinishedError',
    'DriverStateError',
]
