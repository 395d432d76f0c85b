"""Background task supervision."""

from src.supervisor.connectivity import ConnectivityProber
from src.supervisor.engine import Scheduler
from src.supervisor.errors import ConfigurationError, SupervisorError
from src.supervisor.models import PeriodicAnchor, TaskDefinition, TaskStatus
from src.supervisor.registry import TaskRegistry
from src.supervisor.runner import TaskRunner
from src.supervisor.shutdown import ShutdownCoordinator
from src.supervisor.state import StateStore

__all__ = [
    "ConfigurationError",
    "ConnectivityProber",
    "PeriodicAnchor",
    "Scheduler",
    "ShutdownCoordinator",
    "StateStore",
    "SupervisorError",
    "TaskDefinition",
    "TaskRegistry",
    "TaskRunner",
    "TaskStatus",
]
