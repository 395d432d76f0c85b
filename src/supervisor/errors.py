"""Supervisor exception types."""


class SupervisorError(Exception):
    """Base class for supervisor errors."""


class ConfigurationError(SupervisorError):
    """Invalid task configuration. Fatal at startup."""
