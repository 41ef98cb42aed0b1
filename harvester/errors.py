"""
Exception types raised by the harvesting engine.
"""


class HarvesterError(Exception):
    """Base class for all harvester errors."""


class SelectorTimeout(HarvesterError):
    """Expected DOM selector never appeared (episode missing or layout mismatch)."""


class AutomationFault(HarvesterError):
    """Navigation or browser-level failure."""


class BackendUnavailable(HarvesterError):
    """The Job Backend API could not be reached or rejected the request."""


class MalformedInput(HarvesterError, ValueError):
    """Job definition or URL could not be parsed."""
