"""
Controller error taxonomy.
"""

from typing import List, Optional

class ControllerError(Exception):
    """Base class for controller errors."""
    pass

class CredentialMissing(ControllerError):
    """Required credentials are not available; prompt for input."""

    def __init__(self, missing: List, message: str = "Credentials required"):
        super().__init__(message)
        self.missing = missing

class CredentialInvalid(ControllerError):
    """Credentials were rejected by the remote side."""
    pass

class GateWarning(ControllerError):
    """A security gate warned and no confirmation was given."""

    def __init__(self, decision, message: Optional[str] = None):
        super().__init__(message or f"Security gate warning: {decision.warning_type.value}")
        self.decision = decision

class TransportFailure(ControllerError):
    """A remote call failed."""
    pass

class StaleDataRace(ControllerError):
    """A response arrived for a superseded polling generation."""
    pass

class ExecutionRejected(ControllerError):
    """The stage cannot be executed right now."""
    pass

class SelectionError(ExecutionRejected):
    """Deploy artifact selection is missing or empty."""
    pass
