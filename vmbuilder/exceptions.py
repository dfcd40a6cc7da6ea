"""
vmbuilder exceptions
"""

class VMBuilderError(Exception):
    """Base exception for all vmbuilder errors"""
    def __init__(self, message, code=None, details=None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConnectionError(VMBuilderError):
    """Connection-related errors"""
    pass


class AuthenticationError(ConnectionError):
    """Authentication failure"""
    pass


class ResolutionError(VMBuilderError):
    """Inventory object not found or ambiguous"""
    pass


class PreconditionError(VMBuilderError):
    """Operation precondition not met"""
    pass


class TaskError(VMBuilderError):
    """Remote task submission or execution failure"""
    pass


class TimeoutError(VMBuilderError):
    """Operation timeout"""
    pass


class StateError(VMBuilderError):
    """VM state query failure"""
    pass


class OperationCancelledError(VMBuilderError):
    """Session was cancelled while waiting"""
    pass


class ConfigurationError(VMBuilderError):
    """Invalid build configuration"""
    pass
