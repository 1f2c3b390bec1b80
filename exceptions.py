"""Custom exceptions for the laziest CLI tool"""


class LaziestError(Exception):
    """Base exception for all laziest errors"""
    pass


class ConfigurationError(LaziestError):
    """Raised when there's an issue with configuration"""
    pass


class StoreError(LaziestError):
    """Raised when the saved-command file cannot be read or written"""
    pass


class ValidationError(LaziestError):
    """Raised when input validation fails"""
    pass


class ParseError(LaziestError):
    """Raised when a binding placeholder is malformed"""

    def __init__(self, message: str, placeholder: str = ""):
        super().__init__(message)
        self.placeholder = placeholder


class ResolutionError(LaziestError):
    """Raised when a binding cannot be resolved at run time"""
    pass


class TerminalError(LaziestError):
    """Raised when the terminal cannot be used interactively"""
    pass


class CommandExecutionError(LaziestError):
    """Raised when command execution fails"""
    pass
