"""
Custom exceptions for the VibeForge library.

This module defines a hierarchy of custom exception classes to provide
more specific error information and allow for targeted error handling
by applications embedding the model router.
"""


class VibeForgeError(Exception):
    """Base class for all VibeForge specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in VibeForge."):
        super().__init__(message)


class ConfigError(VibeForgeError):
    """Raised for errors related to configuration loading, validation or misuse."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)


class UnknownModelError(ConfigError):
    """Raised when a model id is not present in the capability catalog."""
    def __init__(self, model_id: str = "Unknown"):
        self.model_id = model_id
        super().__init__(f"Unknown model: {model_id}")


class NoModelsAvailableError(VibeForgeError):
    """
    Raised when model selection filters out every candidate and fallback is disabled.
    Callers should relax their constraints or surface the failure to the user.
    """
    def __init__(self, details: str = ""):
        self.details = details
        message = "No models available"
        if details:
            message = f"{message}: {details}"
        super().__init__(message)


class CostDataImportError(VibeForgeError):
    """Raised when exported cost data cannot be parsed or validated on import."""
    def __init__(self, original: object = "unknown error"):
        self.original = original
        super().__init__(f"Failed to import cost data: {original}")
