"""Custom exceptions for tainter."""


class TainterError(Exception):
    """Base exception for all tainter errors."""

    def __init__(self, message: str, details: str = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            Formatted error message with details
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class ConfigurationError(TainterError):
    """Exception raised when the settings file cannot be read or validated."""

    pass


class KubernetesError(TainterError):
    """Exception raised for Kubernetes API errors."""

    pass


class ConflictError(KubernetesError):
    """Exception raised when a node was modified after it was read."""

    pass


class WatchError(TainterError):
    """Exception raised when listing or watching nodes fails."""

    pass


class MalformedNodeError(TainterError):
    """Exception raised for node objects missing a required field."""

    pass
