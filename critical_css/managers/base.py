"""Base manager class for critical CSS extraction."""

import logging
from typing import Dict, Any, Optional, Type
from abc import ABC, abstractmethod
from ..utils.error import CriticalCssError

class BaseManager(ABC):
    """Base class for managers owning an external resource."""

    def __init__(self):
        """Initialize base manager."""
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    async def start(self) -> None:
        """Acquire the managed resource."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the managed resource."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Get resource usage statistics."""
        pass

    def log_error(self, message: str, error: Optional[Exception] = None) -> None:
        """Log error message.

        Args:
            message: Error message
            error: Optional exception
        """
        if error:
            self.logger.error(f"{message}: {error}")
        else:
            self.logger.error(message)

    def log_warning(self, message: str) -> None:
        """Log warning message.

        Args:
            message: Warning message
        """
        self.logger.warning(message)

    def log_info(self, message: str) -> None:
        """Log info message.

        Args:
            message: Info message
        """
        self.logger.info(message)

    def log_debug(self, message: str) -> None:
        """Log debug message.

        Args:
            message: Debug message
        """
        self.logger.debug(message)

    def handle_error(self, error: Exception, message: str,
                     error_class: Type[CriticalCssError] = CriticalCssError) -> None:
        """Log an error and raise it wrapped into the error taxonomy.

        Args:
            error: Exception to handle
            message: Error message
            error_class: Exception class to raise

        Raises:
            CriticalCssError: Always, as ``error_class``
        """
        self.log_error(message, error)
        raise error_class(f"{message}: {error}") from error

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

# Exported class
__all__ = ['BaseManager']
