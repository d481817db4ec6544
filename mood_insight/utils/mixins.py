from typing import cast

import structlog


class LoggerMixin:
    """Mixin class to add a class-named structured logger"""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get logger instance for this class"""
        return cast(
            "structlog.stdlib.BoundLogger",
            structlog.get_logger(self.__class__.__name__),
        )
