"""Error handling helpers for the payments relay."""
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)


class ErrorHandler:
    def handle_exception(self, exc: Exception, context: Dict[str, Any] = None) -> Dict[str, Any]:
        """Log the failure with its traceback and return the generic body shown to callers."""
        logger.error("Unhandled exception in payments relay (%s): %s", context or {}, exc, exc_info=True)
        return {"success": False}
