"""Defines common Value Objects used across the request domain.

These objects represent simple values like toast identifiers and endpoint
names, ensuring consistency and type safety.
"""

from typing import Any, NewType, Optional, TypedDict

# Using NewType for semantic clarity, although they are strings at runtime.
ToastId = NewType("ToastId", str)          # Handle of a displayed loading toast
EndpointName = NewType("EndpointName", str)  # Registered workflow endpoint, e.g. 'leads'

# Toast kinds accepted by Notifier.update_toast
TOAST_KINDS = ("success", "error", "info", "warning")


class ApiResult(TypedDict, total=False):
    """Shape of the `{success, message}` envelope many backend routes return."""
    success: bool
    message: Optional[str]
    data: Any
