"""Interface for the user-facing notification surface ("toasts").

Defines the contract for short success/error/info/warning notices and
updatable loading indicators, allowing different implementations
(console, GUI, silent).
"""

import abc
from typing import Any, Optional

from tubeflow.domain.models.common import ApiResult, ToastId


class Notifier(abc.ABC):
    """Abstract Base Class for toast notifications."""

    @abc.abstractmethod
    def show_success(self, message: str, **options: Any) -> None:
        """Displays a success notice."""
        pass

    @abc.abstractmethod
    def show_error(self, message: str, **options: Any) -> None:
        """Displays an error notice."""
        pass

    @abc.abstractmethod
    def show_info(self, message: str, **options: Any) -> None:
        """Displays an informational notice."""
        pass

    @abc.abstractmethod
    def show_warning(self, message: str, **options: Any) -> None:
        """Displays a warning notice."""
        pass

    @abc.abstractmethod
    def show_loading(self, message: str, **options: Any) -> ToastId:
        """Displays a loading notice that stays until updated or dismissed.

        Returns:
            Identifier to pass to `update_toast` or `dismiss`.
        """
        pass

    @abc.abstractmethod
    def update_toast(self, toast_id: ToastId, message: str, kind: str = "success", **options: Any) -> None:
        """Replaces a loading notice with a final one.

        Args:
            toast_id: Identifier returned by `show_loading`.
            message: The new message.
            kind: One of 'success', 'error', 'info', 'warning'.
        """
        pass

    @abc.abstractmethod
    def dismiss(self, toast_id: ToastId) -> None:
        pass

    @abc.abstractmethod
    def dismiss_all(self) -> None:
        pass

    # --- Convenience helpers built on the primitives above ---

    def show_api_result(
        self,
        result: Optional[ApiResult],
        success_message: str = "Operation completed successfully!",
        error_message: str = "Operation failed. Please try again.",
    ) -> None:
        """Shows the outcome of a `{success, message}` envelope."""
        if result and result.get("success"):
            self.show_success(result.get("message") or success_message)
        else:
            self.show_error((result or {}).get("message") or error_message)

    def show_validation_error(self, message: str) -> None:
        self.show_error(message, duration=6.0, category="validation")

    def show_network_error(
        self, message: str = "Network error. Please check your connection and try again."
    ) -> None:
        self.show_error(message, duration=10.0, category="network")
