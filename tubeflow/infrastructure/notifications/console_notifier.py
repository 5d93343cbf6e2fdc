import logging
import uuid
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape

from tubeflow.domain.interfaces.notifier import Notifier
from tubeflow.domain.models.common import TOAST_KINDS, ToastId

logger = logging.getLogger(__name__)

# kind -> (rich style, label)
KIND_STYLES = {
    "success": ("bold green", "Success"),
    "error": ("bold red", "Error"),
    "info": ("blue", "Info"),
    "warning": ("bold yellow", "Warning"),
    "loading": ("dim", "Loading"),
}


class ConsoleNotifier(Notifier):
    """Concrete implementation of Notifier printing toasts with the rich library."""

    def __init__(self, console: Optional[Console] = None):
        # Toasts go to stderr so command output on stdout stays machine-readable
        self._console = console or Console(stderr=True)
        self._loading: Dict[ToastId, str] = {}

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    @property
    def pending(self) -> Dict[ToastId, str]:
        """Loading toasts not yet updated or dismissed."""
        return dict(self._loading)

    def _print(self, kind: str, message: str, **options: Any) -> None:
        style, label = KIND_STYLES[kind]
        if options:
            logger.debug(f"Toast options ignored on console: {options}")
        self.console.print(f"[{style}]{label}:[/{style}] {escape(message)}")

    def show_success(self, message: str, **options: Any) -> None:
        self._print("success", message, **options)

    def show_error(self, message: str, **options: Any) -> None:
        self._print("error", message, **options)

    def show_info(self, message: str, **options: Any) -> None:
        self._print("info", message, **options)

    def show_warning(self, message: str, **options: Any) -> None:
        self._print("warning", message, **options)

    def show_loading(self, message: str, **options: Any) -> ToastId:
        toast_id = ToastId(uuid.uuid4().hex[:8])
        self._loading[toast_id] = message
        self._print("loading", message, **options)
        return toast_id

    def update_toast(self, toast_id: ToastId, message: str, kind: str = "success", **options: Any) -> None:
        if kind not in TOAST_KINDS:
            raise ValueError(f"Unknown toast kind '{kind}', expected one of {TOAST_KINDS}")
        if self._loading.pop(toast_id, None) is None:
            logger.debug(f"update_toast called for unknown toast {toast_id}")
        self._print(kind, message, **options)

    def dismiss(self, toast_id: ToastId) -> None:
        self._loading.pop(toast_id, None)

    def dismiss_all(self) -> None:
        self._loading.clear()
