"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), resolves the target
endpoint, runs the request through the resilient executor and reports the
outcome on the notifier and the output console.
"""

import logging
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from tubeflow.domain.interfaces.notifier import Notifier
from tubeflow.domain.models.errors import ApiError, AuthenticationError
from tubeflow.infrastructure.config.endpoints import API_ENDPOINTS, resolve_endpoint
from tubeflow.infrastructure.resilience.request_executor import ResilientRequestExecutor

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REQUEST_FAILED = 1


class CommandHandler:
    """Handles incoming commands and delegates to the request executor."""

    def __init__(
        self,
        executor: ResilientRequestExecutor,
        notifier: Notifier,
        base_url: str,
        output: Optional[Console] = None,
    ):
        self.executor = executor
        self.notifier = notifier
        self.base_url = base_url
        self.output = output or Console()

    async def handle_request(self, method: str, target: str, data: Any = None) -> int:
        """Performs one request against a registered endpoint, path or URL.

        Args:
            method: 'GET', 'POST', 'PUT' or 'DELETE'.
            target: Endpoint name (`leads`, `do1/42`), path or absolute URL.
            data: JSON-serialisable body for POST/PUT.

        Returns:
            Process exit code.
        """
        method = method.upper()
        url = resolve_endpoint(target, self.base_url)
        logger.info(f"Handling {method} request for {url}")
        toast_id = self.notifier.show_loading(f"{method} {url}")

        try:
            if method == "GET":
                payload = await self.executor.get(url)
            elif method == "POST":
                payload = await self.executor.post(url, data)
            elif method == "PUT":
                payload = await self.executor.put(url, data)
            elif method == "DELETE":
                payload = await self.executor.delete(url)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")
        except AuthenticationError as e:
            # Raised before any request is sent, so the executor did not notify
            self.notifier.update_toast(toast_id, e.message, kind="error")
            return EXIT_REQUEST_FAILED
        except ApiError as e:
            # The executor already reported the failure on the notifier
            logger.debug(f"{method} {url} failed: {e!r}")
            self.notifier.dismiss(toast_id)
            return EXIT_REQUEST_FAILED

        attempts = self.executor.state.retry_count + 1
        suffix = f" after {attempts} attempts" if attempts > 1 else ""
        self.notifier.update_toast(toast_id, f"{method} {url} succeeded{suffix}", kind="success")
        self.print_payload(payload)
        return EXIT_OK

    async def handle_health(self) -> int:
        """Checks the backend health endpoint."""
        return await self.handle_request("GET", "health")

    def handle_list_endpoints(self) -> None:
        """Prints the registered workflow endpoints with their full URLs."""
        table = Table(title="Workflow endpoints")
        table.add_column("Name", style="bold")
        table.add_column("URL")
        for name in API_ENDPOINTS:
            table.add_row(name, resolve_endpoint(name, self.base_url))
        self.output.print(table)

    def print_payload(self, payload: Any) -> None:
        if payload is None or payload == "":
            return
        if isinstance(payload, str):
            self.output.print(payload, markup=False, highlight=False)
        else:
            self.output.print_json(data=payload)
