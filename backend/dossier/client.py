"""
HTTP client for the Intake Dossier API.

Implements the client side of the polling convention: request the status at a
fixed interval until it is terminal, and give up after a maximum wait.

Usage:
    with DossierClient("http://localhost:8080") as client:
        receipt = client.submit({"firstName": "Jane", "email": "jane@acme.com"})
        final = client.wait_for_terminal(receipt["token"])
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

logger = logging.getLogger("dossier.client")

TERMINAL = ("completed", "failed")


class DossierClientError(RuntimeError):
    """The API answered with an unexpected error."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"HTTP {status_code}: {detail}")


class UnknownToken(DossierClientError):
    """No submission matches the token (HTTP 404)."""

    def __init__(self, detail: str = "Submission not found"):
        super().__init__(404, detail)


class PollTimeout(TimeoutError):
    """No terminal status was observed within the maximum wait."""

    def __init__(self, last_status: Optional[str], waited: float):
        self.last_status = last_status
        self.waited = waited
        super().__init__(f"Still '{last_status}' after {waited:.1f}s")


class DossierClient:
    """Thin synchronous client over httpx."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._http = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def __enter__(self) -> "DossierClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = self._http.request(method, path, **kwargs)
        if response.status_code == 404:
            raise UnknownToken()
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail") or response.text
            except ValueError:
                detail = response.text
            raise DossierClientError(response.status_code, str(detail))
        return response

    def submit(self, answers: Dict[str, Any]) -> Dict[str, Any]:
        """POST the questionnaire; returns {id, token, adminUrl}."""
        return self._request("POST", "/api/submissions", json=answers).json()

    def get_status(self, token: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/admin/{token}/status").json()

    def get_full(self, token: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/admin/{token}").json()

    def get_dossier(self, token: str) -> str:
        return self._request("GET", f"/api/admin/{token}/dossier").text

    def wait_for_terminal(
        self,
        token: str,
        interval: float = 3.0,
        max_wait: float = 120.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> Dict[str, Any]:
        """
        Poll the status endpoint until the analysis is completed or failed.

        Returns:
            The last status payload (terminal)

        Raises:
            PollTimeout: max_wait elapsed without a terminal status
            UnknownToken: No submission for this token
        """
        started = clock()
        while True:
            payload = self.get_status(token)
            status = payload.get("status")
            if status in TERMINAL:
                return payload

            waited = clock() - started
            if waited + interval > max_wait:
                raise PollTimeout(status, waited)

            logger.debug(f"Submission still {status}; polling again in {interval}s")
            sleep(interval)
