"""HTTP probe transport (requests)."""

from __future__ import annotations

import requests


class RequestsProbeTransport:
    """``ProbeTransport`` backed by a ``requests.Session``."""

    def __init__(self, session: requests.Session | None = None, *, verify: bool = True) -> None:
        self._session = session or requests.Session()
        self._verify = verify

    def get(self, url: str, timeout: float) -> int:
        response = self._session.get(url, timeout=timeout, verify=self._verify)
        response.close()
        return response.status_code
