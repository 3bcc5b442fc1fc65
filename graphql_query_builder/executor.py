"""Execution gateway: POSTs rendered operations to a GraphQL endpoint."""

import asyncio
import logging
from typing import Any, Optional

import requests

from . import utils
from .errors import ExecutionTimeout, HttpFailure

logger = logging.getLogger(__name__)


class ExecutionGateway:
    """Sends ``{query, variables, operationName}`` and returns the decoded response body."""

    async def post(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        timeout: float,
        parse_timeout: float,
    ) -> dict:
        """
        Send one request.

        Raises:
            ExecutionTimeout: If the request or body parsing exceeds its timeout
            HttpFailure: On transport errors, non-2xx status or a non-JSON body
        """
        raise NotImplementedError


class RequestsGateway(ExecutionGateway):
    """Gateway over ``requests``, run in a worker thread."""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def _send(self, url: str, payload: dict, headers: dict, timeout: float) -> requests.Response:
        return self.session.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json", **headers},
            timeout=timeout,
        )

    async def post(self, url, payload, headers, timeout, parse_timeout) -> dict:
        logger.info("Executing %s against %s (timeout %ss)", payload.get("operationName") or "operation",
                    utils.redact_url(url), timeout)
        try:
            resp = await asyncio.wait_for(asyncio.to_thread(self._send, url, payload, headers, timeout), timeout)
        except (asyncio.TimeoutError, requests.Timeout) as e:
            raise ExecutionTimeout("Query execution timed out", timeout) from e
        except requests.RequestException as e:
            raise HttpFailure(None, str(e)) from e

        if not resp.ok:
            raise HttpFailure(resp.status_code, resp.reason or "")

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(utils.safe_json_response, resp, "GraphQL query"), parse_timeout
            )
        except asyncio.TimeoutError as e:
            raise ExecutionTimeout("Response parsing timed out", parse_timeout) from e
        except RuntimeError as e:
            raise HttpFailure(resp.status_code, str(e)) from e
