"""
Cold-standby flags kept in the Consul key/value store.

An instance flagged cold-standby has been withdrawn on purpose; health checks
and service discovery consumers read the flag so they don't treat the
withdrawal as a failure. Writes are blind set/delete, so concurrent passes
against the same instance are safe only because both sides write the same
value for the same schedule decision.
"""
import logging
from typing import Optional

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.exceptions import LockStoreError


logger = logging.getLogger(__name__)

COLD_STANDBY_KEY = 'nodes/{instance_id}/cold-standby'


class ConsulKV:
    """Minimal client for Consul's ``/v1/kv`` HTTP API."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_wait: float = 0.5,
        client: Optional[httpx.Client] = None
    ):
        """Initialize the client.

        Args:
            base_url: Consul agent URL, e.g. http://localhost:8500
            token: Optional ACL token
            timeout: Per-request timeout in seconds
            max_attempts: Attempts per write before giving up
            retry_wait: Base of the exponential backoff between attempts
            client: Pre-built httpx client (tests inject a MockTransport one)
        """
        headers = {'X-Consul-Token': token} if token else {}
        self.client = client or httpx.Client(base_url=base_url, headers=headers, timeout=timeout)
        self._retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=retry_wait, max=10),
            retry=retry_if_exception_type(LockStoreError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )

    def put(self, key: str, value: str, datacenter: Optional[str] = None) -> None:
        """Set ``key`` to ``value``."""
        self._retrying(self._request, 'PUT', key, datacenter, value)

    def delete(self, key: str, datacenter: Optional[str] = None) -> None:
        """Remove ``key``. Deleting a missing key succeeds."""
        self._retrying(self._request, 'DELETE', key, datacenter)

    def _request(self, method: str, key: str, datacenter: Optional[str], value: Optional[str] = None) -> None:
        params = {'dc': datacenter} if datacenter else None
        try:
            response = self.client.request(method, f'/v1/kv/{key}', params=params, content=value)
        except httpx.HTTPError as e:
            raise LockStoreError(f"Consul {method} {key} failed: {e}", details=repr(e))

        if response.status_code != 200:
            raise LockStoreError(
                f"Consul {method} {key} returned HTTP {response.status_code}",
                details=response.text
            )

        # PUT answers with a JSON boolean; false means the write was refused
        if method == 'PUT' and response.text.strip() == 'false':
            raise LockStoreError(f"Consul refused write to {key}")

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> 'ConsulKV':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


class ColdStandbyLock:
    """Sets and clears the per-instance cold-standby flag."""

    def __init__(self, kv: ConsulKV, logger: Optional[logging.Logger] = None):
        self.kv = kv
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def key_for(instance_id: str) -> str:
        return COLD_STANDBY_KEY.format(instance_id=instance_id)

    def set_on(self, instance_id: str, data_center: Optional[str] = None) -> None:
        """Mark the instance as intentionally withdrawn. Idempotent."""
        self.logger.info("Blocking %s (cold standby on)", instance_id)
        self.kv.put(self.key_for(instance_id), 'true', datacenter=data_center)

    def set_off(self, instance_id: str, data_center: Optional[str] = None) -> None:
        """Clear the withdrawn mark. Idempotent."""
        self.logger.info("Unblocking %s (cold standby off)", instance_id)
        self.kv.delete(self.key_for(instance_id), datacenter=data_center)
