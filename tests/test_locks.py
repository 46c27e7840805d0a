"""Tests for the Consul-backed cold-standby lock."""

import logging
import threading
from unittest.mock import Mock

import httpx
import pytest

from aws_scheduler.core.exceptions import LockStoreError
from aws_scheduler.services.locks import ColdStandbyLock, ConsulKV


def consul_client(handler):
    return httpx.Client(base_url="http://consul.local:8500", transport=httpx.MockTransport(handler))


class RecordingConsul:
    """MockTransport handler keeping an in-memory KV store."""

    def __init__(self, failures_before_success=0, status_code=500):
        self.store = {}
        self.requests = []
        self.failures_left = failures_before_success
        self.status_code = status_code
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            if self.failures_left:
                self.failures_left -= 1
                return httpx.Response(self.status_code, text="unavailable")

            key = request.url.path[len('/v1/kv/'):]
            if request.method == 'PUT':
                self.store[key] = request.content.decode()
                return httpx.Response(200, text="true")
            if request.method == 'DELETE':
                self.store.pop(key, None)
                return httpx.Response(200, text="true")
        return httpx.Response(405)


def make_lock(consul, max_attempts=3):
    kv = ConsulKV("http://consul.local:8500", max_attempts=max_attempts, retry_wait=0, client=consul_client(consul))
    return ColdStandbyLock(kv)


class TestColdStandbyLock:

    def test_key_derivation(self):
        assert ColdStandbyLock.key_for("i-0abc") == "nodes/i-0abc/cold-standby"

    def test_set_on_writes_flag(self):
        consul = RecordingConsul()
        lock = make_lock(consul)

        lock.set_on("i-0abc")

        request = consul.requests[0]
        assert request.method == "PUT"
        assert request.url.path == "/v1/kv/nodes/i-0abc/cold-standby"
        assert consul.store == {"nodes/i-0abc/cold-standby": "true"}

    def test_set_off_clears_flag(self):
        consul = RecordingConsul()
        lock = make_lock(consul)

        lock.set_on("i-0abc")
        lock.set_off("i-0abc")

        assert consul.requests[-1].method == "DELETE"
        assert consul.store == {}

    def test_operations_are_idempotent(self):
        consul = RecordingConsul()
        lock = make_lock(consul)

        lock.set_on("i-0abc")
        lock.set_on("i-0abc")
        assert consul.store == {"nodes/i-0abc/cold-standby": "true"}

        lock.set_off("i-0abc")
        lock.set_off("i-0abc")
        assert consul.store == {}

    def test_data_center_is_passed_to_consul(self):
        consul = RecordingConsul()
        lock = make_lock(consul)

        lock.set_on("i-0abc", data_center="eu-west-1-prod")

        assert consul.requests[0].url.params["dc"] == "eu-west-1-prod"

    def test_no_data_center_param_when_unknown(self):
        consul = RecordingConsul()
        lock = make_lock(consul)

        lock.set_off("i-0abc")

        assert "dc" not in consul.requests[0].url.params

    def test_retries_transient_failures(self):
        consul = RecordingConsul(failures_before_success=2)
        lock = make_lock(consul, max_attempts=3)

        lock.set_on("i-0abc")

        assert len(consul.requests) == 3
        assert consul.store == {"nodes/i-0abc/cold-standby": "true"}

    def test_gives_up_after_max_attempts(self):
        consul = RecordingConsul(failures_before_success=10)
        lock = make_lock(consul, max_attempts=3)

        with pytest.raises(LockStoreError, match="HTTP 500"):
            lock.set_on("i-0abc")

        assert len(consul.requests) == 3

    def test_refused_write_is_an_error(self):
        def refuse(request):
            return httpx.Response(200, text="false")

        kv = ConsulKV("http://consul.local:8500", max_attempts=1, retry_wait=0, client=consul_client(refuse))

        with pytest.raises(LockStoreError, match="refused"):
            ColdStandbyLock(kv).set_on("i-0abc")

    def test_transport_error_is_wrapped(self):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        kv = ConsulKV("http://consul.local:8500", max_attempts=2, retry_wait=0, client=consul_client(unreachable))

        with pytest.raises(LockStoreError, match="connection refused"):
            ColdStandbyLock(kv).set_off("i-0abc")

    def test_token_header(self):
        kv = ConsulKV("http://consul.local:8500", token="secret")
        try:
            assert kv.client.headers["X-Consul-Token"] == "secret"
        finally:
            kv.close()

    def test_decisions_go_to_injected_logger(self):
        consul = RecordingConsul()
        kv = ConsulKV("http://consul.local:8500", retry_wait=0, client=consul_client(consul))
        logger = Mock(spec=logging.Logger)

        lock = ColdStandbyLock(kv, logger=logger)
        lock.set_on("i-0abc")
        lock.set_off("i-0abc")

        assert logger.info.call_count == 2
        assert "i-0abc" in logger.info.call_args_list[0].args
