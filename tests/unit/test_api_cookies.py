"""Unit tests for the cookie session transport."""

from unittest.mock import MagicMock

import pytest
from fastapi import Response
from starlette.datastructures import State

from passgate.api.cookies import (
    MAX_COOKIE_BYTES,
    CookieSessionTransport,
    apply_session_cookie,
    get_pending_cookie,
)
from passgate.exceptions import SessionPersistError


@pytest.fixture
def request_stub():
    request = MagicMock()
    request.state = State()
    request.cookies = {"passgate_session": "incoming-blob"}
    return request


class TestCookieSessionTransport:
    def test_load_reads_request_cookie(self, request_stub, auth_config):
        assert CookieSessionTransport(request_stub, auth_config).load() == "incoming-blob"

    def test_save_records_pending_write(self, request_stub, auth_config):
        transport = CookieSessionTransport(request_stub, auth_config)

        transport.save("new-blob")

        assert get_pending_cookie(request_stub).value == "new-blob"
        assert transport.load() == "new-blob"

    def test_destroy_records_pending_delete(self, request_stub, auth_config):
        transport = CookieSessionTransport(request_stub, auth_config)

        transport.destroy()

        assert get_pending_cookie(request_stub).action == "delete"
        assert transport.load() is None

    def test_oversized_blob_is_refused(self, request_stub, auth_config):
        transport = CookieSessionTransport(request_stub, auth_config)

        with pytest.raises(SessionPersistError):
            transport.save("x" * MAX_COOKIE_BYTES)

        assert get_pending_cookie(request_stub) is None


class TestApplySessionCookie:
    def test_sets_hardened_cookie(self, request_stub, auth_config):
        CookieSessionTransport(request_stub, auth_config).save("new-blob")
        response = Response()

        apply_session_cookie(request_stub, response, auth_config)

        header = response.headers["set-cookie"]
        assert header.startswith("passgate_session=new-blob")
        assert "HttpOnly" in header
        assert "Max-Age=1800" in header
        assert "Path=/" in header
        assert "SameSite=strict" in header
        assert "Secure" not in header

    def test_secure_flag_follows_config(self, request_stub, auth_config):
        from dataclasses import replace

        config = replace(auth_config, secure_cookies=True)
        CookieSessionTransport(request_stub, config).save("new-blob")
        response = Response()

        apply_session_cookie(request_stub, response, config)

        assert "Secure" in response.headers["set-cookie"]

    def test_delete_expires_cookie(self, request_stub, auth_config):
        CookieSessionTransport(request_stub, auth_config).destroy()
        response = Response()

        apply_session_cookie(request_stub, response, auth_config)

        header = response.headers["set-cookie"]
        assert header.startswith('passgate_session=""')
        assert "Max-Age=0" in header

    def test_no_pending_write_leaves_response_alone(self, request_stub, auth_config):
        response = Response()

        apply_session_cookie(request_stub, response, auth_config)

        assert "set-cookie" not in response.headers
