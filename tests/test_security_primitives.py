"""
Test Suite: sessionguard_core Shared Security Primitives
========================================================

Device fingerprinting, client address normalization and the exception
hierarchy.
"""

import hashlib

import pytest

from sessionguard_core import (
    InvalidIdentityError,
    SessionConflictError,
    SessionCreationError,
    SessionError,
    SessionGuardError,
    SessionStoreError,
    generate_device_fingerprint,
    is_private_ip,
    normalize_ip,
)


class TestDeviceFingerprint:

    def test_is_sha256_hex(self):
        fp = generate_device_fingerprint("Mozilla/5.0", "en-US", "gzip", "10.0.0.5")
        assert len(fp) == 64
        assert all(c in "0123456789abcdef" for c in fp)

    def test_matches_pipe_joined_digest(self):
        fp = generate_device_fingerprint("Mozilla/5.0", "en-US", "gzip", "10.0.0.5")
        expected = hashlib.sha256(b"Mozilla/5.0|en-US|gzip|10.0.0.5").hexdigest()
        assert fp == expected

    def test_deterministic(self):
        args = ("UA", "fr", "br", "192.168.1.1")
        assert generate_device_fingerprint(*args) == generate_device_fingerprint(*args)

    def test_missing_fields_are_empty_strings(self):
        assert generate_device_fingerprint(None, None, None, None) == hashlib.sha256(
            b"|||"
        ).hexdigest()
        assert generate_device_fingerprint("UA", None, "gzip", "") == generate_device_fingerprint(
            "UA", "", "gzip", None
        )

    def test_field_order_matters(self):
        assert generate_device_fingerprint("a", "b", "", "") != generate_device_fingerprint(
            "b", "a", "", ""
        )

    def test_address_changes_fingerprint(self):
        assert generate_device_fingerprint("UA", "en", "gzip", "10.0.0.5") != (
            generate_device_fingerprint("UA", "en", "gzip", "10.0.0.6")
        )


class TestNormalizeIp:

    def test_ipv6_loopback(self):
        assert normalize_ip("::1") == "127.0.0.1"

    def test_ipv4_mapped(self):
        assert normalize_ip("::ffff:10.0.0.5") == "10.0.0.5"

    def test_plain_ipv4_unchanged(self):
        assert normalize_ip(" 203.0.113.9 ") == "203.0.113.9"

    def test_ipv6_compressed(self):
        assert normalize_ip("2001:0db8:0000:0000:0000:0000:0000:0001") == "2001:db8::1"

    def test_zone_id_dropped(self):
        assert normalize_ip("fe80::1%eth0") == "fe80::1"

    def test_empty(self):
        assert normalize_ip(None) == ""
        assert normalize_ip("") == ""

    def test_invalid_passthrough(self):
        assert normalize_ip("not-an-ip") == "not-an-ip"


class TestIsPrivateIp:

    @pytest.mark.parametrize(
        "address",
        ["10.0.0.5", "10.255.255.255", "172.16.0.1", "172.31.255.254", "192.168.1.10", "::ffff:10.1.2.3"],
    )
    def test_private(self, address):
        assert is_private_ip(address) is True

    @pytest.mark.parametrize(
        "address",
        ["172.15.0.1", "172.32.0.1", "203.0.113.9", "8.8.8.8", "127.0.0.1", "::1", "2001:db8::1"],
    )
    def test_not_private(self, address):
        assert is_private_ip(address) is False

    def test_garbage_is_not_private(self):
        assert is_private_ip("garbage") is False
        assert is_private_ip(None) is False


class TestExceptionHierarchy:

    def test_all_errors_share_base(self):
        for cls in (InvalidIdentityError, SessionStoreError, SessionCreationError, SessionConflictError):
            assert issubclass(cls, SessionError)
            assert issubclass(cls, SessionGuardError)

    def test_store_error_details(self):
        cause = TimeoutError("store did not answer")
        err = SessionStoreError("Store failed", operation="validate_session", original_error=cause)

        assert err.details == {
            "operation": "validate_session",
            "original_error": "store did not answer",
            "original_error_type": "TimeoutError",
        }
        assert err.to_dict()["error"] == "SessionStoreError"

    def test_identity_error_field(self):
        err = InvalidIdentityError("A username is required", field="username")
        assert err.details["field"] == "username"
        assert str(err) == "A username is required"

    def test_conflict_error(self):
        err = SessionConflictError("abcd1234", 3, operation="terminate_session")

        assert isinstance(err, SessionStoreError)
        assert err.details["attempts"] == 3
        assert err.details["session"] == "abcd1234"
        assert err.details["operation"] == "terminate_session"
