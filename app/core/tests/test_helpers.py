"""
Tests for core helper functions.
"""

import hashlib

from django.test import RequestFactory

from core.helpers import get_client_ip, hash_bytes


class TestHashBytes:
    def test_sha256_default(self):
        assert hash_bytes(b'{"event":"charge.success"}') == hashlib.sha256(
            b'{"event":"charge.success"}'
        ).hexdigest()

    def test_other_algorithm(self):
        assert hash_bytes(b"abc", "sha512") == hashlib.sha512(b"abc").hexdigest()

    def test_different_bytes_differ(self):
        assert hash_bytes(b'{"a":1}') != hash_bytes(b'{"a": 1}')


class TestGetClientIp:
    def test_forwarded_for_first_hop(self):
        request = RequestFactory().get(
            "/", HTTP_X_FORWARDED_FOR="203.0.113.7, 10.0.0.1"
        )

        assert get_client_ip(request) == "203.0.113.7"

    def test_remote_addr(self):
        request = RequestFactory().get("/", REMOTE_ADDR="198.51.100.2")

        assert get_client_ip(request) == "198.51.100.2"
