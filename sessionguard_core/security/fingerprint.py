# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Device fingerprinting.

A fingerprint is a SHA-256 digest over the headers a browser presents on
every request plus the client address. It is advisory: it helps spot a
session moving between devices, it is not an identity guarantee.
"""

import hashlib

FINGERPRINT_SEPARATOR = "|"


def generate_device_fingerprint(
    user_agent: str | None,
    accept_language: str | None,
    accept_encoding: str | None,
    client_ip: str | None,
) -> str:
    """
    Hash the client-presented signals into a 64-char hex digest.

    Field order is fixed (user agent, accept-language, accept-encoding,
    client IP). Missing fields count as empty strings.
    """
    components = [
        user_agent or "",
        accept_language or "",
        accept_encoding or "",
        client_ip or "",
    ]
    return hashlib.sha256(FINGERPRINT_SEPARATOR.join(components).encode()).hexdigest()


__all__ = ["generate_device_fingerprint"]
