# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""Application configuration."""

from .settings import (
    DatabaseSettings,
    ObservabilitySettings,
    SessionSettings,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "DatabaseSettings",
    "SessionSettings",
    "ObservabilitySettings",
    "get_settings",
]
