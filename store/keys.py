"""
Key naming for the Sentinel key-value store.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import hashlib

PREFIX = "sn"


def _slug(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()[:32]


def detection_config(metric: str) -> str:
    return f"{PREFIX}:config:{_slug(metric)}"


def detection_config_pattern() -> str:
    return f"{PREFIX}:config:*"
