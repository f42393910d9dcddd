"""Root conftest: pins client settings before chat_client.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

_TEST_DEFAULTS = {
    "CHAT_API_URL": "http://chat.test",
    "CHAT_WS_URL": "ws://chat.test",
    "USERS_API_URL": "http://users.test",
    "CHAT_IDENTITY": "",
    "CHAT_TOKEN": "",
}

_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    for line in _env_test.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip())

for _key, _value in _TEST_DEFAULTS.items():
    os.environ.setdefault(_key, _value)
