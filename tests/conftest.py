from __future__ import annotations

import pytest

WT_ENV_VARS = (
    "WT_RPC_URL",
    "WT_INDEX_ADDRESS",
    "WT_DEFAULT_DATA_STORAGE",
    "WT_OFFCHAIN_ROOT",
    "WT_HTTP_STORAGE_URL",
    "WT_GAS_COEFFICIENT",
    "WT_MAX_POINTER_DEPTH",
    "WT_LOG_LEVEL",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Unset every WT_* variable and restore them afterwards, including ones set by .env loading."""
    for name in WT_ENV_VARS:
        # setenv first so teardown restores the original state even if
        # the variable was absent and gets set by load_dotenv
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch
