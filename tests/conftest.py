from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from sermon_helper.config.settings import clear_settings_cache
from sermon_helper.crypto.secrets import AesGcmSecretCipher
from sermon_helper.main import create_app
from sermon_helper.storage.sqlite import SQLiteGuardrailStore

TEST_ENCRYPTION_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"


@pytest.fixture
def cipher() -> AesGcmSecretCipher:
    return AesGcmSecretCipher.from_hex(TEST_ENCRYPTION_KEY)


@pytest.fixture
def store(tmp_path: Path) -> SQLiteGuardrailStore:
    return SQLiteGuardrailStore(path=tmp_path / "guardrails.db")


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[TestClient]:
    monkeypatch.setenv("SHG_API_KEYS", "test-key")
    monkeypatch.setenv("SHG_DEPLOY_ENV", "development")
    monkeypatch.setenv("SHG_ENCRYPTION_KEY", TEST_ENCRYPTION_KEY)
    monkeypatch.setenv("SHG_PROVIDER_NAME", "stub")
    monkeypatch.setenv("SHG_DATABASE_PATH", str(tmp_path / "app.db"))
    clear_settings_cache()
    app = create_app()

    app_store: SQLiteGuardrailStore = app.state.store
    app_store.save_provider_settings(
        enabled=True,
        api_key_encrypted=AesGcmSecretCipher.from_hex(TEST_ENCRYPTION_KEY).encrypt("sk-test"),
    )
    app_store.save_tenant("tenant-a", ai_enabled=True, monthly_token_limit=10_000)
    yield TestClient(app)
    clear_settings_cache()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {
        "Authorization": "Bearer test-key",
        "x-shg-tenant-id": "tenant-a",
        "x-shg-user-id": "user-1",
        "x-shg-org-name": "Grace Chapel",
    }
