import json
from pathlib import Path

from conftest import make_storage, pool_of

from proxy_dispatch.core.enums import CredentialSource
from proxy_dispatch.services.credentials.store import (
    CredentialStore,
    ExplicitCredentialSource,
    JsonFileStorage,
    PoolCredentialSource,
)


class TestPersonalCredential:
    def test_returns_personal_token(self) -> None:
        store = CredentialStore(make_storage(personal="personal-abcdef123456"))

        credential = store.personal_credential()

        assert credential is not None
        assert credential.token == "personal-abcdef123456"
        assert credential.source == CredentialSource.PERSONAL

    def test_missing_personal_token(self) -> None:
        store = CredentialStore(make_storage(personal=None))
        assert store.personal_credential() is None

    def test_corrupt_user_record_degrades_to_none(self) -> None:
        store = CredentialStore({"currentUser": "{not json"})
        assert store.personal_credential() is None
        assert store.current_username() is None

    def test_username_requires_user_id(self) -> None:
        store = CredentialStore({"currentUser": json.dumps({"username": "bob"})})
        assert store.current_username() is None

        store = CredentialStore(make_storage(username="bob"))
        assert store.current_username() == "bob"


class TestPoolCredentials:
    def test_newest_first_and_truncated_to_eligible(self) -> None:
        store = CredentialStore(make_storage(pool=pool_of(15)), max_eligible=10)

        tokens = [c.token for c in store.pool_credentials()]

        assert len(tokens) == 10
        assert tokens[0] == "pool-token-14"
        assert tokens[-1] == "pool-token-05"
        assert all(c.source == CredentialSource.POOL for c in store.pool_credentials())

    def test_session_storage_is_separate_from_local(self) -> None:
        local = make_storage(personal="p-token")
        session = make_storage(pool=pool_of(2))

        store = CredentialStore(local, session)

        assert store.personal_credential().token == "p-token"  # type: ignore[union-attr]
        assert [c.token for c in store.pool_credentials()] == ["pool-token-01", "pool-token-00"]

    def test_invalid_records_are_skipped(self) -> None:
        storage = {
            "veoAuthTokens": json.dumps(
                [
                    {"token": "good-1", "createdAt": "2025-02-01T00:00:00Z"},
                    {"token": "", "createdAt": "2025-03-01T00:00:00Z"},
                    {"createdAt": "2025-03-01T00:00:00Z"},
                    "garbage",
                    {"token": "good-2", "createdAt": "not-a-date"},
                    {"token": "good-3"},
                ]
            )
        }

        tokens = [c.token for c in CredentialStore(storage).pool_credentials()]

        # 无时间戳的记录排在最后
        assert tokens == ["good-1", "good-3"]

    def test_corrupt_pool_degrades_to_empty(self) -> None:
        assert CredentialStore({"veoAuthTokens": "[[["}).pool_credentials() == []
        assert CredentialStore({"veoAuthTokens": json.dumps({"a": 1})}).pool_credentials() == []
        assert CredentialStore({}).pool_credentials() == []

    def test_naive_and_aware_timestamps_compare(self) -> None:
        storage = {
            "veoAuthTokens": json.dumps(
                [
                    {"token": "naive", "createdAt": "2025-01-02T00:00:00"},
                    {"token": "aware", "createdAt": "2025-01-03T00:00:00+00:00"},
                ]
            )
        }
        source = PoolCredentialSource(storage)
        assert [c.token for c in source.credentials()] == ["aware", "naive"]

    def test_failing_source_never_raises(self) -> None:
        class BrokenSource:
            def credentials(self):  # type: ignore[no-untyped-def]
                raise RuntimeError("boom")

        store = CredentialStore({}, pool_source=BrokenSource(), personal_source=BrokenSource())

        assert store.pool_credentials() == []
        assert store.personal_credential() is None


def test_explicit_source() -> None:
    assert ExplicitCredentialSource(None).credentials() == []
    [credential] = ExplicitCredentialSource("tok-123456").credentials()
    assert credential.source == CredentialSource.SPECIFIC


def test_credential_repr_masks_token() -> None:
    [credential] = ExplicitCredentialSource("secret-value-abcdef").credentials()
    assert "secret-value" not in repr(credential)
    assert credential.masked == "...abcdef"


def test_json_file_storage(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text(
        json.dumps(
            {
                "currentUser": {"id": "u1", "username": "carol", "personalAuthToken": "pt"},
                "veoAuthTokens": json.dumps([{"token": "t1", "createdAt": "2025-01-01T00:00:00Z"}]),
            }
        ),
        encoding="utf-8",
    )

    store = CredentialStore(JsonFileStorage(path))

    assert store.current_username() == "carol"
    assert store.personal_credential().token == "pt"  # type: ignore[union-attr]
    assert [c.token for c in store.pool_credentials()] == ["t1"]


def test_json_file_storage_missing_or_corrupt(tmp_path: Path) -> None:
    assert len(JsonFileStorage(tmp_path / "missing.json")) == 0

    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{oops", encoding="utf-8")
    assert CredentialStore(JsonFileStorage(corrupt)).pool_credentials() == []
