"""
Tests for configuration, PIN format checks and preference storage.
"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from pinauth.conf import AuthenticatorConfig
from pinauth.exceptions import ValidationError
from pinauth.pin import is_valid_pin, validate_pin
from pinauth.storage import JsonFileStore, MemoryStore


class TestAuthenticatorConfig:
    """Defaults, bounds and environment loading."""

    def test_defaults(self):
        config = AuthenticatorConfig()
        assert config.key_alias == "auth_key"
        assert config.nonce_key == "user_pin_iv"
        assert config.ciphertext_key == "user_pin_enc"
        assert config.digits == 6
        assert config.tick_interval == 1.0
        assert config.storage_path is None

    @pytest.mark.parametrize("kwargs", [
        {"digits": 0},
        {"digits": 10},
        {"tick_interval": 0},
        {"tick_interval": 2.0},
        {"key_alias": ""},
        {"nonce_key": "same", "ciphertext_key": "same"},
    ])
    def test_rejects_invalid(self, kwargs):
        with pytest.raises(PydanticValidationError):
            AuthenticatorConfig(**kwargs)

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PINAUTH_KEY_ALIAS", "other_key")
        monkeypatch.setenv("PINAUTH_DIGITS", "8")
        monkeypatch.setenv("PINAUTH_TICK_INTERVAL", "0.5")
        monkeypatch.setenv("PINAUTH_STORAGE_PATH", str(tmp_path / "prefs.json"))
        config = AuthenticatorConfig.from_env()
        assert config.key_alias == "other_key"
        assert config.digits == 8
        assert config.tick_interval == 0.5
        assert config.storage_path == str(tmp_path / "prefs.json")

    def test_from_env_defaults(self, monkeypatch):
        for name in ("PINAUTH_KEY_ALIAS", "PINAUTH_DIGITS",
                     "PINAUTH_TICK_INTERVAL", "PINAUTH_STORAGE_PATH"):
            monkeypatch.delenv(name, raising=False)
        assert AuthenticatorConfig.from_env() == AuthenticatorConfig()


class TestPinFormat:
    """Exactly 6 ASCII digits."""

    @pytest.mark.parametrize("pin", ["000000", "123456", "999999"])
    def test_valid(self, pin):
        assert is_valid_pin(pin)
        assert validate_pin(pin) == pin

    @pytest.mark.parametrize("pin", [
        "", "12345", "1234567", "12345a", " 123456", "123456\n",
        "１２３４５６", "١٢٣٤٥٦", None, 123456, b"123456",
    ])
    def test_invalid(self, pin):
        assert not is_valid_pin(pin)
        with pytest.raises(ValidationError):
            validate_pin(pin)


class TestMemoryStore:
    """Dict-backed preferences."""

    def test_get_set_delete(self):
        store = MemoryStore()
        assert store.get("a") is None
        store.set("a", "1")
        assert store.get("a") == "1"
        store.delete("a")
        store.delete("a")
        assert store.get("a") is None

    def test_set_many(self):
        store = MemoryStore({"a": "0"})
        store.set_many({"a": "1", "b": "2"})
        assert store.get("a") == "1" and store.get("b") == "2"
        assert len(store) == 2


class TestJsonFileStore:
    """orjson-backed preferences file."""

    def test_missing_file(self, tmp_path):
        assert JsonFileStore(tmp_path / "prefs.json").get("a") is None

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "prefs.json"
        JsonFileStore(path).set_many({"user_pin_iv": "AAA=", "user_pin_enc": "BBB="})
        store = JsonFileStore(path)
        assert store.get("user_pin_iv") == "AAA="
        assert store.get("user_pin_enc") == "BBB="

    def test_delete(self, tmp_path):
        store = JsonFileStore(tmp_path / "prefs.json")
        store.set("a", "1")
        store.set("b", "2")
        store.delete("a")
        assert store.get("a") is None
        assert store.get("b") == "2"

    def test_no_temp_files_left(self, tmp_path):
        store = JsonFileStore(tmp_path / "prefs.json")
        store.set("a", "1")
        assert [p.name for p in tmp_path.iterdir()] == ["prefs.json"]

    @pytest.mark.parametrize("content", [b"not json", b"[1, 2]", b""])
    def test_unreadable_file(self, tmp_path, content):
        path = tmp_path / "prefs.json"
        path.write_bytes(content)
        assert JsonFileStore(path).get("a") is None
