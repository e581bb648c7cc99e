from app.config import DEFAULT_ENTRY_POINT, Settings


def test_defaults_target_soneium_minato(monkeypatch):
    """Out of the box the relay serves chain 1946 through EntryPoint v0.7."""

    for name in ("CHAIN_ID", "ENTRY_POINT_ADDRESS", "PORT", "POLL_INTERVAL_SECONDS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.chain_id == 1946
    assert settings.entry_point_address == DEFAULT_ENTRY_POINT
    assert settings.port == 3001
    assert settings.poll_interval_seconds == 3.0
    assert settings.max_poll_attempts is None


def test_node_env_alias(monkeypatch):
    """NODE_ENV is honoured for the deployment environment name."""

    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.setenv("NODE_ENV", "production")

    settings = Settings(_env_file=None)

    assert settings.environment == "production"


def test_service_flags_follow_urls(monkeypatch):
    monkeypatch.setenv("PAYMASTER_URL", "https://paymaster.example/rpc")
    monkeypatch.setenv("BUNDLER_URL", "")

    settings = Settings(_env_file=None)

    assert settings.has_paymaster is True
    assert settings.has_bundler is False


def test_csv_settings_are_split(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:3000, https://app.example ,")
    monkeypatch.setenv(
        "SPONSORSHIP_ALLOWLIST",
        "0xABCDEFabcdefABCDEFabcdefABCDEFabcdefABCD,0x1111111111111111111111111111111111111111",
    )

    settings = Settings(_env_file=None)

    assert settings.allowed_origin_list == ["http://localhost:3000", "https://app.example"]
    assert settings.sponsorship_allowlist_addresses == [
        "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd",
        "0x1111111111111111111111111111111111111111",
    ]


def test_backend_url_accepts_frontend_alias(monkeypatch):
    monkeypatch.delenv("BACKEND_URL", raising=False)
    monkeypatch.delenv("API_URL", raising=False)
    monkeypatch.setenv("VITE_API_URL", "http://relay.internal:3001")

    settings = Settings(_env_file=None)

    assert settings.backend_url == "http://relay.internal:3001"
