from health_server.config import Settings, _env_flag, get_settings


def test_settings_are_cached():
    assert get_settings() is get_settings()


def test_sweep_deadline_stays_below_interval():
    assert Settings(sweep_interval_seconds=60, sweep_deadline_seconds=45).effective_sweep_deadline == 45
    assert Settings(sweep_interval_seconds=30, sweep_deadline_seconds=45).effective_sweep_deadline == 29
    assert Settings(sweep_interval_seconds=1, sweep_deadline_seconds=45).effective_sweep_deadline == 1


def test_email_configured_needs_credentials():
    assert not Settings(smtp_user="bot@example.com", smtp_password=None).email_configured
    assert Settings(smtp_user="bot@example.com", smtp_password="secret").email_configured


def test_cors_origins():
    assert Settings(cors_allow_origins_raw="*").cors_allow_origins == ["*"]
    assert Settings(cors_allow_origins_raw="https://a.test, https://b.test").cors_allow_origins == [
        "https://a.test",
        "https://b.test",
    ]


def test_env_flag(monkeypatch):
    monkeypatch.setenv("HEALTH_TEST_FLAG", "off")
    assert _env_flag("HEALTH_TEST_FLAG", True) is False
    monkeypatch.setenv("HEALTH_TEST_FLAG", "yes")
    assert _env_flag("HEALTH_TEST_FLAG", False) is True
    monkeypatch.delenv("HEALTH_TEST_FLAG")
    assert _env_flag("HEALTH_TEST_FLAG", True) is True
