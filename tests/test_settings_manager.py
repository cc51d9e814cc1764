"""Tests for SettingsManager."""
from core.settings import DEFAULT_SETTINGS, SettingsManager
from health import ServiceDescriptor


def test_settings_manager_initialization(qt_app):
    """Test SettingsManager initialization."""
    manager = SettingsManager(organization="Test", application="WsusConsoleTest")
    assert manager.get_application_name() == "WsusConsoleTest"
    assert manager.get_organization_name() == "Test"
    manager.clear()


def test_get_set_setting(settings_manager):
    settings_manager.set("test.key", "test value")
    assert settings_manager.get("test.key") == "test value"


def test_default_values(settings_manager):
    for key in ("workers.max_workers", "recovery.max_retries", "health.sql_instance",
                "services.descriptors", "ui.auto_refresh_ms"):
        assert settings_manager.contains(key)


def test_typed_getters_match_defaults(settings_manager):
    assert settings_manager.get_int("workers.max_workers") == 4
    assert settings_manager.get_int("poller.interval_ms") == 100
    assert settings_manager.get_int("recovery.max_retries") == 3
    assert settings_manager.get_float("recovery.retry_delay_s") == 5.0
    assert settings_manager.get_float("health.disk_warning_percent") == 75.0
    assert settings_manager.get_float("health.disk_critical_percent") == 90.0
    assert settings_manager.get_int("ui.auto_refresh_ms") == 30000


def test_typed_getters_coerce_strings(settings_manager):
    settings_manager.set("recovery.max_retries", "5")
    settings_manager.set("recovery.retry_delay_s", "0.5")
    settings_manager.set("flag", "yes")
    assert settings_manager.get_int("recovery.max_retries") == 5
    assert settings_manager.get_float("recovery.retry_delay_s") == 0.5
    assert settings_manager.get_bool("flag") is True


def test_typed_getters_fall_back_on_garbage(settings_manager):
    settings_manager.set("recovery.max_retries", "many")
    assert settings_manager.get_int("recovery.max_retries", 3) == 3


def test_get_list_normalises_single_value(settings_manager):
    settings_manager.set("health.firewall_rules", "Only Rule")
    assert settings_manager.get_list("health.firewall_rules") == ["Only Rule"]
    settings_manager.set("health.firewall_rules", "")
    assert settings_manager.get_list("health.firewall_rules") == []


def test_service_descriptors_round_trip(settings_manager):
    descriptors = [ServiceDescriptor.from_mapping(m)
                   for m in settings_manager.get_mapping_list("services.descriptors")]
    assert [d.name for d in sorted(descriptors, key=lambda d: d.rank)] == [
        "MSSQL$SQLEXPRESS", "W3SVC", "WsusService"]
    assert all(d.critical for d in descriptors)


def test_settings_changed_signal(settings_manager, qtbot):
    with qtbot.waitSignal(settings_manager.settings_changed, timeout=1000) as blocker:
        settings_manager.set("recovery.max_retries", 7)
    assert blocker.args == ["recovery.max_retries", 7]


def test_on_changed_handler_receives_old_and_new(settings_manager):
    seen = []
    settings_manager.on_changed("ui.auto_refresh_ms", lambda new, old: seen.append((new, old)))
    settings_manager.set("ui.auto_refresh_ms", 5000)
    assert len(seen) == 1
    assert seen[0][0] == 5000
    assert int(seen[0][1]) == 30000


def test_failing_handler_does_not_break_set(settings_manager):
    def bad(new, old):
        raise RuntimeError("handler failed")

    settings_manager.on_changed("ui.log_max_lines", bad)
    settings_manager.set("ui.log_max_lines", 50)
    assert settings_manager.get_int("ui.log_max_lines") == 50


def test_reset_to_defaults(settings_manager):
    settings_manager.set("workers.max_workers", 16)
    settings_manager.set("custom.key", "x")
    settings_manager.reset_to_defaults()
    assert settings_manager.get_int("workers.max_workers") == DEFAULT_SETTINGS["workers.max_workers"]
    assert not settings_manager.contains("custom.key")
