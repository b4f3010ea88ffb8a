import pytest

from hp_bios_config.bios import (
    BIOSManager,
    Outcome,
    PasswordState,
    RunTally,
    SettingResult,
    establish_password_state,
    parse_current_value,
)
from hp_bios_config.client import WriteStatus
from hp_bios_config.errors import AuthenticationError


def test_parse_current_value():
    assert parse_current_value("Enable,*Disable") == "Disable"
    assert parse_current_value("*Off,On") == "Off"
    assert parse_current_value("Enable,Disable") is None
    assert parse_current_value("") is None
    assert parse_current_value(None) is None


def test_already_set_performs_no_write(bios, client):
    tally = BIOSManager(client).apply_settings([("Fast Boot", "Enable")])
    assert tally.counts() == {"AlreadySet": 1, "Applied": 0, "Failed": 0, "NotFound": 0}
    assert bios.setting_writes == []


def test_not_found_performs_no_write(bios, client):
    tally = BIOSManager(client).apply_settings([("Legacy Boot Options", "Disable")])
    assert tally.not_found == 1
    assert tally.results[0].outcome is Outcome.NOT_FOUND
    assert bios.setting_writes == []


def test_wake_on_lan_scenario(bios, client):
    tally = BIOSManager(client).apply_settings([("Wake On LAN", "Boot to Hard Drive")])

    assert bios.setting_writes == [("Wake On LAN", "Boot to Hard Drive", "")]
    assert tally.counts() == {"AlreadySet": 0, "Applied": 1, "Failed": 0, "NotFound": 0}
    # re-enumeration reflects the write
    assert parse_current_value(dict(client.enumerate())["Wake On LAN"]) == "Boot to Hard Drive"


def test_comparison_is_case_sensitive(bios, client):
    bios.settings["Fast Boot"] = "Disable,*enable,Enable"
    tally = BIOSManager(client).apply_settings([("Fast Boot", "Enable")])
    assert len(bios.setting_writes) == 1
    assert tally.applied == 1


def test_unmarked_value_forces_write(bios, client):
    bios.settings["Fast Boot"] = "Disable,Enable"
    tally = BIOSManager(client).apply_settings([("Fast Boot", "Enable")])
    assert bios.setting_writes == [("Fast Boot", "Enable", "")]
    assert tally.applied == 1


def test_failed_write_keeps_status_and_continues(bios, client):
    bios.statuses["Fast Boot"] = 1
    settings = [
        ("Fast Boot", "Disable"),
        ("Num Lock State at Power-On", "Maybe"),
        ("Wake On LAN", "Disable"),
    ]
    tally = BIOSManager(client).apply_settings(settings)

    assert tally.failed == 2
    assert tally.applied == 1
    failed = tally.by_outcome(Outcome.FAILED)
    assert [r.status for r in failed] == [WriteStatus.NOT_SUPPORTED, WriteStatus.INVALID_VALUE]
    assert len(bios.setting_writes) == 3


def test_settings_processed_in_source_order(client):
    settings = [("TPM State", "Enable"), ("Fast Boot", "Disable"), ("Missing", "X")]
    tally = BIOSManager(client).apply_settings(settings)
    assert [r.name for r in tally.results] == ["TPM State", "Fast Boot", "Missing"]


def test_snapshot_is_taken_once(bios, client):
    calls = []
    original = client.enumerate

    def counting():
        calls.append(1)
        return original()

    client.enumerate = counting
    BIOSManager(client).apply_settings([("Fast Boot", "Disable"), ("TPM State", "Disable")])
    assert len(calls) == 1


def test_writes_use_password_when_configured(bios, client):
    bios.password = "Secret"
    manager = BIOSManager(client, PasswordState(is_configured=True, supplied_value="Secret"))
    tally = manager.apply_settings([("Fast Boot", "Disable")])
    assert tally.applied == 1
    assert bios.setting_writes[0][2] == "<utf-16/>Secret"


def test_dry_run_writes_nothing(bios, client):
    tally = BIOSManager(client).apply_settings(
        [("Fast Boot", "Disable"), ("TPM State", "Enable")], dry_run=True
    )
    assert tally.dry_run is True
    assert tally.applied == 0
    assert tally.would_apply == 1
    assert tally.already_set == 1
    assert tally.results[0].outcome is Outcome.WOULD_APPLY
    assert tally.counts()["WouldApply"] == 1
    assert bios.calls == []


def test_read_settings_sorted_by_name(client):
    rows = BIOSManager(client).read_settings()
    assert [name for name, _ in rows] == sorted(name for name, _ in rows)
    assert ("Wake On LAN", "Network") in rows


def test_verify_applied_reports_settings_that_did_not_stick(bios, client):
    manager = BIOSManager(client)
    tally = manager.apply_settings([("Fast Boot", "Disable"), ("TPM State", "Disable")])
    assert manager.verify_applied(tally) == []

    # BIOS reverted one setting behind our back
    bios.settings["TPM State"] = "Disable,*Enable"
    mismatched = manager.verify_applied(tally)
    assert [r.name for r in mismatched] == ["TPM State"]


def test_tally_record():
    tally = RunTally()
    tally.record(SettingResult(name="A", desired="1", outcome=Outcome.APPLIED))
    tally.record(SettingResult(name="B", desired="1", outcome=Outcome.NOT_FOUND))
    tally.record(SettingResult(name="C", desired="1", outcome=Outcome.FAILED,
                               status=WriteStatus.TIMEOUT))
    assert tally.counts() == {"AlreadySet": 0, "Applied": 1, "Failed": 1, "NotFound": 1}


def test_setting_result_is_immutable():
    result = SettingResult(name="A", desired="1")
    with pytest.raises(AttributeError):
        result.outcome = Outcome.APPLIED


def test_password_state_no_password_set(client):
    state = establish_password_state(client, None)
    assert state == PasswordState(is_configured=False, supplied_value=None)
    assert state.write_password is None


def test_password_state_ignores_unneeded_password(bios, client):
    state = establish_password_state(client, "Secret")
    assert state.write_password is None
    assert bios.calls == []


def test_password_state_correct_password(bios, client):
    bios.password = "Secret"
    state = establish_password_state(client, "Secret")
    assert state.is_configured is True
    assert state.write_password == "Secret"


def test_password_state_missing_password(bios, client):
    bios.password = "Secret"
    with pytest.raises(AuthenticationError):
        establish_password_state(client, None)
    assert bios.calls == []


def test_password_state_wrong_password(bios, client):
    bios.password = "Secret"
    with pytest.raises(AuthenticationError):
        establish_password_state(client, "Wrong")
    assert bios.setting_writes == []


def test_write_exception_is_recorded_and_run_continues(bios, client):
    original = client.interface.SetBIOSSetting

    def flaky(Name, Value, Password):
        if Name == "Fast Boot":
            raise RuntimeError("x_wmi: Generic failure")
        return original(Name=Name, Value=Value, Password=Password)

    client.interface.SetBIOSSetting = flaky
    tally = BIOSManager(client).apply_settings([("Fast Boot", "Disable"), ("TPM State", "Disable")])

    assert tally.failed == 1
    assert tally.applied == 1
    assert tally.by_outcome(Outcome.FAILED)[0].status is WriteStatus.UNSPECIFIED_ERROR
    assert bios.setting_writes == [("TPM State", "Disable", "")]
