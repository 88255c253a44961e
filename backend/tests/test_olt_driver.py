import pytest

from ponmgr.drivers.errors import AuthenticationError, CommandError
from ponmgr.drivers.olt_driver import SimulatedExecutor, TelnetExecutor, create_olt_driver
from ponmgr.drivers.records import (
    OltRecord,
    OnuProvisioning,
    OnuRecord,
    ServiceProfileRecord,
    TrunkConfig,
    VlanSpec,
)
from ponmgr.drivers.telnet_session import HUAWEI_PROMPTS, TelnetResult


def _olt(vendor="huawei", **overrides):
    values = {"name": "OLT-Central", "vendor": vendor, "ip_address": "192.0.2.10", "username": "root", "password": "pw"}
    values.update(overrides)
    return OltRecord(**values)


class FakeSession:
    """Stands in for TelnetSession inside TelnetExecutor."""

    instances = []
    fail_on = None
    open_error = None

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.executed = []
        self.timeouts = None
        self.disconnected = False
        FakeSession.instances.append(self)

    def open(self):
        if FakeSession.open_error is not None:
            return TelnetResult(False, error=FakeSession.open_error)
        return TelnetResult(True, "Login successful")

    def execute_commands(self, commands, delay=0.5, timeouts=None):
        self.timeouts = dict(timeouts or {})
        results = []
        for command in commands:
            self.executed.append(command)
            if command == FakeSession.fail_on:
                results.append(
                    TelnetResult(False, "% Unknown command", command=command, error=CommandError("Command rejected", command=command))
                )
                break
            results.append(TelnetResult(True, "ok", command=command))
        return results

    def disconnect(self):
        self.disconnected = True


@pytest.fixture(autouse=True)
def _reset_fake_session():
    FakeSession.instances = []
    FakeSession.fail_on = None
    FakeSession.open_error = None


def test_simulated_huawei_provision_concatenates_add_profile_and_vlan():
    driver = create_olt_driver(_olt())
    config = OnuProvisioning(
        onu=OnuRecord(serial_number="HWTC11112222", pon_port=1, onu_id=3, name="cust-42"),
        service_profile=ServiceProfileRecord(name="FIBER-100", download_speed=100, upload_speed=50, internet_vlan=200),
    )

    result = driver.provision_onu(config)

    assert result.success is True
    assert result.message == "Simulated execution of 12 commands on OLT-Central (192.0.2.10)"
    assert result.commands[3].startswith('ont add 1 3 sn-auth "HWTC11112222"')
    assert result.commands[-1] == "service-port vlan 200 gpon 0/1 ont 3 gemport 1 multi-service user-vlan 200"


def test_simulated_zte_hybrid_trunk():
    driver = create_olt_driver(_olt("zte"))

    result = driver.configure_vlan_trunk(
        TrunkConfig(port="gei_1/1/1", vlan_list=[100, 200], native_vlan=10, mode="hybrid")
    )

    assert result.success is True
    assert "switchport hybrid vlan-allowed add 100,200 tagged" in result.commands


def test_empty_command_list_fails_without_touching_executor():
    class Exploding:
        def run(self, *args):
            raise AssertionError("executor must not run")

    driver = create_olt_driver(_olt(), executor=Exploding())

    result = driver.execute_commands(["  ", ""])

    assert result.success is False
    assert result.message == "No commands to execute"


def test_create_olt_driver_picks_executor_from_simulation_flag():
    assert isinstance(create_olt_driver(_olt()).executor, SimulatedExecutor)
    assert isinstance(create_olt_driver(_olt(), simulation=False).executor, TelnetExecutor)


def test_unknown_vendor_is_rejected():
    with pytest.raises(ValueError):
        create_olt_driver(_olt("vsol"))


def test_telnet_executor_uses_vendor_prompts_and_cli_port():
    executor = TelnetExecutor(timeout=4, command_delay=0, save_timeout=45, session_factory=FakeSession)
    driver = create_olt_driver(_olt(telnet_port=22), executor=executor)

    result = driver.create_vlan(VlanSpec(vlan_id=300))

    session = FakeSession.instances[0]
    assert result.success is True
    assert session.kwargs["port"] == 23
    assert session.kwargs["prompts"] is HUAWEI_PROMPTS
    assert session.executed == ["enable", "config", "vlan 300 smart", "quit"]
    assert session.disconnected is True


def test_telnet_executor_applies_save_timeout():
    executor = TelnetExecutor(command_delay=0, save_timeout=45, session_factory=FakeSession)

    create_olt_driver(_olt("zte"), executor=executor).save_config()

    assert FakeSession.instances[0].timeouts == {"write": 45}


def test_telnet_executor_reports_failed_command_and_disconnects():
    FakeSession.fail_on = "vlan 300 smart"
    executor = TelnetExecutor(command_delay=0, session_factory=FakeSession)

    result = create_olt_driver(_olt(), executor=executor).create_vlan(VlanSpec(vlan_id=300))

    session = FakeSession.instances[0]
    assert result.success is False
    assert result.message == "Command failed: vlan 300 smart"
    assert result.error_kind == "command"
    assert "quit" not in session.executed
    assert session.disconnected is True


def test_telnet_executor_reports_login_failure_and_disconnects():
    FakeSession.open_error = AuthenticationError("Login rejected", host="192.0.2.10")
    executor = TelnetExecutor(session_factory=FakeSession)

    result = create_olt_driver(_olt(), executor=executor).save_config()

    assert result.success is False
    assert result.error_kind == "authentication"
    assert result.message == "Failed to connect to OLT OLT-Central (192.0.2.10)"
    assert FakeSession.instances[0].disconnected is True


def test_telnet_executor_from_app_config_clamps_values():
    executor = TelnetExecutor.from_app_config(
        {"TELNET_TIMEOUT_SECONDS": "0.1", "TELNET_COMMAND_DELAY_SECONDS": "bogus", "TELNET_SAVE_TIMEOUT_SECONDS": 9999}
    )

    assert executor.timeout == 2.0
    assert executor.command_delay == 0.5
    assert executor.save_timeout == 300.0
