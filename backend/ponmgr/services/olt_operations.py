"""
OLT operations: turn stored rows plus operator input into driver calls.

Every value that reaches a CLI line passes through ``ponmgr.validation``
here, so the command catalogs can interpolate verbatim.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ponmgr import db
from ponmgr.drivers.olt_driver import OltDriver, SimulatedExecutor, TelnetExecutor, create_olt_driver
from ponmgr.drivers.records import (
    CommandResult,
    OnuProvisioning,
    Tr069Provisioning,
    TrunkConfig,
    VlanSpec,
)
from ponmgr.models import Olt, Onu, ServiceProfile
from ponmgr.validation import (
    optional_int,
    validate_cli_token,
    validate_label,
    validate_port_name,
    validate_trunk_mode,
    validate_vlan_id,
    validate_vlan_list,
)

logger = logging.getLogger(__name__)


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true", "yes", "y", "on")


class OltOperations:
    """Builds drivers in the configured (or requested) mode and runs operations."""

    def __init__(self, simulation: bool = True, telnet_executor: Optional[TelnetExecutor] = None):
        self.simulation = simulation
        self.telnet_executor = telnet_executor or TelnetExecutor()

    @classmethod
    def from_app_config(cls, app_config: Mapping[str, Any]) -> "OltOperations":
        return cls(
            simulation=_as_bool(app_config.get("OLT_SIMULATION_MODE", True)),
            telnet_executor=TelnetExecutor.from_app_config(app_config),
        )

    def driver_for(self, olt: Olt, run_mode: Optional[str] = None) -> OltDriver:
        simulation = self.simulation if run_mode is None else run_mode != "live"
        executor = SimulatedExecutor() if simulation else self.telnet_executor
        if not simulation:
            logger.info("Live CLI session requested for %s (%s)", olt.name, olt.ip_address)
        return create_olt_driver(olt.to_record(), simulation=simulation, executor=executor)

    # ONU lifecycle

    def _profile(self, onu: Onu, data: Mapping[str, Any]) -> Optional[ServiceProfile]:
        profile_id = data.get("service_profile_id") or onu.service_profile_id
        if not profile_id:
            profile_id = onu.olt.default_profile_id if onu.olt else None
        if not profile_id:
            return None
        profile = db.session.get(ServiceProfile, str(profile_id))
        if profile is None:
            raise ValueError("service_profile_id does not exist")
        return profile

    def provisioning_for(self, onu: Onu, data: Optional[Mapping[str, Any]] = None) -> OnuProvisioning:
        data = data or {}
        profile = self._profile(onu, data)
        vlan = data.get("vlan")
        if vlan in (None, "") and profile is not None:
            vlan = profile.internet_vlan
        return OnuProvisioning(
            onu=onu.to_record(),
            service_profile=profile.to_record() if profile is not None else None,
            vlan=validate_vlan_id(vlan, "vlan") if vlan not in (None, "") else None,
            gem_port=optional_int(data.get("gem_port"), "gem_port", 0, 4095),
            tcont=optional_int(data.get("tcont"), "tcont", 0, 127),
        )

    def provision_onu(self, onu: Onu, data=None, run_mode=None) -> CommandResult:
        config = self.provisioning_for(onu, data)
        return self.driver_for(onu.olt, run_mode).provision_onu(config)

    def deprovision_onu(self, onu: Onu, run_mode=None) -> CommandResult:
        return self.driver_for(onu.olt, run_mode).deprovision_onu(onu.to_record())

    def reboot_onu(self, onu: Onu, run_mode=None) -> CommandResult:
        return self.driver_for(onu.olt, run_mode).reboot_onu(onu.to_record())

    def apply_bandwidth(self, onu: Onu, data=None, run_mode=None) -> CommandResult:
        return self.driver_for(onu.olt, run_mode).apply_bandwidth(self.provisioning_for(onu, data))

    def provision_tr069(self, onu: Onu, data=None, run_mode=None) -> CommandResult:
        data = data or {}
        olt = onu.olt
        acs_url = validate_cli_token(data.get("acs_url") or olt.acs_url, "acs_url")
        if not acs_url:
            raise ValueError("acs_url is required")
        config = Tr069Provisioning(
            onu=onu.to_record(),
            acs_url=acs_url,
            acs_username=validate_cli_token(data.get("acs_username") or olt.acs_username, "acs_username"),
            acs_password=validate_cli_token(data.get("acs_password") or olt.acs_password, "acs_password"),
            periodic_inform_interval=optional_int(
                data.get("periodic_inform_interval", olt.inform_interval),
                "periodic_inform_interval",
                30,
                86400,
            ),
        )
        return self.driver_for(olt, run_mode).provision_tr069(config)

    # OLT-wide

    def create_vlan(self, olt: Olt, data: Mapping[str, Any], run_mode=None) -> CommandResult:
        vlan = VlanSpec(
            vlan_id=validate_vlan_id(data.get("vlan_id")),
            name=validate_label(data.get("name"), "name"),
            description=validate_label(data.get("description"), "description"),
        )
        return self.driver_for(olt, run_mode).create_vlan(vlan)

    def delete_vlan(self, olt: Olt, vlan_id: Any, run_mode=None) -> CommandResult:
        return self.driver_for(olt, run_mode).delete_vlan(validate_vlan_id(vlan_id))

    def configure_trunk(self, olt: Olt, data: Mapping[str, Any], run_mode=None) -> CommandResult:
        native = data.get("native_vlan")
        config = TrunkConfig(
            port=validate_port_name(data.get("port")),
            vlan_list=validate_vlan_list(data.get("vlan_list")),
            native_vlan=validate_vlan_id(native, "native_vlan") if native not in (None, "") else None,
            mode=validate_trunk_mode(data.get("mode")),
        )
        return self.driver_for(olt, run_mode).configure_vlan_trunk(config)

    def save_config(self, olt: Olt, run_mode=None) -> CommandResult:
        return self.driver_for(olt, run_mode).save_config()
