"""
Vendor command catalogs.

Each catalog turns a desired change into the literal CLI lines a vendor's
OLT expects. Catalogs do no I/O and do not validate free text: anything
interpolated here must already have passed ``ponmgr.validation``.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Protocol

from .records import (
    OnuProvisioning,
    OnuRecord,
    Tr069Provisioning,
    TrunkConfig,
    Vendor,
    VlanSpec,
)

DEFAULT_ONU_ID = 1
DEFAULT_VLAN = 100
DEFAULT_GEM_PORT = 1
DEFAULT_TCONT = 1


def _pick(value: Optional[int], default: int) -> int:
    return default if value is None else int(value)


def _service_vlan(config: OnuProvisioning) -> int:
    profile = config.service_profile
    if profile is not None and profile.internet_vlan is not None:
        return int(profile.internet_vlan)
    return _pick(config.vlan, DEFAULT_VLAN)


class CommandCatalog(Protocol):
    vendor: Vendor
    save_commands: frozenset

    def build_add_onu(self, config: OnuProvisioning) -> List[str]: ...

    def build_remove_onu(self, onu: OnuRecord) -> List[str]: ...

    def build_service_profile(self, config: OnuProvisioning) -> List[str]: ...

    def build_vlan(self, config: OnuProvisioning) -> List[str]: ...

    def build_bandwidth(self, config: OnuProvisioning) -> List[str]: ...

    def build_tr069(self, config: Tr069Provisioning) -> List[str]: ...

    def build_reboot_onu(self, onu: OnuRecord) -> List[str]: ...

    def build_create_vlan(self, vlan: VlanSpec) -> List[str]: ...

    def build_delete_vlan(self, vlan_id: int) -> List[str]: ...

    def build_save_config(self) -> List[str]: ...

    def build_trunk_vlan(self, config: TrunkConfig) -> List[str]: ...


class HuaweiCommands:
    """MA5600/MA5800 style command set."""

    vendor = Vendor.HUAWEI
    default_pon_port = 0
    save_commands = frozenset({"save"})

    def _position(self, onu: OnuRecord) -> tuple[int, int]:
        return _pick(onu.pon_port, self.default_pon_port), _pick(onu.onu_id, DEFAULT_ONU_ID)

    def build_add_onu(self, config: OnuProvisioning) -> List[str]:
        onu = config.onu
        pon, onu_id = self._position(onu)
        return [
            "enable",
            "config",
            f"interface gpon 0/{pon}",
            f'ont add {pon} {onu_id} sn-auth "{onu.serial_number}" omci '
            f'ont-lineprofile-id 1 ont-srvprofile-id 1 desc "{onu.name or onu.serial_number}"',
            f"ont port native-vlan {pon} {onu_id} eth 1 vlan {_pick(config.vlan, DEFAULT_VLAN)} priority 0",
            "quit",
        ]

    def build_remove_onu(self, onu: OnuRecord) -> List[str]:
        pon, onu_id = self._position(onu)
        return [
            "enable",
            "config",
            f"interface gpon 0/{pon}",
            f"ont delete {pon} {onu_id}",
            "quit",
        ]

    def build_service_profile(self, config: OnuProvisioning) -> List[str]:
        if config.service_profile is None:
            return []
        pon, onu_id = self._position(config.onu)
        gem_port = _pick(config.gem_port, DEFAULT_GEM_PORT)
        return [
            f"interface gpon 0/{pon}",
            f"ont ipconfig {pon} {onu_id} dhcp",
            f"ont service-port {pon} {onu_id} gemport {gem_port} vlan {_service_vlan(config)}",
            f"ont traffic-profile-id {pon} {onu_id} profile-id 1",
            "quit",
        ]

    def build_vlan(self, config: OnuProvisioning) -> List[str]:
        pon, onu_id = self._position(config.onu)
        vlan = _service_vlan(config)
        return [
            f"service-port vlan {vlan} gpon 0/{pon} ont {onu_id} gemport 1 multi-service user-vlan {vlan}",
        ]

    def build_bandwidth(self, config: OnuProvisioning) -> List[str]:
        profile = config.service_profile
        if profile is None:
            return []
        pon, onu_id = self._position(config.onu)
        download_kbps = int(profile.download_speed) * 1000
        upload_kbps = int(profile.upload_speed) * 1000
        return [
            "enable",
            "config",
            f"dba-profile add profile-id 1 type4 max {upload_kbps}",
            f"interface gpon 0/{pon}",
            f"ont modify {pon} {onu_id} dba-profile-id 1",
            "quit",
            "traffic-profile ip index 1",
            f"car cir {download_kbps} pir {download_kbps} cbs 0 pbs 0",
            "quit",
        ]

    def build_tr069(self, config: Tr069Provisioning) -> List[str]:
        pon, onu_id = self._position(config.onu)
        prefix = f"ont tr069-server-config {pon} {onu_id}"
        commands = [
            "enable",
            "config",
            f"interface gpon 0/{pon}",
            f'{prefix} acs-url "{config.acs_url}"',
        ]
        if config.acs_username:
            commands.append(f'{prefix} username "{config.acs_username}"')
        if config.acs_password:
            commands.append(f'{prefix} password "{config.acs_password}"')
        if config.periodic_inform_interval:
            commands.append(f"{prefix} periodic-inform-interval {config.periodic_inform_interval}")
        commands.extend([f"{prefix} enable", "quit", "quit"])
        return commands

    def build_reboot_onu(self, onu: OnuRecord) -> List[str]:
        pon, onu_id = self._position(onu)
        return [
            "enable",
            "config",
            f"interface gpon 0/{pon}",
            f"ont reset {pon} {onu_id}",
            "quit",
        ]

    def build_create_vlan(self, vlan: VlanSpec) -> List[str]:
        commands = ["enable", "config", f"vlan {vlan.vlan_id} smart"]
        if vlan.name:
            commands.append(f"vlan name {vlan.vlan_id} name {vlan.name}")
        if vlan.description:
            commands.append(f"vlan desc {vlan.vlan_id} description {vlan.description}")
        commands.append("quit")
        return commands

    def build_delete_vlan(self, vlan_id: int) -> List[str]:
        return ["enable", "config", f"undo vlan {vlan_id}", "quit"]

    def build_save_config(self) -> List[str]:
        return ["enable", "save", "y"]

    def build_trunk_vlan(self, config: TrunkConfig) -> List[str]:
        commands = ["enable", "config", f"interface {config.port}"]
        vlans = " ".join(str(vlan) for vlan in config.vlan_list)

        if config.mode == "trunk":
            commands.append("port link-type trunk")
            if vlans:
                commands.append(f"port trunk allow-pass vlan {vlans}")
            if config.native_vlan:
                commands.append(f"port trunk pvid vlan {config.native_vlan}")
        elif config.mode == "hybrid":
            commands.append("port link-type hybrid")
            if vlans:
                commands.append(f"port hybrid tagged vlan {vlans}")
            if config.native_vlan:
                commands.append(f"port hybrid untagged vlan {config.native_vlan}")
                commands.append(f"port hybrid pvid vlan {config.native_vlan}")
        elif config.mode == "access":
            commands.append("port link-type access")
            if config.native_vlan:
                commands.append(f"port default vlan {config.native_vlan}")

        commands.extend(["quit", "quit"])
        return commands


class ZteCommands:
    """C300/C600 style command set."""

    vendor = Vendor.ZTE
    default_pon_port = 1
    save_commands = frozenset({"write"})

    def _position(self, onu: OnuRecord) -> tuple[int, int]:
        return _pick(onu.pon_port, self.default_pon_port), _pick(onu.onu_id, DEFAULT_ONU_ID)

    def _onu_interface(self, onu: OnuRecord) -> str:
        pon, onu_id = self._position(onu)
        return f"gpon-onu_1/{pon}:{onu_id}"

    def build_add_onu(self, config: OnuProvisioning) -> List[str]:
        onu = config.onu
        pon, onu_id = self._position(onu)
        return [
            "enable",
            "configure terminal",
            f"interface gpon-olt_1/{pon}",
            f"onu {onu_id} type auto sn {onu.serial_number}",
            "exit",
            f"interface {self._onu_interface(onu)}",
            f'name "{onu.name or onu.serial_number}"',
            "exit",
        ]

    def build_remove_onu(self, onu: OnuRecord) -> List[str]:
        pon, onu_id = self._position(onu)
        return [
            "enable",
            "configure terminal",
            f"interface gpon-olt_1/{pon}",
            f"no onu {onu_id}",
            "exit",
        ]

    def build_service_profile(self, config: OnuProvisioning) -> List[str]:
        profile = config.service_profile
        if profile is None:
            return []
        interface = self._onu_interface(config.onu)
        vlan = _service_vlan(config)
        tcont = _pick(config.tcont, DEFAULT_TCONT)
        gem_port = _pick(config.gem_port, DEFAULT_GEM_PORT)
        return [
            f"interface {interface}",
            f"tcont {tcont} profile {profile.name or 'default'}",
            f"gemport {gem_port} tcont {tcont}",
            f"service-port 1 vport 1 user-vlan {vlan} vlan {vlan}",
            "exit",
            f"pon-onu-mng {interface}",
            f"service 1 gemport {gem_port} vlan {vlan}",
            f"vlan port eth_0/1 mode tag vlan {vlan}",
            "exit",
        ]

    def build_vlan(self, config: OnuProvisioning) -> List[str]:
        vlan = _service_vlan(config)
        return [
            f"interface {self._onu_interface(config.onu)}",
            "switchport mode hybrid vport 1",
            f"service-port 1 vport 1 user-vlan {vlan} vlan {vlan}",
            "exit",
        ]

    def build_bandwidth(self, config: OnuProvisioning) -> List[str]:
        profile = config.service_profile
        if profile is None:
            return []
        download_kbps = int(profile.download_speed) * 1000
        upload_kbps = int(profile.upload_speed) * 1000
        return [
            "enable",
            "configure terminal",
            f"gpon-onu-profile-tcont 1 type4 maximum {upload_kbps}",
            f"interface {self._onu_interface(config.onu)}",
            "tcont 1 profile 1",
            "exit",
            "traffic-profile 1",
            f"cir {download_kbps}",
            f"pir {download_kbps}",
            "exit",
        ]

    def build_tr069(self, config: Tr069Provisioning) -> List[str]:
        commands = [
            "enable",
            "configure terminal",
            f"pon-onu-mng {self._onu_interface(config.onu)}",
            "tr069-mgmt enable",
            f'tr069-mgmt acs-url "{config.acs_url}"',
        ]
        if config.acs_username:
            commands.append(f'tr069-mgmt acs-username "{config.acs_username}"')
        if config.acs_password:
            commands.append(f'tr069-mgmt acs-password "{config.acs_password}"')
        if config.periodic_inform_interval:
            commands.append(f"tr069-mgmt periodic-inform-interval {config.periodic_inform_interval}")
        commands.append("exit")
        return commands

    def build_reboot_onu(self, onu: OnuRecord) -> List[str]:
        return [
            "enable",
            "configure terminal",
            f"pon-onu-mng {self._onu_interface(onu)}",
            "reboot",
            "exit",
        ]

    def build_create_vlan(self, vlan: VlanSpec) -> List[str]:
        commands = ["enable", "configure terminal", f"vlan {vlan.vlan_id}"]
        if vlan.name:
            commands.append(f"name {vlan.name}")
        commands.append("exit")
        return commands

    def build_delete_vlan(self, vlan_id: int) -> List[str]:
        return ["enable", "configure terminal", f"no vlan {vlan_id}", "exit"]

    def build_save_config(self) -> List[str]:
        return ["enable", "write"]

    def build_trunk_vlan(self, config: TrunkConfig) -> List[str]:
        commands = ["enable", "configure terminal", f"interface {config.port}"]
        vlans = ",".join(str(vlan) for vlan in config.vlan_list)

        if config.mode == "trunk":
            commands.append("switchport mode trunk")
            if vlans:
                commands.append(f"switchport trunk vlan-allowed add {vlans}")
            if config.native_vlan:
                commands.append(f"switchport trunk native vlan {config.native_vlan}")
        elif config.mode == "hybrid":
            commands.append("switchport mode hybrid")
            if vlans:
                commands.append(f"switchport hybrid vlan-allowed add {vlans} tagged")
            if config.native_vlan:
                commands.append(f"switchport hybrid native vlan {config.native_vlan}")
        elif config.mode == "access":
            commands.append("switchport mode access")
            if config.native_vlan:
                commands.append(f"switchport access vlan {config.native_vlan}")

        commands.extend(["exit", "exit"])
        return commands


CATALOGS: Dict[Vendor, type] = {
    Vendor.HUAWEI: HuaweiCommands,
    Vendor.ZTE: ZteCommands,
}


def get_catalog(vendor) -> CommandCatalog:
    return CATALOGS[Vendor.parse(vendor)]()
