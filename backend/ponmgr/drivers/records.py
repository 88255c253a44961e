"""Plain records exchanged between the application layer and the drivers."""
from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class Vendor(str, enum.Enum):
    HUAWEI = "huawei"
    ZTE = "zte"

    @classmethod
    def parse(cls, value: Any) -> "Vendor":
        token = str(getattr(value, "value", value) or "").strip().lower()
        try:
            return cls(token)
        except ValueError:
            raise ValueError(f"Unsupported OLT vendor: {value}") from None

    @property
    def label(self) -> str:
        return "Huawei" if self is Vendor.HUAWEI else "ZTE"


class OnuStatus(str, enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    LOS = "los"
    DYING_GASP = "dyinggasp"
    POWER_OFF = "poweroff"


@dataclass
class OltRecord:
    name: str
    vendor: Vendor
    ip_address: str
    id: Optional[str] = None
    telnet_port: Optional[int] = 23
    username: str = ""
    password: str = ""
    snmp_community: str = "public"
    snmp_write_community: str = "private"
    snmp_port: int = 161
    acs_url: Optional[str] = None
    acs_username: Optional[str] = None
    acs_password: Optional[str] = None
    inform_interval: Optional[int] = None
    auto_provision: bool = False
    default_profile_id: Optional[str] = None

    def __post_init__(self):
        self.vendor = Vendor.parse(self.vendor)

    @property
    def cli_port(self) -> int:
        # 22 is the SSH default carried over from device forms; the CLI path is Telnet.
        if not self.telnet_port or self.telnet_port == 22:
            return 23
        return int(self.telnet_port)


@dataclass
class OnuRecord:
    serial_number: str
    pon_port: Optional[int] = None
    onu_id: Optional[int] = None
    name: Optional[str] = None
    id: Optional[str] = None


@dataclass
class ServiceProfileRecord:
    name: str
    download_speed: int
    upload_speed: int
    internet_vlan: Optional[int] = None
    iptv_vlan: Optional[int] = None
    voip_vlan: Optional[int] = None


@dataclass
class OnuProvisioning:
    onu: OnuRecord
    service_profile: Optional[ServiceProfileRecord] = None
    vlan: Optional[int] = None
    gem_port: Optional[int] = None
    tcont: Optional[int] = None


@dataclass
class Tr069Provisioning:
    onu: OnuRecord
    acs_url: str
    acs_username: Optional[str] = None
    acs_password: Optional[str] = None
    periodic_inform_interval: Optional[int] = None


@dataclass
class VlanSpec:
    vlan_id: int
    name: Optional[str] = None
    description: Optional[str] = None


@dataclass
class TrunkConfig:
    port: str
    vlan_list: List[int] = field(default_factory=list)
    native_vlan: Optional[int] = None
    mode: str = "trunk"


@dataclass
class CommandResult:
    success: bool
    message: str
    commands: List[str] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[str] = None
    outputs: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=_utcnow_iso)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SystemInfo:
    name: Optional[str] = None
    description: Optional[str] = None
    uptime: Optional[int] = None
    firmware: Optional[str] = None
    contact: Optional[str] = None
    location: Optional[str] = None
    interface_count: Optional[int] = None
    cpu_usage: Optional[float] = None
    memory_usage: Optional[float] = None
    temperature: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class OnuTelemetry:
    pon_port: int
    onu_id: int
    serial_number: Optional[str] = None
    status: Optional[OnuStatus] = None
    rx_power: Optional[float] = None
    tx_power: Optional[float] = None
    distance: Optional[int] = None

    @property
    def key(self) -> str:
        return f"{self.pon_port}.{self.onu_id}"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value if self.status else None
        return data
