"""Bulk ONU discovery: one walk per OLT, correlated by ``pon.onu`` index."""
from __future__ import annotations

import binascii
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .records import OnuRecord, OnuStatus, OnuTelemetry, Vendor
from .snmp_client import OltSnmpClient, _number, centi_dbm_to_dbm

logger = logging.getLogger(__name__)

HUAWEI_STATUS = {1: OnuStatus.ONLINE, 2: OnuStatus.OFFLINE}
ZTE_STATUS = {
    1: OnuStatus.LOS,
    2: OnuStatus.LOS,
    3: OnuStatus.ONLINE,
    6: OnuStatus.DYING_GASP,
    7: OnuStatus.OFFLINE,
}
STATUS_CODES = {Vendor.HUAWEI: HUAWEI_STATUS, Vendor.ZTE: ZTE_STATUS}


def status_from_code(vendor: Vendor, code: Any) -> OnuStatus:
    number = _number(code)
    if number is None:
        return OnuStatus.OFFLINE
    return STATUS_CODES[Vendor.parse(vendor)].get(int(number), OnuStatus.OFFLINE)


def format_gpon_serial(value: Any) -> Optional[str]:
    """Render an 8-byte GPON serial as vendor id + hex, e.g. HWTC1A2B3C4D."""
    if value is None:
        return None
    text = str(value).strip()
    if len(text) == 16:
        try:
            vendor_id = binascii.unhexlify(text[:8]).decode("ascii")
        except (binascii.Error, UnicodeDecodeError):
            return text.upper()
        if vendor_id.isalnum():
            return f"{vendor_id.upper()}{text[8:].upper()}"
    return text.upper()


@dataclass
class DiscoveryResult:
    updated: List[OnuTelemetry] = field(default_factory=list)
    offline: List[OnuTelemetry] = field(default_factory=list)
    discovered: List[OnuTelemetry] = field(default_factory=list)

    def summary(self) -> Dict[str, int]:
        return {
            "updated": len(self.updated),
            "offline": len(self.offline),
            "discovered": len(self.discovered),
        }


def _telemetry(vendor: Vendor, key: str, row: Dict[str, Any]) -> OnuTelemetry:
    pon_port, onu_id = (int(part) for part in key.split("."))
    distance = _number(row.get("onu_distance"))
    return OnuTelemetry(
        pon_port=pon_port,
        onu_id=onu_id,
        serial_number=format_gpon_serial(row.get("onu_serial")),
        status=status_from_code(vendor, row.get("onu_status")),
        rx_power=centi_dbm_to_dbm(row.get("onu_rx_power")),
        tx_power=centi_dbm_to_dbm(row.get("onu_tx_power")),
        distance=int(distance) if distance is not None else None,
    )


def correlate(vendor: Vendor, table: Dict[str, Dict[str, Any]], stored: Iterable[OnuRecord]) -> DiscoveryResult:
    result = DiscoveryResult()
    seen = set()

    for onu in stored:
        key = f"{onu.pon_port}.{onu.onu_id}"
        row = table.get(key) if onu.pon_port is not None and onu.onu_id is not None else None
        if row is None:
            result.offline.append(
                OnuTelemetry(
                    pon_port=onu.pon_port if onu.pon_port is not None else -1,
                    onu_id=onu.onu_id if onu.onu_id is not None else -1,
                    serial_number=onu.serial_number,
                    status=OnuStatus.OFFLINE,
                )
            )
            continue
        seen.add(key)
        telemetry = _telemetry(vendor, key, row)
        telemetry.serial_number = onu.serial_number
        result.updated.append(telemetry)

    for key in sorted(set(table) - seen):
        try:
            result.discovered.append(_telemetry(vendor, key, table[key]))
        except ValueError:
            logger.debug("Skipping malformed ONU index %s", key)
    return result


async def discover_onus(client: OltSnmpClient, stored: Iterable[OnuRecord]) -> DiscoveryResult:
    stored = list(stored)
    table = await client.walk_onu_table()
    result = correlate(client.vendor, table, stored)
    logger.info("ONU discovery on %s: %s", client.host, result.summary())
    return result
