"""
SNMP polling: system info, ONU counts and bulk ONU discovery, persisted
onto the OLT and ONU rows.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping

from ponmgr import db
from ponmgr.drivers.discovery import DiscoveryResult, discover_onus
from ponmgr.drivers.records import OnuProvisioning, OnuRecord, OnuStatus, OnuTelemetry
from ponmgr.drivers.snmp_client import OltSnmpClient, create_snmp_client
from ponmgr.models import Olt, Onu
from ponmgr.validation import validate_serial_number

logger = logging.getLogger(__name__)


class OltPollService:
    def __init__(
        self,
        timeout: float = 10.0,
        retries: int = 2,
        client_factory: Callable[..., OltSnmpClient] = create_snmp_client,
    ):
        self.timeout = timeout
        self.retries = retries
        self.client_factory = client_factory

    @classmethod
    def from_app_config(cls, app_config: Mapping[str, Any]) -> "OltPollService":
        try:
            timeout = float(app_config.get("SNMP_TIMEOUT_SECONDS", 10.0))
        except (TypeError, ValueError):
            timeout = 10.0
        try:
            retries = int(app_config.get("SNMP_RETRIES", 2))
        except (TypeError, ValueError):
            retries = 2
        return cls(timeout=max(1.0, min(timeout, 60.0)), retries=max(0, min(retries, 5)))

    def _client(self, olt: Olt) -> OltSnmpClient:
        return self.client_factory(olt.to_record(), timeout=self.timeout, retries=self.retries)

    def test_connection(self, olt: Olt) -> bool:
        return asyncio.run(self._client(olt).test_connection())

    def poll(self, olt: Olt) -> Dict[str, Any]:
        client = self._client(olt)

        async def _collect():
            return await asyncio.gather(client.get_system_info(), client.get_onu_count())

        info, onu_count = asyncio.run(_collect())
        reachable = info.description is not None or info.name is not None

        olt.status = "online" if reachable else "offline"
        olt.last_polled = datetime.utcnow()
        if reachable:
            olt.firmware_version = info.firmware or olt.firmware_version
            olt.uptime = info.uptime
            olt.cpu_usage = info.cpu_usage
            olt.memory_usage = info.memory_usage
            olt.temperature = info.temperature
            olt.active_onus = onu_count
        db.session.commit()
        logger.info("Polled %s (%s): %s, %d ONUs", olt.name, olt.ip_address, olt.status, onu_count)
        return {"status": olt.status, "system": info.to_dict(), "active_onus": onu_count}

    # Discovery

    @staticmethod
    def _apply(onu: Onu, telemetry: OnuTelemetry, now: datetime) -> None:
        onu.status = telemetry.status.value if telemetry.status else OnuStatus.OFFLINE.value
        if telemetry.rx_power is not None:
            onu.rx_power = telemetry.rx_power
        if telemetry.tx_power is not None:
            onu.tx_power = telemetry.tx_power
        if telemetry.distance is not None:
            onu.distance = telemetry.distance
        if telemetry.status is OnuStatus.ONLINE:
            onu.last_seen = now

    def _auto_provision(self, olt: Olt, discovered: List[OnuTelemetry], operations) -> List[Dict[str, Any]]:
        profile = olt.default_profile
        provisioned = []
        for telemetry in discovered:
            if not telemetry.serial_number:
                continue
            try:
                serial = validate_serial_number(telemetry.serial_number)
            except ValueError as error:
                logger.warning(
                    "Skipping ONU %s on %s: unusable serial %r", telemetry.key, olt.name, telemetry.serial_number
                )
                provisioned.append({"serial_number": telemetry.serial_number, "success": False, "error": str(error)})
                continue
            if Onu.query.filter_by(serial_number=serial).first() is not None:
                continue
            config = OnuProvisioning(
                onu=OnuRecord(serial_number=serial, pon_port=telemetry.pon_port, onu_id=telemetry.onu_id),
                service_profile=profile.to_record() if profile is not None else None,
                vlan=profile.internet_vlan if profile is not None else None,
            )
            result = operations.driver_for(olt).provision_onu(config)
            if not result.success:
                logger.warning("Auto-provision of %s on %s failed: %s", serial, olt.name, result.error)
                provisioned.append({"serial_number": serial, "success": False, "error": result.error})
                continue
            db.session.add(
                Onu(
                    olt_id=olt.id,
                    serial_number=serial,
                    pon_port=telemetry.pon_port,
                    onu_id=telemetry.onu_id,
                    service_profile_id=olt.default_profile_id,
                    status=telemetry.status.value if telemetry.status else OnuStatus.OFFLINE.value,
                )
            )
            provisioned.append({"serial_number": serial, "success": True})
        return provisioned

    def discover(self, olt: Olt, operations=None) -> Dict[str, Any]:
        rows = {onu.id: onu for onu in olt.onus}
        result: DiscoveryResult = asyncio.run(
            discover_onus(self._client(olt), [onu.to_record() for onu in rows.values()])
        )

        now = datetime.utcnow()
        by_serial = {onu.serial_number: onu for onu in rows.values()}
        for telemetry in result.updated + result.offline:
            onu = by_serial.get(telemetry.serial_number)
            if onu is not None:
                self._apply(onu, telemetry, now)

        provisioned: List[Dict[str, Any]] = []
        if olt.auto_provision and operations is not None and result.discovered:
            provisioned = self._auto_provision(olt, result.discovered, operations)

        olt.active_onus = sum(1 for item in result.updated if item.status is OnuStatus.ONLINE)
        olt.last_polled = now
        db.session.commit()
        return {
            "summary": result.summary(),
            "discovered": [item.to_dict() for item in result.discovered],
            "auto_provisioned": provisioned,
        }
