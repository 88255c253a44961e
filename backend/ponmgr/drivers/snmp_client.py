"""
SNMP polling client.

``SnmpClient`` is a thin asyncio GET/WALK wrapper over pysnmp that opens a
fresh engine per call. ``OltSnmpClient`` layers the vendor OID tables on
top and turns raw varbinds into ``SystemInfo`` / ``OnuTelemetry`` records.
"""
from __future__ import annotations

import asyncio
import logging
import math
import re
from typing import Any, Dict, Iterable, Optional

from pysnmp.error import PySnmpError
from pysnmp.hlapi.v3arch.asyncio import (
    CommunityData,
    ContextData,
    ObjectIdentity,
    ObjectType,
    SnmpEngine,
    UdpTransportTarget,
    bulk_walk_cmd,
    get_cmd,
    walk_cmd,
)
from pysnmp.proto.rfc1902 import ObjectIdentifier, OctetString
from pysnmp.proto.rfc1905 import EndOfMibView, NoSuchInstance, NoSuchObject

from .errors import CommandError, DeviceConnectionError, DeviceTimeoutError, DriverError
from .records import OltRecord, OnuTelemetry, SystemInfo, Vendor

logger = logging.getLogger(__name__)

STANDARD_OIDS = {
    "sys_descr": "1.3.6.1.2.1.1.1.0",
    "sys_uptime": "1.3.6.1.2.1.1.3.0",
    "sys_contact": "1.3.6.1.2.1.1.4.0",
    "sys_name": "1.3.6.1.2.1.1.5.0",
    "sys_location": "1.3.6.1.2.1.1.6.0",
    "if_number": "1.3.6.1.2.1.2.1.0",
}

# SmartAX MA5600/MA5683 enterprise branch
HUAWEI_OIDS = {
    "board_cpu": "1.3.6.1.4.1.2011.6.3.3.2.1.6",
    "board_memory": "1.3.6.1.4.1.2011.6.3.3.2.1.8",
    "board_temperature": "1.3.6.1.4.1.2011.6.3.3.2.1.10",
    "cpu": "1.3.6.1.4.1.2011.6.3.4.1.2.0",
    "memory": "1.3.6.1.4.1.2011.6.3.4.1.3.0",
    "temperature": "1.3.6.1.4.1.2011.6.3.4.1.4.0",
    "onu_serial": "1.3.6.1.4.1.2011.6.128.1.1.2.43.1.3",
    "onu_status": "1.3.6.1.4.1.2011.6.128.1.1.2.46.1.15",
    "onu_rx_power": "1.3.6.1.4.1.2011.6.128.1.1.2.51.1.4",
    "onu_tx_power": "1.3.6.1.4.1.2011.6.128.1.1.2.51.1.6",
    "onu_distance": "1.3.6.1.4.1.2011.6.128.1.1.2.46.1.20",
    "pon_onu_count": "1.3.6.1.4.1.2011.6.128.1.1.2.21.1.9",
}

# C300/C600 enterprise branch
ZTE_OIDS = {
    "cpu": "1.3.6.1.4.1.3902.1082.500.10.2.2.1.1.8.1",
    "memory": "1.3.6.1.4.1.3902.1082.500.10.2.2.1.1.9.1",
    "temperature": "1.3.6.1.4.1.3902.1082.500.10.2.2.1.1.10.1",
    "onu_serial": "1.3.6.1.4.1.3902.1082.500.20.2.3.1.3",
    "onu_status": "1.3.6.1.4.1.3902.1082.500.20.2.3.1.5",
    "onu_rx_power": "1.3.6.1.4.1.3902.1082.500.20.2.4.1.3",
    "onu_tx_power": "1.3.6.1.4.1.3902.1082.500.20.2.4.1.4",
    "onu_distance": "1.3.6.1.4.1.3902.1082.500.20.2.3.1.12",
    "pon_onu_count": "1.3.6.1.4.1.3902.1082.500.20.2.2.1.8",
}

VENDOR_OIDS = {
    Vendor.HUAWEI: HUAWEI_OIDS,
    Vendor.ZTE: ZTE_OIDS,
}

FIRMWARE_PATTERN = re.compile(r"Version\s+([\d.]+)", re.IGNORECASE)
PRINTABLE = re.compile(rb"[\x20-\x7e\s]*")
_MISSING = (NoSuchObject, NoSuchInstance, EndOfMibView)


def normalize_value(value: Any) -> Any:
    """Printable octet strings become text, other octets hex, numbers int."""
    if isinstance(value, (OctetString, bytes, bytearray)):
        raw = value.asOctets() if isinstance(value, OctetString) else bytes(value)
        if PRINTABLE.fullmatch(raw):
            return raw.decode("ascii").strip()
        return raw.hex()
    if isinstance(value, ObjectIdentifier):
        return str(value)
    if isinstance(value, (int, float, str)):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return value.prettyPrint() if hasattr(value, "prettyPrint") else str(value)


def centiseconds_to_seconds(value: Any) -> Optional[int]:
    number = _number(value)
    return None if number is None else int(math.floor(number / 100))


def centi_dbm_to_dbm(value: Any) -> Optional[float]:
    number = _number(value)
    return None if number is None else number / 100


def parse_firmware(description: Optional[str]) -> Optional[str]:
    if not description:
        return None
    match = FIRMWARE_PATTERN.search(str(description))
    return match.group(1) if match else None


def _number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _classify(error_indication, host: str) -> DriverError:
    text = str(error_indication)
    if "timeout" in text.lower() or "timed out" in text.lower():
        return DeviceTimeoutError(f"SNMP request to {host} timed out: {text}", host=host)
    return DeviceConnectionError(f"SNMP transport error for {host}: {text}", host=host)


class SnmpClient:
    """GET/WALK against one agent. Raises ``DriverError`` subclasses on failure."""

    def __init__(
        self,
        host: str,
        community: str = "public",
        port: int = 161,
        version: str = "1",
        timeout: float = 5.0,
        retries: int = 1,
    ):
        self.host = host
        self.community = community
        self.port = int(port or 161)
        self.version = str(version)
        self.timeout = float(timeout)
        self.retries = int(retries)

    def _auth(self) -> CommunityData:
        if self.version == "1":
            return CommunityData(self.community, mpModel=0)
        if self.version == "2c":
            return CommunityData(self.community, mpModel=1)
        raise ValueError(f"Unsupported SNMP version: {self.version}")

    async def _target(self) -> UdpTransportTarget:
        try:
            return await UdpTransportTarget.create(
                (self.host, self.port), timeout=self.timeout, retries=self.retries
            )
        except (PySnmpError, OSError) as exc:
            raise DeviceConnectionError(f"Cannot reach SNMP agent {self.host}: {exc}", host=self.host) from exc

    def _collect(self, var_binds, results: Dict[str, Any], prefix: Optional[str] = None) -> None:
        for name, value in var_binds:
            oid = str(name)
            if isinstance(value, _MISSING):
                logger.debug("SNMP %s: no value for %s", self.host, oid)
                continue
            if prefix is not None and not oid.startswith(prefix + "."):
                continue
            results[oid] = normalize_value(value)

    async def get(self, oids: Iterable[str]) -> Dict[str, Any]:
        oids = list(oids)
        engine = SnmpEngine()
        try:
            error_indication, error_status, error_index, var_binds = await get_cmd(
                engine,
                self._auth(),
                await self._target(),
                ContextData(),
                *[ObjectType(ObjectIdentity(oid)) for oid in oids],
                lookupMib=False,
            )
        except PySnmpError as exc:
            raise DeviceConnectionError(f"SNMP GET to {self.host} failed: {exc}", host=self.host) from exc
        finally:
            engine.close_dispatcher()

        if error_indication:
            raise _classify(error_indication, self.host)
        if error_status:
            failed = oids[int(error_index) - 1] if error_index and int(error_index) <= len(oids) else "?"
            raise CommandError(
                f"SNMP GET error {error_status.prettyPrint()} at {failed}",
                host=self.host,
                command=failed,
            )

        results: Dict[str, Any] = {}
        self._collect(var_binds, results)
        return results

    async def walk(self, oid: str) -> Dict[str, Any]:
        engine = SnmpEngine()
        results: Dict[str, Any] = {}
        try:
            target = await self._target()
            if self.version == "1":
                iterator = walk_cmd(
                    engine, self._auth(), target, ContextData(),
                    ObjectType(ObjectIdentity(oid)),
                    lexicographicMode=False, lookupMib=False,
                )
            else:
                iterator = bulk_walk_cmd(
                    engine, self._auth(), target, ContextData(),
                    0, 25,
                    ObjectType(ObjectIdentity(oid)),
                    lexicographicMode=False, lookupMib=False,
                )
            async for error_indication, error_status, error_index, var_binds in iterator:
                if error_indication:
                    raise _classify(error_indication, self.host)
                if error_status:
                    raise CommandError(
                        f"SNMP WALK error {error_status.prettyPrint()} under {oid}",
                        host=self.host,
                        command=oid,
                    )
                self._collect(var_binds, results, prefix=oid)
        except PySnmpError as exc:
            raise DeviceConnectionError(f"SNMP WALK on {self.host} failed: {exc}", host=self.host) from exc
        finally:
            engine.close_dispatcher()
        return results


class OltSnmpClient:
    def __init__(
        self,
        host: str,
        community: str,
        vendor,
        port: int = 161,
        timeout: float = 10.0,
        retries: int = 2,
        client: Optional[SnmpClient] = None,
    ):
        self.vendor = Vendor.parse(vendor)
        self.oids = VENDOR_OIDS[self.vendor]
        self.client = client or SnmpClient(
            host, community=community, port=port, version="2c", timeout=timeout, retries=retries
        )

    @property
    def host(self) -> str:
        return self.client.host

    async def _safe_get(self, oids, label: str) -> Dict[str, Any]:
        try:
            return await self.client.get(oids)
        except DriverError as error:
            logger.warning("SNMP %s query on %s failed: %s", label, self.host, error.message)
            return {}

    async def _safe_walk(self, oid: str, label: str) -> Dict[str, Any]:
        try:
            return await self.client.walk(oid)
        except DriverError as error:
            logger.warning("SNMP %s walk on %s failed: %s", label, self.host, error.message)
            return {}

    async def _vendor_metrics(self) -> Dict[str, Optional[float]]:
        metrics: Dict[str, Optional[float]] = {"cpu": None, "memory": None, "temperature": None}
        if self.vendor is Vendor.HUAWEI:
            # Per-board tables; the busiest board stands for the chassis.
            for key in metrics:
                board = await self._safe_walk(self.oids[f"board_{key}"], f"board {key}")
                values = [number for number in map(_number, board.values()) if number is not None]
                if values:
                    metrics[key] = max(values)

        missing = [key for key, value in metrics.items() if value is None]
        if missing:
            scalars = await self._safe_get([self.oids[key] for key in missing], "vendor")
            for key in missing:
                metrics[key] = _number(scalars.get(self.oids[key]))
        return metrics

    async def get_system_info(self) -> SystemInfo:
        standard, metrics = await asyncio.gather(
            self._safe_get(
                [
                    STANDARD_OIDS["sys_descr"],
                    STANDARD_OIDS["sys_name"],
                    STANDARD_OIDS["sys_uptime"],
                    STANDARD_OIDS["sys_contact"],
                    STANDARD_OIDS["sys_location"],
                    STANDARD_OIDS["if_number"],
                ],
                "standard",
            ),
            self._vendor_metrics(),
        )

        description = standard.get(STANDARD_OIDS["sys_descr"])
        interface_count = _number(standard.get(STANDARD_OIDS["if_number"]))
        return SystemInfo(
            name=standard.get(STANDARD_OIDS["sys_name"]),
            description=description,
            uptime=centiseconds_to_seconds(standard.get(STANDARD_OIDS["sys_uptime"])),
            firmware=parse_firmware(description),
            contact=standard.get(STANDARD_OIDS["sys_contact"]) or None,
            location=standard.get(STANDARD_OIDS["sys_location"]) or None,
            interface_count=int(interface_count) if interface_count is not None else None,
            cpu_usage=metrics["cpu"],
            memory_usage=metrics["memory"],
            temperature=metrics["temperature"],
        )

    async def get_onu_count(self) -> int:
        try:
            results = await self.client.walk(self.oids["pon_onu_count"])
        except DriverError as error:
            logger.warning("SNMP ONU count on %s failed: %s", self.host, error.message)
            return 0
        return int(sum(_number(value) or 0 for value in results.values()))

    def onu_oid(self, key: str, pon_port: int, onu_id: int) -> str:
        return f"{self.oids[key]}.{pon_port}.{onu_id}"

    async def get_onu_optical_power(self, pon_port: int, onu_id: int) -> OnuTelemetry:
        rx_oid = self.onu_oid("onu_rx_power", pon_port, onu_id)
        tx_oid = self.onu_oid("onu_tx_power", pon_port, onu_id)
        distance_oid = self.onu_oid("onu_distance", pon_port, onu_id)
        telemetry = OnuTelemetry(pon_port=pon_port, onu_id=onu_id)

        results = await self._safe_get([rx_oid, tx_oid, distance_oid], "optical power")
        telemetry.rx_power = centi_dbm_to_dbm(results.get(rx_oid))
        telemetry.tx_power = centi_dbm_to_dbm(results.get(tx_oid))
        distance = _number(results.get(distance_oid))
        telemetry.distance = int(distance) if distance is not None else None
        return telemetry

    async def test_connection(self) -> bool:
        try:
            results = await self.client.get([STANDARD_OIDS["sys_descr"]])
        except DriverError:
            return False
        except Exception:
            logger.exception("Unexpected SNMP probe failure on %s", self.host)
            return False
        return bool(results)

    async def walk_onu_table(self) -> Dict[str, Dict[str, Any]]:
        """Walk every ONU column once; returns ``{"pon.onu": {column: value}}``."""
        columns = ("onu_serial", "onu_status", "onu_rx_power", "onu_tx_power", "onu_distance")
        walks = await asyncio.gather(*[self._safe_walk(self.oids[column], column) for column in columns])

        table: Dict[str, Dict[str, Any]] = {}
        for column, results in zip(columns, walks):
            base = self.oids[column]
            for oid, value in results.items():
                index = oid[len(base) + 1:]
                parts = index.split(".")
                if len(parts) < 2:
                    continue
                key = ".".join(parts[-2:])
                table.setdefault(key, {})[column] = value
        return table


def create_snmp_client(olt: OltRecord, timeout: float = 10.0, retries: int = 2) -> OltSnmpClient:
    return OltSnmpClient(
        olt.ip_address,
        olt.snmp_community or "public",
        olt.vendor,
        port=olt.snmp_port or 161,
        timeout=timeout,
        retries=retries,
    )
