import asyncio

from ponmgr.drivers.discovery import correlate, discover_onus, format_gpon_serial, status_from_code
from ponmgr.drivers.records import OnuRecord, OnuStatus, Vendor
from ponmgr.drivers.snmp_client import HUAWEI_OIDS, OltSnmpClient


def test_status_codes_per_vendor():
    assert status_from_code(Vendor.HUAWEI, 1) is OnuStatus.ONLINE
    assert status_from_code(Vendor.HUAWEI, 2) is OnuStatus.OFFLINE
    assert status_from_code(Vendor.ZTE, 3) is OnuStatus.ONLINE
    assert status_from_code(Vendor.ZTE, 1) is OnuStatus.LOS
    assert status_from_code(Vendor.ZTE, 6) is OnuStatus.DYING_GASP
    assert status_from_code(Vendor.ZTE, 42) is OnuStatus.OFFLINE
    assert status_from_code(Vendor.ZTE, None) is OnuStatus.OFFLINE


def test_format_gpon_serial_decodes_vendor_prefix():
    assert format_gpon_serial("485754431a2b3c4d") == "HWTC1A2B3C4D"
    assert format_gpon_serial("zteg00001234") == "ZTEG00001234"
    assert format_gpon_serial(None) is None


def test_correlate_splits_updated_offline_and_discovered():
    table = {
        "0.1": {"onu_serial": "485754431a2b3c4d", "onu_status": 1, "onu_rx_power": -1890, "onu_distance": 1520},
        "0.5": {"onu_serial": "48575443deadbeef", "onu_status": 2},
    }
    stored = [
        OnuRecord(serial_number="HWTC1A2B3C4D", pon_port=0, onu_id=1),
        OnuRecord(serial_number="HWTC99999999", pon_port=1, onu_id=2),
    ]

    result = correlate(Vendor.HUAWEI, table, stored)

    assert result.summary() == {"updated": 1, "offline": 1, "discovered": 1}
    updated = result.updated[0]
    assert updated.key == "0.1"
    assert updated.status is OnuStatus.ONLINE
    assert updated.rx_power == -18.9
    assert updated.distance == 1520
    assert result.offline[0].serial_number == "HWTC99999999"
    assert result.offline[0].status is OnuStatus.OFFLINE
    assert result.discovered[0].serial_number == "HWTCDEADBEEF"


def test_discover_onus_walks_once_per_column():
    serial = HUAWEI_OIDS["onu_serial"]

    class Fake:
        host = "192.0.2.30"
        walked = []

        async def get(self, oids):
            return {}

        async def walk(self, oid):
            self.walked.append(oid)
            if oid == serial:
                return {f"{serial}.4194304000.3": "HWTC00000001"}
            return {}

    fake = Fake()
    client = OltSnmpClient("192.0.2.30", "public", "huawei", client=fake)

    result = asyncio.run(discover_onus(client, []))

    assert len(fake.walked) == 5
    assert [item.key for item in result.discovered] == ["4194304000.3"]
