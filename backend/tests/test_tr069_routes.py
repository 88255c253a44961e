import requests

import ponmgr.acs.connection_request as connection_request
from ponmgr import db
from ponmgr.models import CwmpDevice, Olt, Onu


def _seed_device(app, **overrides):
    values = {
        "device_key": "00E0FC-HG8245H-HWTC1A2B3C4D",
        "oui": "00E0FC",
        "product_class": "HG8245H",
        "serial_number": "HWTC1A2B3C4D",
        "connection_request_url": "http://198.51.100.7:7547/cr",
        "parameter_cache": {"InternetGatewayDevice.DeviceInfo.UpTime": "60"},
    }
    values.update(overrides)
    with app.app_context():
        device = CwmpDevice(**values)
        db.session.add(device)
        db.session.commit()
        return device.id


def _seed_onu(app, serial="HWTC1A2B3C4D"):
    with app.app_context():
        olt = Olt(name="OLT-1", vendor="zte", ip_address="192.0.2.10")
        db.session.add(olt)
        db.session.flush()
        onu = Onu(olt_id=olt.id, serial_number=serial, pon_port=1, onu_id=1)
        db.session.add(onu)
        db.session.commit()
        return onu.id


class _Response:
    def __init__(self, status_code, headers=None):
        self.status_code = status_code
        self.headers = headers or {}


def test_list_and_fetch_devices(client, app):
    device_id = _seed_device(app)

    listing = client.get("/api/tr069/devices?serial=1a2b")
    detail = client.get("/api/tr069/devices/00E0FC-HG8245H-HWTC1A2B3C4D")

    assert [item["id"] for item in listing.get_json()["devices"]] == [device_id]
    assert detail.get_json()["device"]["parameters"]["InternetGatewayDevice.DeviceInfo.UpTime"] == "60"


def test_unknown_device_is_404(client):
    assert client.get("/api/tr069/devices/nope/tasks").status_code == 404


def test_create_task_validates_parameters(client, app):
    device_id = _seed_device(app)

    bad_type = client.post(f"/api/tr069/devices/{device_id}/tasks", json={"task_type": "upload"})
    bad_params = client.post(f"/api/tr069/devices/{device_id}/tasks", json={"task_type": "download"})

    assert bad_type.status_code == 400
    assert "task_type must be one of" in bad_type.get_json()["error"]
    assert bad_params.status_code == 400
    assert bad_params.get_json()["error"] == "download requires url"


def test_download_task_rejects_non_numeric_size(client, app):
    device_id = _seed_device(app)

    response = client.post(
        f"/api/tr069/devices/{device_id}/tasks",
        json={"task_type": "download", "parameters": {"url": "http://files.example.net/fw.bin", "file_size": "12MB"}},
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "file_size must be integer"


def test_create_and_list_tasks(client, app):
    device_id = _seed_device(app)

    first = client.post(
        f"/api/tr069/devices/{device_id}/tasks",
        json={"task_type": "get_parameter_values", "parameters": {"parameter_names": "Device.DeviceInfo."}},
    )
    second = client.post(f"/api/tr069/devices/{device_id}/tasks", json={"task_type": "reboot"})
    listing = client.get(f"/api/tr069/devices/{device_id}/tasks?status=pending")

    assert first.status_code == 201
    task = first.get_json()["task"]
    assert task["status"] == "pending"
    assert task["sequence"] == 1
    assert task["command_key"].startswith("cwmp-")
    assert task["parameters"]["parameter_names"] == ["Device.DeviceInfo."]
    assert second.get_json()["task"]["sequence"] == 2
    assert len(listing.get_json()["tasks"]) == 2
    assert client.get(f"/api/tr069/tasks/{task['id']}").get_json()["task"]["id"] == task["id"]


def test_connection_request_falls_back_to_basic(client, app, monkeypatch):
    device_id = _seed_device(app)
    calls = []

    def fake_get(url, auth=None, timeout=None, verify=None):
        calls.append((url, type(auth).__name__, timeout))
        if len(calls) == 1:
            return _Response(401, {"WWW-Authenticate": 'Basic realm="CPE"'})
        return _Response(204)

    monkeypatch.setattr(connection_request.requests, "get", fake_get)

    response = client.post(
        f"/api/tr069/devices/{device_id}/connection-request",
        json={"username": "cpe", "password": "cpe-pass"},
    )

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "status_code": 204}
    assert [call[1] for call in calls] == ["HTTPDigestAuth", "HTTPBasicAuth"]
    assert calls[0][0] == "http://198.51.100.7:7547/cr"
    assert calls[0][2] == 5.0


def test_connection_request_timeout(client, app, monkeypatch):
    device_id = _seed_device(app)

    def fake_get(*args, **kwargs):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(connection_request.requests, "get", fake_get)

    response = client.post(f"/api/tr069/devices/{device_id}/connection-request", json={})

    assert response.status_code == 504
    assert response.get_json()["error_kind"] == "timeout"


def test_connection_request_without_url(client, app):
    device_id = _seed_device(app, connection_request_url=None)

    response = client.post(f"/api/tr069/devices/{device_id}/connection-request", json={})

    assert response.status_code == 400


def test_link_device_by_serial(client, app):
    device_id = _seed_device(app)
    onu_id = _seed_onu(app)

    response = client.post(f"/api/tr069/devices/{device_id}/link", json={})

    assert response.status_code == 200
    assert response.get_json()["device"]["onu_id"] == onu_id


def test_link_device_without_match(client, app):
    device_id = _seed_device(app, serial_number="UNKNOWN0001")

    response = client.post(f"/api/tr069/devices/{device_id}/link", json={})

    assert response.status_code == 404
