import base64

import ponmgr.acs.engine as engine_module

from ponmgr import db
from ponmgr.acs.engine import CwmpEngine
from ponmgr.models import CwmpDevice, CwmpTask, Olt, Onu

SOAP = "http://schemas.xmlsoap.org/soap/envelope/"
CWMP = "urn:dslforum-org:cwmp-1-0"


def _envelope(cwmp_id, body, namespace=CWMP):
    header = f'<soap:Header><cwmp:ID soap:mustUnderstand="1">{cwmp_id}</cwmp:ID></soap:Header>' if cwmp_id else ""
    return (
        f'<soap:Envelope xmlns:soap="{SOAP}" xmlns:cwmp="{namespace}">'
        f"{header}<soap:Body>{body}</soap:Body></soap:Envelope>"
    ).encode()


def _inform(cwmp_id="inform-1", serial="HWTC1A2B3C4D", parameters=None, events=("0 BOOTSTRAP",), namespace=CWMP):
    parameters = parameters or {
        "InternetGatewayDevice.DeviceInfo.SoftwareVersion": "V3R017C10",
        "InternetGatewayDevice.ManagementServer.ConnectionRequestURL": "http://198.51.100.7:7547/cr",
    }
    event_xml = "".join(
        f"<EventStruct><EventCode>{code}</EventCode><CommandKey></CommandKey></EventStruct>" for code in events
    )
    params_xml = "".join(
        f"<ParameterValueStruct><Name>{name}</Name><Value>{value}</Value></ParameterValueStruct>"
        for name, value in parameters.items()
    )
    serial_xml = f"<SerialNumber>{serial}</SerialNumber>" if serial else ""
    return _envelope(
        cwmp_id,
        "<cwmp:Inform><DeviceId><Manufacturer>Huawei</Manufacturer><OUI>00E0FC</OUI>"
        f"<ProductClass>HG8245H</ProductClass>{serial_xml}</DeviceId>"
        f"<Event>{event_xml}</Event><MaxEnvelopes>1</MaxEnvelopes>"
        "<CurrentTime>2026-10-18T10:00:00Z</CurrentTime><RetryCount>0</RetryCount>"
        f"<ParameterList>{params_xml}</ParameterList></cwmp:Inform>",
        namespace,
    )


def _post(acs_client, acs_headers, body):
    return acs_client.post("/", data=body, headers=acs_headers)


def _device(acs_app):
    with acs_app.app_context():
        return CwmpDevice.query.filter_by(device_key="00E0FC-HG8245H-HWTC1A2B3C4D").first()


def _enqueue(acs_app, task_type, parameters=None):
    with acs_app.app_context():
        device = CwmpDevice.query.first()
        task = CwmpEngine().enqueue_task(device, task_type, parameters)
        return task.id, task.command_key


def _task(acs_app, task_id):
    with acs_app.app_context():
        task = db.session.get(CwmpTask, task_id)
        return task.to_dict()


def test_missing_credentials_get_basic_challenge(acs_client):
    response = acs_client.post("/", data=_inform())

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == 'Basic realm="ACS"'


def test_wrong_password_is_rejected(acs_client):
    token = base64.b64encode(b"acs-user:nope").decode()

    response = acs_client.post("/", data=_inform(), headers={"Authorization": f"Basic {token}"})

    assert response.status_code == 401


def test_auth_can_be_disabled(acs_app, acs_client):
    acs_app.config["ACS_REQUIRE_AUTH"] = False

    response = acs_client.post("/", data=_inform())

    assert response.status_code == 200


def test_options_and_other_methods(acs_client):
    assert acs_client.options("/").status_code == 200
    assert acs_client.options("/").headers["Access-Control-Allow-Origin"] == "*"
    assert acs_client.get("/").status_code == 405


def test_empty_post_ends_session_with_204(acs_client, acs_headers):
    response = _post(acs_client, acs_headers, b"")

    assert response.status_code == 204
    assert response.data == b""


def test_malformed_xml_returns_soap_fault(acs_client, acs_headers):
    response = _post(acs_client, acs_headers, b"<soap:Envelope><unclosed>")

    assert response.status_code == 200
    assert response.content_type.startswith("text/xml")
    assert b"<faultcode>Client</faultcode>" in response.data


def test_entity_expansion_is_refused(acs_client, acs_headers):
    bomb = (
        b'<?xml version="1.0"?><!DOCTYPE x [<!ENTITY a "aaaa"><!ENTITY b "&a;&a;&a;">]>'
        b'<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/"><soap:Body>&b;</soap:Body></soap:Envelope>'
    )

    response = _post(acs_client, acs_headers, bomb)

    assert b"soap-env:Fault" in response.data


def test_inform_without_serial_is_a_fault(acs_app, acs_client, acs_headers):
    response = _post(acs_client, acs_headers, _inform(serial=""))

    assert b"SerialNumber" in response.data
    assert _device(acs_app) is None


def test_oversized_body_is_refused(acs_app, acs_client, acs_headers):
    acs_app.config["ACS_MAX_BODY_BYTES"] = 64

    response = _post(acs_client, acs_headers, _inform())

    assert b"too large" in response.data
    assert _device(acs_app) is None


def test_inform_creates_device_and_echoes_id(acs_app, acs_client, acs_headers):
    response = _post(acs_client, acs_headers, _inform("abc-123"))

    assert response.status_code == 200
    assert b"<cwmp:InformResponse>" in response.data
    assert b">abc-123</cwmp:ID>" in response.data
    assert b"<MaxEnvelopes>1</MaxEnvelopes>" in response.data

    device = _device(acs_app)
    assert device.serial_number == "HWTC1A2B3C4D"
    assert device.software_version == "V3R017C10"
    assert device.connection_request_url == "http://198.51.100.7:7547/cr"
    assert device.last_events == ["0 BOOTSTRAP"]
    assert device.is_online is True


def test_repeated_inform_updates_one_row_and_merges_parameters(acs_app, acs_client, acs_headers):
    _post(acs_client, acs_headers, _inform("one"))
    _post(
        acs_client,
        acs_headers,
        _inform("two", parameters={"InternetGatewayDevice.DeviceInfo.UpTime": "3600"}, events=("2 PERIODIC",)),
    )

    with acs_app.app_context():
        assert CwmpDevice.query.count() == 1
    device = _device(acs_app)
    assert device.last_events == ["2 PERIODIC"]
    assert device.parameter_cache["InternetGatewayDevice.DeviceInfo.UpTime"] == "3600"
    assert device.software_version == "V3R017C10"


def test_response_echoes_request_namespace(acs_client, acs_headers):
    namespace = "urn:dslforum-org:cwmp-1-2"

    response = _post(acs_client, acs_headers, _inform(namespace=namespace))

    assert f'xmlns:cwmp="{namespace}"'.encode() in response.data


def test_inform_links_onu_with_matching_serial(acs_app, acs_client, acs_headers):
    with acs_app.app_context():
        olt = Olt(name="OLT-1", vendor="huawei", ip_address="192.0.2.10")
        db.session.add(olt)
        db.session.flush()
        onu = Onu(olt_id=olt.id, serial_number="HWTC1A2B3C4D", pon_port=0, onu_id=1)
        db.session.add(onu)
        db.session.commit()
        onu_id = onu.id

    _post(acs_client, acs_headers, _inform())

    assert _device(acs_app).onu_id == onu_id


def test_tasks_dispatch_in_fifo_order_and_close_on_response(acs_app, acs_client, acs_headers):
    _post(acs_client, acs_headers, _inform())
    first_id, first_key = _enqueue(
        acs_app, "get_parameter_values", {"parameter_names": ["InternetGatewayDevice.DeviceInfo.UpTime"]}
    )
    second_id, second_key = _enqueue(acs_app, "reboot")
    third_id, _third_key = _enqueue(acs_app, "factory_reset")

    response = _post(acs_client, acs_headers, _inform("inform-2"))

    assert b"<cwmp:GetParameterValues>" in response.data
    assert f">{first_key}</cwmp:ID>".encode() in response.data
    assert _task(acs_app, first_id)["status"] == "in_progress"
    assert _task(acs_app, second_id)["status"] == "pending"

    reply = _envelope(
        first_key,
        "<cwmp:GetParameterValuesResponse><ParameterList>"
        "<ParameterValueStruct><Name>InternetGatewayDevice.DeviceInfo.UpTime</Name><Value>7200</Value></ParameterValueStruct>"
        "</ParameterList></cwmp:GetParameterValuesResponse>",
    )
    response = _post(acs_client, acs_headers, reply)

    assert response.status_code == 200
    first = _task(acs_app, first_id)
    assert first["status"] == "completed"
    assert first["result"]["parameters"] == {"InternetGatewayDevice.DeviceInfo.UpTime": "7200"}
    assert _device(acs_app).parameter_cache["InternetGatewayDevice.DeviceInfo.UpTime"] == "7200"

    response = _post(acs_client, acs_headers, _inform("inform-3"))

    assert b"<cwmp:Reboot>" in response.data
    assert f"<CommandKey>{second_key}</CommandKey>".encode() in response.data
    assert _task(acs_app, third_id)["status"] == "pending"


def test_fault_marks_task_failed(acs_app, acs_client, acs_headers):
    _post(acs_client, acs_headers, _inform())
    task_id, command_key = _enqueue(
        acs_app,
        "set_parameter_values",
        {"parameter_values": [{"name": "InternetGatewayDevice.ManagementServer.PeriodicInformInterval", "value": 300}]},
    )
    response = _post(acs_client, acs_headers, _inform("inform-2"))
    assert b"<ParameterKey>" + command_key.encode() + b"</ParameterKey>" in response.data

    fault = _envelope(
        command_key,
        "<soap:Fault><faultcode>Client</faultcode><faultstring>CWMP fault</faultstring>"
        "<detail><cwmp:Fault><FaultCode>9005</FaultCode><FaultString>Invalid parameter name</FaultString>"
        "</cwmp:Fault></detail></soap:Fault>",
    )
    _post(acs_client, acs_headers, fault)

    task = _task(acs_app, task_id)
    assert task["status"] == "failed"
    assert task["error"] == "9005: Invalid parameter name"


def test_download_waits_for_transfer_complete(acs_app, acs_client, acs_headers):
    _post(acs_client, acs_headers, _inform())
    task_id, command_key = _enqueue(acs_app, "download", {"url": "http://files.example.net/fw.bin"})
    response = _post(acs_client, acs_headers, _inform("inform-2"))
    assert b"<FileType>1 Firmware Upgrade Image</FileType>" in response.data

    _post(
        acs_client,
        acs_headers,
        _envelope(command_key, "<cwmp:DownloadResponse><Status>1</Status></cwmp:DownloadResponse>"),
    )
    assert _task(acs_app, task_id)["status"] == "in_progress"

    response = _post(
        acs_client,
        acs_headers,
        _envelope(
            "tc-1",
            f"<cwmp:TransferComplete><CommandKey>{command_key}</CommandKey>"
            "<FaultStruct><FaultCode>0</FaultCode><FaultString></FaultString></FaultStruct>"
            "<StartTime>2026-10-18T10:00:00Z</StartTime><CompleteTime>2026-10-18T10:02:00Z</CompleteTime>"
            "</cwmp:TransferComplete>",
        ),
    )

    assert b"<cwmp:TransferCompleteResponse/>" in response.data
    assert b">tc-1</cwmp:ID>" in response.data
    assert _task(acs_app, task_id)["status"] == "completed"


def test_failed_transfer_marks_download_failed(acs_app, acs_client, acs_headers):
    _post(acs_client, acs_headers, _inform())
    task_id, command_key = _enqueue(acs_app, "download", {"url": "http://files.example.net/fw.bin"})
    _post(acs_client, acs_headers, _inform("inform-2"))

    _post(
        acs_client,
        acs_headers,
        _envelope(
            "tc-2",
            f"<cwmp:TransferComplete><CommandKey>{command_key}</CommandKey>"
            "<FaultStruct><FaultCode>9010</FaultCode><FaultString>Download failure</FaultString></FaultStruct>"
            "</cwmp:TransferComplete>",
        ),
    )

    task = _task(acs_app, task_id)
    assert task["status"] == "failed"
    assert task["error"] == "9010: Download failure"


def test_response_with_unknown_id_is_ignored(acs_client, acs_headers):
    response = _post(
        acs_client, acs_headers, _envelope("nobody", "<cwmp:RebootResponse/>")
    )

    assert response.status_code == 200
    assert b"<soap-env:Body>" in response.data


def _reply_to(acs_client, acs_headers, command_key, method):
    return _post(acs_client, acs_headers, _envelope(command_key, f"<cwmp:{method}/>"))


def test_three_tasks_dispatch_in_creation_order_once_each(acs_app, acs_client, acs_headers):
    _post(acs_client, acs_headers, _inform())
    first = _enqueue(acs_app, "reboot")
    second = _enqueue(acs_app, "factory_reset")
    third = _enqueue(
        acs_app, "get_parameter_values", {"parameter_names": ["InternetGatewayDevice.DeviceInfo.UpTime"]}
    )

    response = _post(acs_client, acs_headers, _inform("inform-2"))
    assert f">{first[1]}</cwmp:ID>".encode() in response.data
    _reply_to(acs_client, acs_headers, first[1], "RebootResponse")

    response = _post(acs_client, acs_headers, _inform("inform-3"))
    assert b"<cwmp:FactoryReset/>" in response.data
    assert f">{second[1]}</cwmp:ID>".encode() in response.data
    _reply_to(acs_client, acs_headers, second[1], "FactoryResetResponse")

    response = _post(acs_client, acs_headers, _inform("inform-4"))
    assert b"<cwmp:GetParameterValues>" in response.data
    assert f">{third[1]}</cwmp:ID>".encode() in response.data
    _reply_to(acs_client, acs_headers, third[1], "GetParameterValuesResponse")

    response = _post(acs_client, acs_headers, _inform("inform-5"))
    assert b"<cwmp:InformResponse>" in response.data
    assert [_task(acs_app, task_id)["status"] for task_id, _ in (first, second, third)] == ["completed"] * 3


def test_unanswered_task_is_sent_again_before_the_queue_moves(acs_app, acs_client, acs_headers):
    _post(acs_client, acs_headers, _inform())
    reboot_id, reboot_key = _enqueue(acs_app, "reboot")
    reset_id, reset_key = _enqueue(acs_app, "factory_reset")

    response = _post(acs_client, acs_headers, _inform("inform-2"))
    assert f"<CommandKey>{reboot_key}</CommandKey>".encode() in response.data

    # CPE dropped the session without a RebootResponse.
    response = _post(acs_client, acs_headers, _inform("inform-3"))

    assert b"<cwmp:Reboot>" in response.data
    assert f">{reboot_key}</cwmp:ID>".encode() in response.data
    assert b"<cwmp:FactoryReset/>" not in response.data
    assert _task(acs_app, reboot_id)["status"] == "in_progress"
    assert _task(acs_app, reset_id)["status"] == "pending"

    _reply_to(acs_client, acs_headers, reboot_key, "RebootResponse")
    assert _task(acs_app, reboot_id)["status"] == "completed"

    response = _post(acs_client, acs_headers, _inform("inform-4"))

    assert f">{reset_key}</cwmp:ID>".encode() in response.data
    assert _task(acs_app, reset_id)["status"] == "in_progress"


def test_acknowledged_download_does_not_block_the_queue(acs_app, acs_client, acs_headers):
    _post(acs_client, acs_headers, _inform())
    download_id, download_key = _enqueue(acs_app, "download", {"url": "http://files.example.net/fw.bin"})
    _reboot_id, reboot_key = _enqueue(acs_app, "reboot")
    _post(acs_client, acs_headers, _inform("inform-2"))
    _post(
        acs_client,
        acs_headers,
        _envelope(download_key, "<cwmp:DownloadResponse><Status>1</Status></cwmp:DownloadResponse>"),
    )

    response = _post(acs_client, acs_headers, _inform("inform-3", events=("7 TRANSFER COMPLETE",)))

    assert b"<cwmp:Download>" not in response.data
    assert f">{reboot_key}</cwmp:ID>".encode() in response.data
    assert _task(acs_app, download_id)["status"] == "in_progress"


def test_unbuildable_task_is_failed_and_next_one_dispatched(acs_app, acs_client, acs_headers):
    _post(acs_client, acs_headers, _inform())
    with acs_app.app_context():
        device = CwmpDevice.query.first()
        broken = CwmpTask(
            device_id=device.id,
            task_type="download",
            parameters={"url": "http://files.example.net/fw.bin", "file_size": "12MB"},
            command_key="cwmp-broken-download",
            sequence=1,
        )
        db.session.add(broken)
        db.session.commit()
        broken_id = broken.id
    _reboot_id, reboot_key = _enqueue(acs_app, "reboot")

    response = _post(acs_client, acs_headers, _inform("inform-2"))

    assert response.status_code == 200
    assert f">{reboot_key}</cwmp:ID>".encode() in response.data
    task = _task(acs_app, broken_id)
    assert task["status"] == "failed"
    assert task["error"].startswith("cannot build RPC")


def test_lost_claim_moves_on_to_the_next_task(acs_app, acs_client, acs_headers, monkeypatch):
    _post(acs_client, acs_headers, _inform())
    reboot_id, _reboot_key = _enqueue(acs_app, "reboot")
    reset_id, reset_key = _enqueue(acs_app, "factory_reset")
    real_plan = engine_module.plan_inform_reply
    taken = []

    def plan_then_lose_race(pending, message, in_progress=()):
        reply = real_plan(pending, message, in_progress)
        if reply.task is not None and not taken:
            # Another worker claims the task between the read and the update.
            CwmpTask.query.filter_by(id=reply.task.id).update({"status": "in_progress"})
            taken.append(reply.task.id)
        return reply

    monkeypatch.setattr(engine_module, "plan_inform_reply", plan_then_lose_race)

    response = _post(acs_client, acs_headers, _inform("inform-2"))

    assert taken == [reboot_id]
    assert b"<cwmp:FactoryReset/>" in response.data
    assert f">{reset_key}</cwmp:ID>".encode() in response.data
    assert _task(acs_app, reset_id)["status"] == "in_progress"


def test_concurrent_first_inform_updates_existing_row(acs_app, acs_client, acs_headers, monkeypatch):
    _post(acs_client, acs_headers, _inform("one"))
    # Simulate the second request having looked before the first one committed.
    monkeypatch.setattr(engine_module.CwmpEngine, "find_device", lambda self, device_key: None)

    response = _post(acs_client, acs_headers, _inform("two", events=("2 PERIODIC",)))

    assert response.status_code == 200
    assert b"<cwmp:InformResponse>" in response.data
    with acs_app.app_context():
        assert CwmpDevice.query.count() == 1
    assert _device(acs_app).last_events == ["2 PERIODIC"]
