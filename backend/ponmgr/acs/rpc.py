"""Outbound CWMP envelopes."""
from __future__ import annotations

import secrets
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional
from xml.sax.saxutils import escape

from .soap import DEFAULT_CWMP_NS, SOAP_NS

SOAP_ENC_NS = "http://schemas.xmlsoap.org/soap/encoding/"
XSD_NS = "http://www.w3.org/2001/XMLSchema"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

DEFAULT_FILE_TYPE = "1 Firmware Upgrade Image"
DEFAULT_VALUE_TYPE = "xsd:string"


def _x(value: Any) -> str:
    return escape("" if value is None else str(value), {'"': "&quot;"})


def generate_cwmp_id() -> str:
    return f"cwmp-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def envelope(cwmp_id: Optional[str], inner: str, namespace: str = DEFAULT_CWMP_NS) -> str:
    header = ""
    if cwmp_id:
        header = (
            "  <soap-env:Header>\n"
            f'    <cwmp:ID soap-env:mustUnderstand="1">{_x(cwmp_id)}</cwmp:ID>\n'
            "  </soap-env:Header>\n"
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<soap-env:Envelope xmlns:soap-env="{SOAP_NS}" xmlns:soap-enc="{SOAP_ENC_NS}" '
        f'xmlns:xsd="{XSD_NS}" xmlns:xsi="{XSI_NS}" xmlns:cwmp="{namespace}">\n'
        f"{header}"
        f"  <soap-env:Body>{inner}</soap-env:Body>\n"
        "</soap-env:Envelope>"
    )


def build_inform_response(cwmp_id: Optional[str], namespace: str = DEFAULT_CWMP_NS) -> str:
    return envelope(
        cwmp_id,
        "\n    <cwmp:InformResponse>\n      <MaxEnvelopes>1</MaxEnvelopes>\n    </cwmp:InformResponse>\n  ",
        namespace,
    )


def build_transfer_complete_response(cwmp_id: Optional[str], namespace: str = DEFAULT_CWMP_NS) -> str:
    return envelope(cwmp_id, "\n    <cwmp:TransferCompleteResponse/>\n  ", namespace)


def build_empty_response(cwmp_id: Optional[str], namespace: str = DEFAULT_CWMP_NS) -> str:
    return envelope(cwmp_id, "\n  ", namespace)


def build_soap_fault(fault_code: str, fault_string: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<soap-env:Envelope xmlns:soap-env="{SOAP_NS}">\n'
        "  <soap-env:Body>\n"
        "    <soap-env:Fault>\n"
        f"      <faultcode>{_x(fault_code)}</faultcode>\n"
        f"      <faultstring>{_x(fault_string)}</faultstring>\n"
        "    </soap-env:Fault>\n"
        "  </soap-env:Body>\n"
        "</soap-env:Envelope>"
    )


def build_get_parameter_values(cwmp_id: str, names: Iterable[str], namespace: str = DEFAULT_CWMP_NS) -> str:
    names = list(names)
    items = "".join(f"        <string>{_x(name)}</string>\n" for name in names)
    return envelope(
        cwmp_id,
        "\n    <cwmp:GetParameterValues>\n"
        f'      <ParameterNames soap-enc:arrayType="xsd:string[{len(names)}]">\n'
        f"{items}"
        "      </ParameterNames>\n"
        "    </cwmp:GetParameterValues>\n  ",
        namespace,
    )


def build_set_parameter_values(
    cwmp_id: str,
    values: Iterable[Mapping[str, Any]],
    parameter_key: str = "",
    namespace: str = DEFAULT_CWMP_NS,
) -> str:
    values = list(values)
    structs: List[str] = []
    for item in values:
        structs.append(
            "        <ParameterValueStruct>\n"
            f"          <Name>{_x(item.get('name'))}</Name>\n"
            f'          <Value xsi:type="{_x(item.get("type") or DEFAULT_VALUE_TYPE)}">{_x(item.get("value"))}</Value>\n'
            "        </ParameterValueStruct>\n"
        )
    return envelope(
        cwmp_id,
        "\n    <cwmp:SetParameterValues>\n"
        f'      <ParameterList soap-enc:arrayType="cwmp:ParameterValueStruct[{len(values)}]">\n'
        f"{''.join(structs)}"
        "      </ParameterList>\n"
        f"      <ParameterKey>{_x(parameter_key)}</ParameterKey>\n"
        "    </cwmp:SetParameterValues>\n  ",
        namespace,
    )


def build_download(
    cwmp_id: str,
    params: Mapping[str, Any],
    command_key: str = "",
    namespace: str = DEFAULT_CWMP_NS,
) -> str:
    return envelope(
        cwmp_id,
        "\n    <cwmp:Download>\n"
        f"      <CommandKey>{_x(command_key)}</CommandKey>\n"
        f"      <FileType>{_x(params.get('file_type') or DEFAULT_FILE_TYPE)}</FileType>\n"
        f"      <URL>{_x(params.get('url'))}</URL>\n"
        f"      <Username>{_x(params.get('username'))}</Username>\n"
        f"      <Password>{_x(params.get('password'))}</Password>\n"
        f"      <FileSize>{int(params.get('file_size') or 0)}</FileSize>\n"
        f"      <TargetFileName>{_x(params.get('target_file_name'))}</TargetFileName>\n"
        f"      <DelaySeconds>{int(params.get('delay_seconds') or 0)}</DelaySeconds>\n"
        f"      <SuccessURL>{_x(params.get('success_url'))}</SuccessURL>\n"
        f"      <FailureURL>{_x(params.get('failure_url'))}</FailureURL>\n"
        "    </cwmp:Download>\n  ",
        namespace,
    )


def build_reboot(cwmp_id: str, command_key: str = "", namespace: str = DEFAULT_CWMP_NS) -> str:
    return envelope(
        cwmp_id,
        f"\n    <cwmp:Reboot>\n      <CommandKey>{_x(command_key)}</CommandKey>\n    </cwmp:Reboot>\n  ",
        namespace,
    )


def build_factory_reset(cwmp_id: str, namespace: str = DEFAULT_CWMP_NS) -> str:
    return envelope(cwmp_id, "\n    <cwmp:FactoryReset/>\n  ", namespace)


def build_task_rpc(
    task_type: str,
    parameters: Optional[Dict[str, Any]],
    command_key: str,
    namespace: str = DEFAULT_CWMP_NS,
) -> str:
    """RPC for a queued task. The command key doubles as the cwmp:ID."""
    params = parameters or {}
    if task_type == "get_parameter_values":
        return build_get_parameter_values(command_key, params.get("parameter_names") or [], namespace)
    if task_type == "set_parameter_values":
        return build_set_parameter_values(
            command_key, params.get("parameter_values") or [], command_key, namespace
        )
    if task_type == "download":
        return build_download(command_key, params, command_key, namespace)
    if task_type == "reboot":
        return build_reboot(command_key, command_key, namespace)
    if task_type == "factory_reset":
        return build_factory_reset(command_key, namespace)
    return build_empty_response(command_key, namespace)
