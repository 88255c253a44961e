"""
Inbound CWMP (TR-069) SOAP parsing.

Parsing goes through defusedxml; element matching is done on local names
so any envelope prefix and any cwmp-1-x namespace is accepted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import ParseError, fromstring

from ponmgr.drivers.errors import ProtocolError

SOAP_NS = "http://schemas.xmlsoap.org/soap/envelope/"
CWMP_URIS = (
    "urn:dslforum-org:cwmp-1-0",
    "urn:dslforum-org:cwmp-1-1",
    "urn:dslforum-org:cwmp-1-2",
)
DEFAULT_CWMP_NS = CWMP_URIS[0]

SOFTWARE_VERSION_PATHS = (
    "InternetGatewayDevice.DeviceInfo.SoftwareVersion",
    "Device.DeviceInfo.SoftwareVersion",
)
HARDWARE_VERSION_PATHS = (
    "InternetGatewayDevice.DeviceInfo.HardwareVersion",
    "Device.DeviceInfo.HardwareVersion",
)
CONNECTION_REQUEST_URL_PATHS = (
    "InternetGatewayDevice.ManagementServer.ConnectionRequestURL",
    "Device.ManagementServer.ConnectionRequestURL",
)
EXTERNAL_IP_PATHS = (
    "InternetGatewayDevice.WANDevice.1.WANConnectionDevice.1.WANIPConnection.1.ExternalIPAddress",
    "Device.IP.Interface.1.IPv4Address.1.IPAddress",
)


def _localname(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def _namespace(tag: str) -> Optional[str]:
    return tag[1:].split("}")[0] if tag.startswith("{") else None


def _text(element) -> str:
    return (element.text or "").strip() if element is not None else ""


def _child(element, name: str):
    if element is None:
        return None
    for child in element:
        if _localname(child.tag) == name:
            return child
    return None


def _find(element, name: str):
    if element is None:
        return None
    for node in element.iter():
        if _localname(node.tag) == name:
            return node
    return None


@dataclass
class CwmpMessage:
    method: Optional[str]
    cwmp_id: Optional[str]
    namespace: str = DEFAULT_CWMP_NS
    body: Any = field(default=None, repr=False)

    def field_text(self, name: str) -> str:
        return _text(_find(self.body, name))


@dataclass
class InformEvent:
    manufacturer: str
    oui: str
    product_class: str
    serial_number: str
    events: List[str] = field(default_factory=list)
    parameters: Dict[str, str] = field(default_factory=dict)
    retry_count: int = 0
    current_time: Optional[str] = None

    @property
    def device_key(self) -> str:
        return f"{self.oui}-{self.product_class}-{self.serial_number}"

    def first_parameter(self, paths) -> Optional[str]:
        for path in paths:
            value = self.parameters.get(path)
            if value:
                return value
        return None

    @property
    def software_version(self) -> Optional[str]:
        return self.first_parameter(SOFTWARE_VERSION_PATHS)

    @property
    def hardware_version(self) -> Optional[str]:
        return self.first_parameter(HARDWARE_VERSION_PATHS)

    @property
    def connection_request_url(self) -> Optional[str]:
        return self.first_parameter(CONNECTION_REQUEST_URL_PATHS)

    @property
    def external_ip(self) -> Optional[str]:
        return self.first_parameter(EXTERNAL_IP_PATHS)


def parse_envelope(raw: bytes) -> CwmpMessage:
    """Parse a SOAP envelope; raises ``ProtocolError`` on malformed input."""
    try:
        root = fromstring(raw)
    except (ParseError, DefusedXmlException, ValueError) as exc:
        raise ProtocolError(f"Malformed CWMP envelope: {exc}") from exc

    if _localname(root.tag) != "Envelope":
        raise ProtocolError(f"Expected SOAP Envelope, got {_localname(root.tag)}")

    header = _child(root, "Header")
    body = _child(root, "Body")
    if body is None:
        raise ProtocolError("SOAP Envelope has no Body")

    cwmp_id = None
    namespace = DEFAULT_CWMP_NS
    id_element = _child(header, "ID")
    if id_element is not None:
        cwmp_id = _text(id_element) or None
        namespace = _namespace(id_element.tag) or namespace

    method_element = next(iter(body), None)
    method = None
    if method_element is not None:
        method = _localname(method_element.tag)
        element_ns = _namespace(method_element.tag)
        if element_ns in CWMP_URIS:
            namespace = element_ns
    return CwmpMessage(method=method, cwmp_id=cwmp_id, namespace=namespace, body=method_element)


def parse_parameter_list(element) -> Dict[str, str]:
    params: Dict[str, str] = {}
    parameter_list = _find(element, "ParameterList")
    if parameter_list is None:
        return params
    for struct in parameter_list:
        if _localname(struct.tag) != "ParameterValueStruct":
            continue
        name = _text(_child(struct, "Name"))
        value = _child(struct, "Value")
        if name:
            params[name] = (value.text or "") if value is not None else ""
    return params


def parse_inform(message: CwmpMessage) -> InformEvent:
    device_id = _find(message.body, "DeviceId")
    if device_id is None:
        raise ProtocolError("Inform without DeviceId")

    serial_number = _text(_child(device_id, "SerialNumber"))
    if not serial_number:
        raise ProtocolError("Inform DeviceId has no SerialNumber")

    events: List[str] = []
    event_list = _find(message.body, "Event")
    if event_list is not None:
        for struct in event_list:
            code = _text(_child(struct, "EventCode"))
            if code:
                events.append(code)

    retry_text = _text(_find(message.body, "RetryCount"))
    return InformEvent(
        manufacturer=_text(_child(device_id, "Manufacturer")),
        oui=_text(_child(device_id, "OUI")),
        product_class=_text(_child(device_id, "ProductClass")),
        serial_number=serial_number,
        events=events,
        parameters=parse_parameter_list(message.body),
        retry_count=int(retry_text) if retry_text.isdigit() else 0,
        current_time=_text(_find(message.body, "CurrentTime")) or None,
    )


def parse_fault(message: CwmpMessage) -> Optional[Tuple[Optional[int], str]]:
    """Return ``(FaultCode, FaultString)`` for a SOAP/CWMP Fault body, else None."""
    if message.method != "Fault":
        return None
    code_text = message.field_text("FaultCode") or _text(_find(message.body, "faultcode"))
    text = message.field_text("FaultString") or _text(_find(message.body, "faultstring"))
    try:
        code = int(code_text)
    except ValueError:
        code = None
    return code, text or "CPE reported a fault"


def parse_status(message: CwmpMessage) -> Optional[int]:
    text = message.field_text("Status")
    return int(text) if text.isdigit() else None


def parse_transfer_complete(message: CwmpMessage) -> Dict[str, Any]:
    fault = _find(message.body, "FaultStruct")
    code_text = _text(_child(fault, "FaultCode"))
    return {
        "command_key": message.field_text("CommandKey") or None,
        "fault_code": int(code_text) if code_text.isdigit() else 0,
        "fault_string": _text(_child(fault, "FaultString")) or None,
        "start_time": message.field_text("StartTime") or None,
        "complete_time": message.field_text("CompleteTime") or None,
    }
