"""
OLT API endpoints (Huawei, ZTE).
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError

from ponmgr import db
from ponmgr.drivers.records import Vendor
from ponmgr.models import Olt, Onu, ServiceProfile
from ponmgr.services.olt_operations import OltOperations
from ponmgr.services.polling import OltPollService
from ponmgr.validation import (
    optional_int,
    strip_control,
    validate_cli_token,
    validate_int,
    validate_label,
    validate_serial_number,
    validate_vlan_id,
)

olt_bp = Blueprint("olt", __name__)


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true", "yes", "y", "on")


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _parse_run_mode(data):
    """None keeps the configured mode; anything but ``live`` simulates."""
    raw = (data or {}).get("run_mode")
    if raw in (None, ""):
        return None
    run_mode = str(raw).strip().lower()
    return "live" if run_mode == "live" else "simulate"


def _validate_live_confirm(run_mode, data):
    if run_mode != "live":
        return None
    if _as_bool((data or {}).get("live_confirm")):
        return None
    return jsonify({"success": False, "error": "live_confirm is required for live mode"}), 400


def _operations() -> OltOperations:
    return OltOperations.from_app_config(current_app.config)


def _poller() -> OltPollService:
    return OltPollService.from_app_config(current_app.config)


def _not_found(entity: str):
    return jsonify({"success": False, "error": f"{entity} not found"}), 404


def _get_olt(olt_id: str):
    return db.session.get(Olt, olt_id)


def _get_onu(olt_id: str, onu_id: str):
    onu = db.session.get(Onu, onu_id)
    if onu is None or onu.olt_id != olt_id:
        return None
    return onu


def _run_device_action(action, data):
    """Shared wrapper: run_mode parsing, live confirmation and status mapping."""
    run_mode = _parse_run_mode(data)
    guard = _validate_live_confirm(run_mode, data)
    if guard is not None:
        return guard

    operations = _operations()
    try:
        result = action(operations, run_mode)
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    live = run_mode == "live" or (run_mode is None and not operations.simulation)
    payload = result.to_dict()
    payload["run_mode"] = "live" if live else "simulate"
    if result.success:
        return jsonify(payload), 200
    if live:
        current_app.logger.warning("OLT action failed: %s (%s)", result.message, result.error)
        return jsonify(payload), 502
    return jsonify(payload), 400


# OLT inventory


@olt_bp.route("", methods=["GET"])
def list_olts():
    olts = Olt.query.order_by(Olt.name.asc()).all()
    return jsonify({"success": True, "olts": [olt.to_dict() for olt in olts]}), 200


@olt_bp.route("", methods=["POST"])
def create_olt():
    data = _payload()
    try:
        name = validate_label(data.get("name"), "name")
        if not name:
            raise ValueError("name is required")
        vendor = Vendor.parse(data.get("vendor"))
        ip_address = validate_cli_token(data.get("ip_address"), "ip_address")
        if not ip_address:
            raise ValueError("ip_address is required")
        olt = Olt(
            name=name,
            vendor=vendor.value,
            model=validate_label(data.get("model"), "model"),
            ip_address=ip_address,
            location=strip_control(data.get("location")) or None,
            telnet_port=optional_int(data.get("telnet_port"), "telnet_port", 1, 65535) or 23,
            username=validate_cli_token(data.get("username"), "username"),
            password=validate_cli_token(data.get("password"), "password"),
            snmp_community=validate_cli_token(data.get("snmp_community"), "snmp_community") or "public",
            snmp_port=optional_int(data.get("snmp_port"), "snmp_port", 1, 65535) or 161,
            acs_url=validate_cli_token(data.get("acs_url"), "acs_url"),
            acs_username=validate_cli_token(data.get("acs_username"), "acs_username"),
            acs_password=validate_cli_token(data.get("acs_password"), "acs_password"),
            inform_interval=optional_int(data.get("inform_interval"), "inform_interval", 30, 86400),
            auto_provision=_as_bool(data.get("auto_provision")),
            default_profile_id=data.get("default_profile_id") or None,
        )
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    if olt.default_profile_id and db.session.get(ServiceProfile, olt.default_profile_id) is None:
        return jsonify({"success": False, "error": "default_profile_id does not exist"}), 400

    db.session.add(olt)
    db.session.commit()
    return jsonify({"success": True, "olt": olt.to_dict()}), 201


@olt_bp.route("/<olt_id>", methods=["GET"])
def get_olt(olt_id):
    olt = _get_olt(olt_id)
    if olt is None:
        return _not_found("OLT")
    payload = olt.to_dict()
    payload["onus"] = [onu.to_dict() for onu in olt.onus.order_by(Onu.pon_port, Onu.onu_id)]
    return jsonify({"success": True, "olt": payload}), 200


@olt_bp.route("/service-profiles", methods=["GET"])
def list_service_profiles():
    profiles = ServiceProfile.query.order_by(ServiceProfile.name.asc()).all()
    return jsonify({"success": True, "profiles": [profile.to_dict() for profile in profiles]}), 200


@olt_bp.route("/service-profiles", methods=["POST"])
def create_service_profile():
    data = _payload()
    try:
        name = validate_label(data.get("name"), "name")
        if not name:
            raise ValueError("name is required")
        profile = ServiceProfile(
            name=name,
            description=strip_control(data.get("description")) or None,
            download_speed=validate_int(data.get("download_speed"), "download_speed", 1, 100000),
            upload_speed=validate_int(data.get("upload_speed"), "upload_speed", 1, 100000),
            internet_vlan=optional_int(data.get("internet_vlan"), "internet_vlan", 1, 4094),
            iptv_vlan=optional_int(data.get("iptv_vlan"), "iptv_vlan", 1, 4094),
            voip_vlan=optional_int(data.get("voip_vlan"), "voip_vlan", 1, 4094),
            qos_priority=optional_int(data.get("qos_priority"), "qos_priority", 0, 7) or 0,
        )
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400
    db.session.add(profile)
    db.session.commit()
    return jsonify({"success": True, "profile": profile.to_dict()}), 201


# ONUs


@olt_bp.route("/<olt_id>/onus", methods=["POST"])
def register_onu(olt_id):
    olt = _get_olt(olt_id)
    if olt is None:
        return _not_found("OLT")
    data = _payload()
    try:
        onu = Onu(
            olt_id=olt.id,
            serial_number=validate_serial_number(data.get("serial_number")),
            name=validate_label(data.get("name"), "name"),
            pon_port=optional_int(data.get("pon_port"), "pon_port", 0, 255),
            onu_id=optional_int(data.get("onu_id"), "onu_id", 0, 255),
            service_profile_id=data.get("service_profile_id") or None,
        )
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    if onu.service_profile_id and db.session.get(ServiceProfile, onu.service_profile_id) is None:
        return jsonify({"success": False, "error": "service_profile_id does not exist"}), 400

    db.session.add(onu)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "error": "ONU serial or position already registered"}), 409
    return jsonify({"success": True, "onu": onu.to_dict()}), 201


@olt_bp.route("/<olt_id>/onus/<onu_id>/provision", methods=["POST"])
def provision_onu(olt_id, onu_id):
    onu = _get_onu(olt_id, onu_id)
    if onu is None:
        return _not_found("ONU")
    data = _payload()
    response = _run_device_action(lambda ops, mode: ops.provision_onu(onu, data, mode), data)
    if response[1] == 200 and data.get("service_profile_id"):
        onu.service_profile_id = str(data["service_profile_id"])
        db.session.commit()
    return response


@olt_bp.route("/<olt_id>/onus/<onu_id>/bandwidth", methods=["POST"])
def apply_bandwidth(olt_id, onu_id):
    onu = _get_onu(olt_id, onu_id)
    if onu is None:
        return _not_found("ONU")
    data = _payload()
    return _run_device_action(lambda ops, mode: ops.apply_bandwidth(onu, data, mode), data)


@olt_bp.route("/<olt_id>/onus/<onu_id>/deprovision", methods=["POST"])
def deprovision_onu(olt_id, onu_id):
    onu = _get_onu(olt_id, onu_id)
    if onu is None:
        return _not_found("ONU")
    data = _payload()
    response = _run_device_action(lambda ops, mode: ops.deprovision_onu(onu, mode), data)
    if response[1] == 200 and _as_bool(data.get("delete", True)):
        if onu.cwmp_device is not None:
            onu.cwmp_device.onu_id = None
        db.session.delete(onu)
        db.session.commit()
    return response


@olt_bp.route("/<olt_id>/onus/<onu_id>/reboot", methods=["POST"])
def reboot_onu(olt_id, onu_id):
    onu = _get_onu(olt_id, onu_id)
    if onu is None:
        return _not_found("ONU")
    data = _payload()
    return _run_device_action(lambda ops, mode: ops.reboot_onu(onu, mode), data)


@olt_bp.route("/<olt_id>/onus/<onu_id>/tr069", methods=["POST"])
def provision_tr069(olt_id, onu_id):
    onu = _get_onu(olt_id, onu_id)
    if onu is None:
        return _not_found("ONU")
    data = _payload()
    return _run_device_action(lambda ops, mode: ops.provision_tr069(onu, data, mode), data)


# OLT-wide configuration


@olt_bp.route("/<olt_id>/vlans", methods=["POST"])
def create_vlan(olt_id):
    olt = _get_olt(olt_id)
    if olt is None:
        return _not_found("OLT")
    data = _payload()
    return _run_device_action(lambda ops, mode: ops.create_vlan(olt, data, mode), data)


@olt_bp.route("/<olt_id>/vlans/<vlan_id>", methods=["DELETE"])
def delete_vlan(olt_id, vlan_id):
    olt = _get_olt(olt_id)
    if olt is None:
        return _not_found("OLT")
    data = _payload() or dict(request.args)
    try:
        vlan = validate_vlan_id(vlan_id)
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400
    return _run_device_action(lambda ops, mode: ops.delete_vlan(olt, vlan, mode), data)


@olt_bp.route("/<olt_id>/trunk", methods=["POST"])
def configure_trunk(olt_id):
    olt = _get_olt(olt_id)
    if olt is None:
        return _not_found("OLT")
    data = _payload()
    return _run_device_action(lambda ops, mode: ops.configure_trunk(olt, data, mode), data)


@olt_bp.route("/<olt_id>/save", methods=["POST"])
def save_config(olt_id):
    olt = _get_olt(olt_id)
    if olt is None:
        return _not_found("OLT")
    data = _payload()
    return _run_device_action(lambda ops, mode: ops.save_config(olt, mode), data)


# SNMP


@olt_bp.route("/<olt_id>/poll", methods=["POST"])
def poll_olt(olt_id):
    olt = _get_olt(olt_id)
    if olt is None:
        return _not_found("OLT")
    result = _poller().poll(olt)
    return jsonify({"success": True, **result, "olt": olt.to_dict()}), 200


@olt_bp.route("/<olt_id>/discover", methods=["POST"])
def discover_onus(olt_id):
    olt = _get_olt(olt_id)
    if olt is None:
        return _not_found("OLT")
    result = _poller().discover(olt, operations=_operations())
    return jsonify({"success": True, **result}), 200


@olt_bp.route("/<olt_id>/snmp/test", methods=["GET"])
def test_snmp(olt_id):
    olt = _get_olt(olt_id)
    if olt is None:
        return _not_found("OLT")
    reachable = _poller().test_connection(olt)
    return jsonify({"success": reachable, "reachable": reachable, "ip_address": olt.ip_address}), 200
