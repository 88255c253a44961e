"""
TR-069 operator endpoints: device inventory, task queue and Connection Requests.
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ponmgr import db
from ponmgr.acs.connection_request import ConnectionRequestService
from ponmgr.acs.engine import CwmpEngine
from ponmgr.models import CwmpDevice, CwmpTask, Onu

tr069_bp = Blueprint("tr069", __name__)


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _get_device(device_id: str):
    device = db.session.get(CwmpDevice, device_id)
    if device is None:
        device = CwmpDevice.query.filter_by(device_key=device_id).first()
    return device


def _device_not_found():
    return jsonify({"success": False, "error": "Device not found"}), 404


@tr069_bp.route("/devices", methods=["GET"])
def list_devices():
    query = CwmpDevice.query
    serial = str(request.args.get("serial") or "").strip()
    if serial:
        query = query.filter(CwmpDevice.serial_number.ilike(f"%{serial}%"))
    devices = query.order_by(CwmpDevice.last_inform_time.desc()).all()
    return jsonify({"success": True, "devices": [device.to_dict() for device in devices]}), 200


@tr069_bp.route("/devices/<device_id>", methods=["GET"])
def get_device(device_id):
    device = _get_device(device_id)
    if device is None:
        return _device_not_found()
    payload = device.to_dict()
    payload["parameters"] = device.parameter_cache or {}
    return jsonify({"success": True, "device": payload}), 200


@tr069_bp.route("/devices/<device_id>/tasks", methods=["GET"])
def list_tasks(device_id):
    device = _get_device(device_id)
    if device is None:
        return _device_not_found()
    tasks = CwmpEngine().list_tasks(device)
    status = str(request.args.get("status") or "").strip().lower()
    if status:
        tasks = [task for task in tasks if task.status == status]
    return jsonify({"success": True, "tasks": [task.to_dict() for task in tasks]}), 200


@tr069_bp.route("/devices/<device_id>/tasks", methods=["POST"])
def create_task(device_id):
    device = _get_device(device_id)
    if device is None:
        return _device_not_found()
    data = _payload()
    task_type = str(data.get("task_type") or "").strip()
    try:
        task = CwmpEngine().enqueue_task(device, task_type, data.get("parameters"))
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400
    return jsonify({"success": True, "task": task.to_dict()}), 201


@tr069_bp.route("/tasks/<task_id>", methods=["GET"])
def get_task(task_id):
    task = db.session.get(CwmpTask, task_id)
    if task is None:
        return jsonify({"success": False, "error": "Task not found"}), 404
    return jsonify({"success": True, "task": task.to_dict()}), 200


@tr069_bp.route("/devices/<device_id>/connection-request", methods=["POST"])
def connection_request(device_id):
    device = _get_device(device_id)
    if device is None:
        return _device_not_found()
    data = _payload()
    username = data.get("username") or current_app.config.get("ACS_CONNECTION_REQUEST_USERNAME") or ""
    password = data.get("password") or current_app.config.get("ACS_CONNECTION_REQUEST_PASSWORD") or ""
    service = ConnectionRequestService.from_app_config(current_app.config)
    result, status = service.send(device.connection_request_url, str(username), str(password))
    return jsonify(result), status


@tr069_bp.route("/devices/<device_id>/link", methods=["POST"])
def link_device(device_id):
    device = _get_device(device_id)
    if device is None:
        return _device_not_found()
    data = _payload()
    if data.get("onu_id"):
        onu = db.session.get(Onu, str(data["onu_id"]))
    else:
        serial = str(data.get("serial_number") or device.serial_number or "").strip().upper()
        onu = Onu.query.filter_by(serial_number=serial).first() if serial else None
    if onu is None:
        return jsonify({"success": False, "error": "ONU not found"}), 404
    CwmpEngine().link_onu(device, onu)
    return jsonify({"success": True, "device": device.to_dict()}), 200
