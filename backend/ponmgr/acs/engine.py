"""
CWMP engine: device upserts, task queue and the request/response cycle.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ponmgr import db
from ponmgr.drivers.errors import ProtocolError
from ponmgr.models import CwmpDevice, CwmpTask, Onu

from . import rpc
from .dispatch import (
    COMPLETED,
    FAILED,
    IN_PROGRESS,
    PENDING,
    RESPONSE_TASK_TYPES,
    TaskBuildError,
    TaskOutcome,
    task_views,
    plan_inform_reply,
    resolve_response,
    resolve_transfer_complete,
    validate_task,
)
from .soap import CwmpMessage, InformEvent, parse_envelope, parse_inform, parse_transfer_complete

logger = logging.getLogger(__name__)


@dataclass
class CwmpReply:
    status: int
    body: str = ""

    @property
    def content_type(self) -> str:
        return "text/xml; charset=utf-8"


class CwmpEngine:
    def handle(self, raw: bytes) -> CwmpReply:
        if not raw or not raw.strip():
            # Empty POST: the CPE has nothing more to say this session.
            return CwmpReply(204)

        try:
            message = parse_envelope(raw)
        except ProtocolError as error:
            logger.warning("Rejecting CWMP request: %s", error.message)
            return CwmpReply(200, rpc.build_soap_fault("Client", error.message))

        logger.info("CWMP %s (id=%s)", message.method or "<empty body>", message.cwmp_id)
        try:
            if message.method == "Inform":
                return CwmpReply(200, self.handle_inform(message))
            if message.method == "TransferComplete":
                return CwmpReply(200, self.handle_transfer_complete(message))
            if message.method in RESPONSE_TASK_TYPES or message.method in ("Fault", "GetRPCMethodsResponse"):
                self.handle_response(message)
        except ProtocolError as error:
            db.session.rollback()
            logger.warning("CWMP %s rejected: %s", message.method, error.message)
            return CwmpReply(200, rpc.build_soap_fault("Client", error.message))

        return CwmpReply(200, rpc.build_empty_response(message.cwmp_id, message.namespace))

    # Inform

    def find_device(self, device_key: str) -> Optional[CwmpDevice]:
        return CwmpDevice.query.filter_by(device_key=device_key).first()

    def _create_device(self, inform: InformEvent) -> CwmpDevice:
        device = CwmpDevice(
            device_key=inform.device_key,
            oui=inform.oui,
            product_class=inform.product_class,
            serial_number=inform.serial_number,
            parameter_cache={},
        )
        db.session.add(device)
        try:
            db.session.flush()
        except IntegrityError:
            # A concurrent first Inform from the same CPE inserted it first.
            db.session.rollback()
            logger.info("CWMP device %s was created concurrently; updating it", inform.device_key)
            return CwmpDevice.query.filter_by(device_key=inform.device_key).one()
        logger.info("New CWMP device %s", inform.device_key)
        return device

    def upsert_device(self, inform: InformEvent) -> CwmpDevice:
        now = datetime.utcnow()
        device = self.find_device(inform.device_key)
        if device is None:
            device = self._create_device(inform)

        device.manufacturer = inform.manufacturer or device.manufacturer
        device.model_name = inform.product_class or device.model_name
        device.software_version = inform.software_version or device.software_version
        device.hardware_version = inform.hardware_version or device.hardware_version
        device.connection_request_url = inform.connection_request_url or device.connection_request_url
        device.ip_address = inform.external_ip or device.ip_address
        device.last_inform_time = now
        device.last_connection_time = now
        device.last_events = inform.events
        device.is_online = True

        cache = dict(device.parameter_cache or {})
        cache.update(inform.parameters)
        device.parameter_cache = cache

        if device.onu_id is None:
            onu = Onu.query.filter_by(serial_number=inform.serial_number.upper()).first()
            if onu is not None:
                device.onu_id = onu.id
        db.session.flush()
        return device

    def _fail_unbuildable(self, error: TaskBuildError) -> None:
        logger.warning("Task %s cannot be sent: %s", error.task.command_key, error)
        CwmpTask.query.filter_by(id=error.task.id).update(
            {"status": FAILED, "error": f"cannot build RPC: {error}", "completed_at": datetime.utcnow()},
            synchronize_session=False,
        )

    def claim_next_task(self, device: CwmpDevice, message: CwmpMessage):
        """Re-send an unanswered task, else move the oldest pending one to in_progress."""
        candidates = task_views(
            CwmpTask.query.filter_by(device_id=device.id, status=PENDING).all()
        )
        outstanding = task_views(
            CwmpTask.query.filter_by(device_id=device.id, status=IN_PROGRESS).all()
        )
        while True:
            try:
                reply = plan_inform_reply(candidates, message, outstanding)
            except TaskBuildError as error:
                self._fail_unbuildable(error)
                candidates = [task for task in candidates if task.id != error.task.id]
                outstanding = [task for task in outstanding if task.id != error.task.id]
                continue
            if reply.task is None or reply.resend:
                return reply
            claimed = (
                CwmpTask.query.filter_by(id=reply.task.id, status=PENDING)
                .update({"status": IN_PROGRESS, "started_at": datetime.utcnow()}, synchronize_session=False)
            )
            if claimed == 1:
                return reply
            logger.info("Task %s was claimed concurrently; trying next", reply.task.id)
            candidates = [task for task in candidates if task.id != reply.task.id]

    def handle_inform(self, message: CwmpMessage) -> str:
        inform = parse_inform(message)
        device = self.upsert_device(inform)
        reply = self.claim_next_task(device, message)
        db.session.commit()

        if reply.task is not None:
            logger.info(
                "%s %s (%s) to %s",
                "Re-sending" if reply.resend else "Dispatching",
                reply.task.task_type,
                reply.task.command_key,
                device.device_key,
            )
        return reply.response

    # Responses

    def _task_for(self, command_key: Optional[str]) -> Optional[CwmpTask]:
        if not command_key:
            return None
        return CwmpTask.query.filter_by(command_key=command_key, status=IN_PROGRESS).first()

    def _close(self, task: CwmpTask, outcome: TaskOutcome) -> None:
        task.status = outcome.status
        task.result = outcome.result
        task.error = outcome.error
        if outcome.status != IN_PROGRESS:
            task.completed_at = datetime.utcnow()
        if outcome.status == COMPLETED and task.task_type == "get_parameter_values":
            device = task.device
            cache = dict(device.parameter_cache or {})
            cache.update((outcome.result or {}).get("parameters") or {})
            device.parameter_cache = cache
        logger.info("Task %s %s", task.command_key, outcome.status)

    def handle_response(self, message: CwmpMessage) -> None:
        task = self._task_for(message.cwmp_id)
        if task is None:
            logger.info("CWMP %s with id %s matches no in-progress task", message.method, message.cwmp_id)
            return
        (view,) = task_views([task])
        outcome = resolve_response(message, view)
        if outcome is None:
            return
        self._close(task, outcome)
        db.session.commit()

    def handle_transfer_complete(self, message: CwmpMessage) -> str:
        transfer = parse_transfer_complete(message)
        task = self._task_for(transfer["command_key"])
        if task is not None:
            self._close(task, resolve_transfer_complete(transfer))
            db.session.commit()
        else:
            logger.info("TransferComplete for unknown command key %s", transfer["command_key"])
        return rpc.build_transfer_complete_response(message.cwmp_id, message.namespace)

    # Queue management

    def enqueue_task(self, device: CwmpDevice, task_type: str, parameters: Optional[Dict[str, Any]] = None) -> CwmpTask:
        params = validate_task(task_type, parameters)
        last = (
            db.session.query(func.max(CwmpTask.sequence)).filter(CwmpTask.device_id == device.id).scalar()
        )
        task = CwmpTask(
            device_id=device.id,
            task_type=task_type,
            parameters=params,
            command_key=rpc.generate_cwmp_id(),
            status=PENDING,
            sequence=(last or 0) + 1,
        )
        db.session.add(task)
        db.session.commit()
        logger.info("Queued %s for %s (%s)", task_type, device.device_key, task.command_key)
        return task

    def list_tasks(self, device: CwmpDevice) -> List[CwmpTask]:
        return device.tasks.order_by(CwmpTask.created_at.desc(), CwmpTask.sequence.desc()).all()

    def link_onu(self, device: CwmpDevice, onu: Onu) -> CwmpDevice:
        device.onu_id = onu.id
        db.session.commit()
        return device
