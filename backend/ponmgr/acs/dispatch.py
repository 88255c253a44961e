"""
Task transitions for the CWMP engine, kept free of HTTP and database code.

``plan_inform_reply`` picks what to send back to an Inform;
``resolve_response`` decides how a CPE reply closes an in-progress task.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Sequence

from ponmgr.validation import optional_int

from . import rpc
from .soap import CwmpMessage, parse_fault, parse_parameter_list, parse_status

TASK_TYPES = (
    "get_parameter_values",
    "set_parameter_values",
    "download",
    "reboot",
    "factory_reset",
)

RESPONSE_TASK_TYPES = {
    "GetParameterValuesResponse": "get_parameter_values",
    "SetParameterValuesResponse": "set_parameter_values",
    "DownloadResponse": "download",
    "RebootResponse": "reboot",
    "FactoryResetResponse": "factory_reset",
}

PENDING = "pending"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
FAILED = "failed"


@dataclass(frozen=True)
class TaskView:
    id: str
    task_type: str
    command_key: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    sequence: int = 0
    acknowledged: bool = False


@dataclass(frozen=True)
class InformReply:
    task: Optional[TaskView]
    response: str
    resend: bool = False


@dataclass(frozen=True)
class TaskOutcome:
    status: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class TaskBuildError(ValueError):
    """A queued task whose parameters cannot be rendered into an RPC."""

    def __init__(self, task: TaskView, message: str):
        super().__init__(message)
        self.task = task


def _fifo_key(task: TaskView):
    return (task.created_at or datetime.min, task.sequence)


def _task_reply(task: TaskView, message: CwmpMessage, resend: bool = False) -> InformReply:
    try:
        body = rpc.build_task_rpc(task.task_type, task.parameters, task.command_key, message.namespace)
    except (TypeError, ValueError) as error:
        raise TaskBuildError(task, str(error)) from error
    return InformReply(task, body, resend)


def plan_inform_reply(
    pending: Sequence[TaskView],
    message: CwmpMessage,
    in_progress: Sequence[TaskView] = (),
) -> InformReply:
    """
    Pick the reply to an Inform.

    An in-progress task the CPE never answered is sent again with the same
    command key. Only when nothing is outstanding does the oldest pending task
    go out. With an empty queue the reply is a plain InformResponse.

    A download acknowledged with status 1 waits for TransferComplete and does
    not hold back the queue.
    """
    unanswered = [task for task in in_progress if not task.acknowledged]
    if unanswered:
        return _task_reply(min(unanswered, key=_fifo_key), message, resend=True)
    if pending:
        return _task_reply(min(pending, key=_fifo_key), message)
    return InformReply(None, rpc.build_inform_response(message.cwmp_id, message.namespace))


def resolve_response(message: CwmpMessage, task: TaskView) -> Optional[TaskOutcome]:
    """Outcome for ``task`` given the CPE's reply, or None to keep waiting."""
    fault = parse_fault(message)
    if fault is not None:
        code, text = fault
        return TaskOutcome(FAILED, {"fault_code": code}, f"{code}: {text}" if code else text)

    expected = RESPONSE_TASK_TYPES.get(message.method or "")
    if expected != task.task_type:
        return None

    if message.method == "GetParameterValuesResponse":
        return TaskOutcome(COMPLETED, {"parameters": parse_parameter_list(message.body)})
    if message.method == "SetParameterValuesResponse":
        return TaskOutcome(COMPLETED, {"status": parse_status(message)})
    if message.method == "DownloadResponse":
        status = parse_status(message)
        # Status 1: transfer still running, TransferComplete follows.
        if status == 1:
            return TaskOutcome(IN_PROGRESS, {"status": status, "acknowledged": True})
        return TaskOutcome(COMPLETED, {"status": status})
    return TaskOutcome(COMPLETED, {})


def resolve_transfer_complete(transfer: Dict[str, Any]) -> TaskOutcome:
    if transfer.get("fault_code"):
        return TaskOutcome(
            FAILED,
            transfer,
            f"{transfer['fault_code']}: {transfer.get('fault_string') or 'transfer failed'}",
        )
    return TaskOutcome(COMPLETED, transfer)


def validate_task(task_type: str, parameters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Normalise operator input for a task; raises ValueError."""
    if task_type not in TASK_TYPES:
        raise ValueError(f"task_type must be one of: {', '.join(TASK_TYPES)}")
    params = dict(parameters or {})

    if task_type == "get_parameter_values":
        names = params.get("parameter_names")
        if isinstance(names, str):
            names = [names]
        if not names or not all(isinstance(name, str) and name.strip() for name in names):
            raise ValueError("parameter_names must be a non-empty list of strings")
        params["parameter_names"] = [name.strip() for name in names]
    elif task_type == "set_parameter_values":
        values = params.get("parameter_values")
        if not isinstance(values, list) or not values:
            raise ValueError("parameter_values must be a non-empty list")
        normalized = []
        for item in values:
            if not isinstance(item, dict) or not str(item.get("name") or "").strip():
                raise ValueError("each parameter value needs a name")
            normalized.append(
                {
                    "name": str(item["name"]).strip(),
                    "value": "" if item.get("value") is None else str(item.get("value")),
                    "type": str(item.get("type") or rpc.DEFAULT_VALUE_TYPE),
                }
            )
        params["parameter_values"] = normalized
    elif task_type == "download":
        if not str(params.get("url") or "").strip():
            raise ValueError("download requires url")
        params.setdefault("file_type", rpc.DEFAULT_FILE_TYPE)
        for key in ("file_size", "delay_seconds"):
            value = optional_int(params.get(key), key, 0, 2**31 - 1)
            if value is None:
                params.pop(key, None)
            else:
                params[key] = value
    return params


def task_views(tasks: Iterable[Any]) -> list[TaskView]:
    return [
        TaskView(
            id=task.id,
            task_type=task.task_type,
            command_key=task.command_key,
            parameters=task.parameters or {},
            created_at=task.created_at,
            sequence=task.sequence or 0,
            acknowledged=bool((task.result or {}).get("acknowledged")),
        )
        for task in tasks
    ]
