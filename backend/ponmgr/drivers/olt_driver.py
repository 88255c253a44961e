"""
OLT command driver.

``OltDriver`` composes a vendor catalog with an executor strategy. The
simulated executor only logs; the Telnet executor opens one session per
operation and always closes it.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol

from .commands import CommandCatalog, get_catalog
from .errors import DriverError
from .records import (
    CommandResult,
    OltRecord,
    OnuProvisioning,
    OnuRecord,
    Tr069Provisioning,
    TrunkConfig,
    VlanSpec,
)
from .telnet_session import PROMPTS_BY_VENDOR, DEFAULT_PROMPTS, TelnetSession

logger = logging.getLogger(__name__)


class CommandExecutor(Protocol):
    def run(self, olt: OltRecord, commands: List[str], catalog: CommandCatalog) -> CommandResult: ...


class SimulatedExecutor:
    """Logs the would-be commands and reports success."""

    def run(self, olt: OltRecord, commands: List[str], catalog: CommandCatalog) -> CommandResult:
        logger.info(
            "[%s] simulation: %d commands for %s",
            olt.vendor.label,
            len(commands),
            olt.ip_address,
        )
        for index, command in enumerate(commands, start=1):
            logger.info("  %02d> %s", index, command)
        return CommandResult(
            success=True,
            message=f"Simulated execution of {len(commands)} commands on {olt.name} ({olt.ip_address})",
            commands=list(commands),
        )


class TelnetExecutor:
    def __init__(
        self,
        timeout: Optional[float] = None,
        command_delay: float = 0.5,
        save_timeout: float = 30.0,
        session_factory: Optional[Callable[..., TelnetSession]] = None,
    ):
        self.timeout = timeout
        self.command_delay = command_delay
        self.save_timeout = save_timeout
        self.session_factory = session_factory or TelnetSession

    @classmethod
    def from_app_config(cls, app_config) -> "TelnetExecutor":
        def _float(key, default, low, high):
            try:
                value = float(app_config.get(key, default))
            except (TypeError, ValueError):
                value = default
            return max(low, min(value, high))

        return cls(
            timeout=_float("TELNET_TIMEOUT_SECONDS", 15.0, 2.0, 120.0),
            command_delay=_float("TELNET_COMMAND_DELAY_SECONDS", 0.5, 0.0, 5.0),
            save_timeout=_float("TELNET_SAVE_TIMEOUT_SECONDS", 30.0, 5.0, 300.0),
        )

    def _open_session(self, olt: OltRecord) -> TelnetSession:
        return self.session_factory(
            host=olt.ip_address,
            port=olt.cli_port,
            username=olt.username or "",
            password=olt.password or "",
            prompts=PROMPTS_BY_VENDOR.get(olt.vendor, DEFAULT_PROMPTS),
            timeout=self.timeout,
        )

    def run(self, olt: OltRecord, commands: List[str], catalog: CommandCatalog) -> CommandResult:
        session = self._open_session(olt)
        try:
            opened = session.open()
            if not opened.success:
                return CommandResult(
                    success=False,
                    message=f"Failed to connect to OLT {olt.name} ({olt.ip_address})",
                    commands=list(commands),
                    error=opened.error_message,
                    error_kind=opened.error.kind if opened.error else None,
                )

            logger.info(
                "[%s] executing %d commands on %s", olt.vendor.label, len(commands), olt.ip_address
            )
            timeouts = {command: self.save_timeout for command in catalog.save_commands}
            results = session.execute_commands(commands, delay=self.command_delay, timeouts=timeouts)
            outputs = [f"{result.command}: {result.output}" for result in results]

            failed = next((result for result in results if not result.success), None)
            if failed is not None:
                return CommandResult(
                    success=False,
                    message=f"Command failed: {failed.command}",
                    commands=list(commands),
                    error=failed.error_message,
                    error_kind=failed.error.kind if failed.error else None,
                    outputs=outputs,
                )
            return CommandResult(
                success=True,
                message=f"Successfully executed {len(commands)} commands on {olt.name} ({olt.ip_address})",
                commands=list(commands),
                outputs=outputs,
            )
        except DriverError as error:
            return CommandResult(
                success=False,
                message=f"Error executing commands on {olt.name}",
                commands=list(commands),
                error=error.message,
                error_kind=error.kind,
            )
        except Exception as error:
            logger.exception("Unexpected failure executing commands on %s", olt.ip_address)
            return CommandResult(
                success=False,
                message=f"Error executing commands on {olt.name}",
                commands=list(commands),
                error=str(error),
            )
        finally:
            session.disconnect()


class OltDriver:
    def __init__(self, olt: OltRecord, catalog: CommandCatalog, executor: CommandExecutor):
        self.olt = olt
        self.catalog = catalog
        self.executor = executor

    @property
    def vendor(self):
        return self.catalog.vendor

    def execute_commands(self, commands: List[str]) -> CommandResult:
        lines = [str(line).strip() for line in commands if str(line).strip()]
        if not lines:
            return CommandResult(success=False, message="No commands to execute", error="No commands to execute")
        return self.executor.run(self.olt, lines, self.catalog)

    def provision_onu(self, config: OnuProvisioning) -> CommandResult:
        commands = [
            *self.catalog.build_add_onu(config),
            *self.catalog.build_service_profile(config),
            *self.catalog.build_vlan(config),
        ]
        return self.execute_commands(commands)

    def deprovision_onu(self, onu: OnuRecord) -> CommandResult:
        return self.execute_commands(self.catalog.build_remove_onu(onu))

    def apply_bandwidth(self, config: OnuProvisioning) -> CommandResult:
        return self.execute_commands(self.catalog.build_bandwidth(config))

    def provision_tr069(self, config: Tr069Provisioning) -> CommandResult:
        return self.execute_commands(self.catalog.build_tr069(config))

    def reboot_onu(self, onu: OnuRecord) -> CommandResult:
        return self.execute_commands(self.catalog.build_reboot_onu(onu))

    def create_vlan(self, vlan: VlanSpec) -> CommandResult:
        return self.execute_commands(self.catalog.build_create_vlan(vlan))

    def delete_vlan(self, vlan_id: int) -> CommandResult:
        return self.execute_commands(self.catalog.build_delete_vlan(vlan_id))

    def save_config(self) -> CommandResult:
        return self.execute_commands(self.catalog.build_save_config())

    def configure_vlan_trunk(self, config: TrunkConfig) -> CommandResult:
        return self.execute_commands(self.catalog.build_trunk_vlan(config))


def create_olt_driver(
    olt: OltRecord,
    simulation: bool = True,
    executor: Optional[CommandExecutor] = None,
) -> OltDriver:
    """Build a driver for ``olt.vendor``; raises ValueError for unknown vendors."""
    catalog = get_catalog(olt.vendor)
    if executor is None:
        executor = SimulatedExecutor() if simulation else TelnetExecutor()
    return OltDriver(olt, catalog, executor)
