"""
Telnet session driver for OLT command lines.

One ``TelnetSession`` owns one connection. Prompt detection is driven by
``PromptPatterns`` so vendor differences stay in data, not in the session.
"""
from __future__ import annotations

import enum
import logging
import re
import telnetlib
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Mapping, Optional, Pattern, Sequence

from .errors import (
    AuthenticationError,
    CommandError,
    DeviceConnectionError,
    DeviceTimeoutError,
    DriverError,
)
from .records import Vendor

logger = logging.getLogger(__name__)

LOGIN_PROMPT = re.compile(rb"[Uu]ser\s*name\s*[:>]|[Ll]ogin\s*[:>]|[Uu]sername\s*[:>]")
PASSWORD_PROMPT = re.compile(rb"[Pp]assword\s*[:>]")
CLI_ERROR = re.compile(
    rb"%\s*(?:Unknown command|Invalid input|Incomplete command|Ambiguous command)|Failure:"
)
PAGER = re.compile(rb"-{2,4}\s*More")
CONFIRM = re.compile(rb"\}\s*:\s*$|\(y/n\)(?:\[[yn]\])?\s*:?\s*$")


@dataclass(frozen=True)
class PromptPatterns:
    shell: Pattern[bytes]
    login: Pattern[bytes]
    password: Pattern[bytes]
    failed_login: Pattern[bytes]
    command_error: Pattern[bytes] = CLI_ERROR
    pager: Pattern[bytes] = PAGER
    confirm: Pattern[bytes] = CONFIRM
    timeout: float = 10.0


DEFAULT_PROMPTS = PromptPatterns(
    shell=re.compile(rb"[>#]\s*$"),
    login=re.compile(rb"[Uu]sername[:\s]*$"),
    password=re.compile(rb"[Pp]assword[:\s]*$"),
    failed_login=re.compile(rb"incorrect|invalid|failed|denied", re.IGNORECASE),
)

HUAWEI_PROMPTS = PromptPatterns(
    shell=re.compile(rb"[<>#]\s*$"),
    login=LOGIN_PROMPT,
    password=PASSWORD_PROMPT,
    failed_login=re.compile(rb"incorrect|invalid|failed|denied|error", re.IGNORECASE),
    timeout=15.0,
)

ZTE_PROMPTS = PromptPatterns(
    shell=re.compile(rb"[#>]\s*$"),
    login=LOGIN_PROMPT,
    password=PASSWORD_PROMPT,
    failed_login=re.compile(rb"incorrect|invalid|failed|denied|error", re.IGNORECASE),
    timeout=15.0,
)

PROMPTS_BY_VENDOR = {
    Vendor.HUAWEI: HUAWEI_PROMPTS,
    Vendor.ZTE: ZTE_PROMPTS,
}


class SessionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    EXECUTING = "executing"


@dataclass
class TelnetResult:
    success: bool
    output: str = ""
    command: Optional[str] = None
    error: Optional[DriverError] = field(default=None, repr=False)

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None


class TelnetSession:
    line_ending = b"\r\n"

    def __init__(
        self,
        host: str,
        port: int = 23,
        username: str = "",
        password: str = "",
        prompts: PromptPatterns = DEFAULT_PROMPTS,
        timeout: Optional[float] = None,
        telnet_factory: Optional[Callable[..., telnetlib.Telnet]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.prompts = prompts
        self.timeout = float(timeout or prompts.timeout)
        self._telnet_factory = telnet_factory or telnetlib.Telnet
        self._sleep = sleep
        self._conn = None
        self.state = SessionState.DISCONNECTED

    def __enter__(self) -> "TelnetSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None and self.state is not SessionState.DISCONNECTED

    def connect(self) -> TelnetResult:
        if self.is_connected:
            return TelnetResult(True, "Already connected")

        self.state = SessionState.CONNECTING
        try:
            self._conn = self._telnet_factory(self.host, self.port, self.timeout)
        except TimeoutError:
            self._drop()
            error = DeviceTimeoutError(
                f"Timed out connecting to {self.host}:{self.port}", host=self.host
            )
            logger.warning("Telnet connect timeout: %s", error.message)
            return TelnetResult(False, error=error)
        except OSError as exc:
            self._drop()
            error = DeviceConnectionError(
                f"Connection to {self.host}:{self.port} failed: {exc}", host=self.host
            )
            logger.warning("Telnet connect failed: %s", error.message)
            return TelnetResult(False, error=error)

        self.state = SessionState.AUTHENTICATING
        logger.info("Telnet connected to %s:%s", self.host, self.port)
        return TelnetResult(True, "Connected successfully")

    def login(self, username: Optional[str] = None, password: Optional[str] = None) -> TelnetResult:
        if self._conn is None or self.state is not SessionState.AUTHENTICATING:
            return TelnetResult(False, error=DeviceConnectionError("Not connected", host=self.host))

        username = self.username if username is None else username
        password = self.password if password is None else password
        patterns = [
            self.prompts.failed_login,
            self.prompts.login,
            self.prompts.password,
            self.prompts.shell,
        ]
        transcript: List[bytes] = []
        sent_username = sent_password = False

        try:
            while True:
                index, text = self._expect(patterns, self.timeout)
                transcript.append(text)
                if index == 0:
                    raise AuthenticationError(f"Login rejected by {self.host}", host=self.host)
                if index == 1:
                    if sent_username:
                        raise AuthenticationError(
                            f"Login prompt repeated by {self.host}; credentials rejected",
                            host=self.host,
                        )
                    self._write(username)
                    sent_username = True
                elif index == 2:
                    if sent_password:
                        raise AuthenticationError(
                            f"Password prompt repeated by {self.host}; credentials rejected",
                            host=self.host,
                        )
                    self._write(password)
                    sent_password = True
                else:
                    break
        except AuthenticationError as error:
            logger.warning("Telnet login failed for %s@%s", username, self.host)
            self.disconnect()
            return TelnetResult(False, self._decode(b"".join(transcript)), error=error)
        except DeviceTimeoutError as error:
            logger.warning("Telnet login timed out on %s", self.host)
            self.disconnect()
            return TelnetResult(False, self._decode(b"".join(transcript)), error=error)
        except (EOFError, OSError) as exc:
            self._drop()
            return TelnetResult(
                False,
                error=DeviceConnectionError(f"Connection lost during login: {exc}", host=self.host),
            )

        self.state = SessionState.READY
        logger.info("Telnet logged in to %s as %s", self.host, username)
        return TelnetResult(True, self._decode(b"".join(transcript)) or "Login successful")

    def open(self) -> TelnetResult:
        """Connect and authenticate in one step."""
        result = self.connect()
        if not result.success:
            return result
        return self.login()

    def execute_command(self, command: str, timeout: Optional[float] = None) -> TelnetResult:
        if self._conn is None or self.state is not SessionState.READY:
            return TelnetResult(
                False, command=command, error=DeviceConnectionError("Not connected", host=self.host)
            )

        timeout = float(timeout or self.timeout)
        deadline = time.monotonic() + timeout
        patterns = [self.prompts.shell, self.prompts.pager, self.prompts.confirm]
        chunks: List[bytes] = []

        self.state = SessionState.EXECUTING
        logger.debug("Telnet %s> %s", self.host, command)
        try:
            self._write(command)
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise DeviceTimeoutError(
                        f"Timed out after {timeout:g}s waiting for prompt: {command}", host=self.host
                    )
                index, text = self._expect(patterns, remaining)
                chunks.append(text)
                if index != 1:
                    break
                self._conn.write(b" ")
        except DeviceTimeoutError as error:
            self.state = SessionState.READY
            logger.warning("Telnet command timed out on %s: %s", self.host, command)
            return TelnetResult(False, self._decode(b"".join(chunks)), command=command, error=error)
        except (EOFError, OSError) as exc:
            self._drop()
            return TelnetResult(
                False,
                command=command,
                error=DeviceConnectionError(f"Connection lost: {exc}", host=self.host),
            )

        self.state = SessionState.READY
        raw = b"".join(chunks)
        output = self._clean_output(command, raw)
        if self.prompts.command_error.search(raw):
            logger.warning("Telnet command rejected by %s: %s", self.host, command)
            return TelnetResult(
                False,
                output,
                command=command,
                error=CommandError(
                    f"Command rejected: {command}", host=self.host, command=command
                ),
            )
        return TelnetResult(True, output, command=command)

    def execute_commands(
        self,
        commands: Iterable[str],
        delay: float = 0.5,
        timeouts: Optional[Mapping[str, float]] = None,
    ) -> List[TelnetResult]:
        """Run commands in order and stop at the first failure."""
        results: List[TelnetResult] = []
        timeouts = timeouts or {}
        for command in commands:
            result = self.execute_command(command, timeouts.get(command))
            results.append(result)
            if not result.success:
                logger.warning("Stopping command sequence on %s at: %s", self.host, command)
                break
            if delay > 0:
                self._sleep(delay)
        return results

    def disconnect(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
                logger.info("Telnet disconnected from %s", self.host)
            except (OSError, EOFError):
                logger.debug("Error while closing telnet to %s", self.host, exc_info=True)
        self._drop()

    def _drop(self) -> None:
        self._conn = None
        self.state = SessionState.DISCONNECTED

    def _write(self, line: str) -> None:
        self._conn.write(line.encode("utf-8") + self.line_ending)

    def _expect(self, patterns: Sequence[Pattern[bytes]], timeout: float) -> tuple[int, bytes]:
        index, _match, text = self._conn.expect(list(patterns), timeout)
        if index < 0:
            raise DeviceTimeoutError(
                f"Timed out after {timeout:g}s waiting for prompt", host=self.host
            )
        return index, text

    @staticmethod
    def _decode(raw: bytes) -> str:
        return raw.decode("utf-8", errors="ignore").strip()

    def _clean_output(self, command: str, raw: bytes) -> str:
        lines = raw.decode("utf-8", errors="ignore").replace("\r", "").split("\n")
        if lines and lines[0].strip() == command.strip():
            lines = lines[1:]
        if lines:
            lines = lines[:-1]
        kept = [line for line in lines if not self.prompts.pager.search(line.encode("utf-8"))]
        return "\n".join(kept).strip()
