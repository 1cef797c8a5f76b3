"""
Remote Executor - PowerShell over an open WinRM shell.

Sends rendered script text through a SessionHandle and hands back the raw
outcome. Exit status and stderr are not interpreted here; a script that
fails still produces an ExecutionOutcome. Only transport trouble and
cancellation raise.

The WinRM round trip is blocking, so it runs in a one-shot worker thread
while the caller waits on the ExecutionContext.
"""

from __future__ import annotations

import base64
import concurrent.futures
import logging
import re
import threading
import xml.etree.ElementTree as ET
from typing import Any, Optional

from hypervvm.domain.context import ExecutionContext
from hypervvm.domain.errors import TransportError, TransportErrorKind
from hypervvm.domain.models import ExecutionOutcome

from .session import TRANSPORT_ERRORS, SessionHandle, translate_transport_error

logger = logging.getLogger(__name__)

POLL_INTERVAL_SEC = 0.2
# How long a cancelled call waits for its worker before leaving it behind
ABORT_GRACE_SEC = 5.0
CLIXML_PREFIX = "#< CLIXML"
# CLIXML stream records that carry diagnostic text
CLIXML_TEXT_STREAMS = {"error": "", "warning": "WARNING: "}
_CLIXML_ESCAPE = re.compile(r"_x([0-9A-Fa-f]{4})_")


def minify_script(script: str) -> str:
    """
    Minify PowerShell script to reduce size for WinRM transport.

    Removes comments and blank lines; keeps statement order intact.
    """
    minified = []
    in_block_comment = False

    for line in script.splitlines():
        line = line.strip()

        # Handle block comments <# ... #>
        if line.startswith("<#"):
            in_block_comment = True

        if in_block_comment:
            if line.endswith("#>"):
                in_block_comment = False
            continue

        if not line or line.startswith("#"):
            continue

        minified.append(line)

    return "\n".join(minified)


def encode_powershell(script: str) -> str:
    """Encode a script for ``powershell -EncodedCommand`` (UTF-16LE base64)."""
    return base64.b64encode(script.encode("utf-16-le")).decode("ascii")


def _decode(data: Any) -> str:
    """Decode WinRM output bytes, dropping a UTF-8 BOM if present."""
    if data is None:
        return ""
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    return data.lstrip("\ufeff")


def clean_clixml(stderr: str) -> str:
    """
    Flatten a PowerShell CLIXML error stream into plain text.

    Only error and warning records are kept; progress records are noise.
    Non-CLIXML text is returned unchanged.
    """
    text = stderr.strip()
    if not text.startswith(CLIXML_PREFIX):
        return stderr

    body = text[len(CLIXML_PREFIX):].strip()
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        logger.debug("Unparseable CLIXML on stderr: %s", e)
        return stderr

    namespace = root.tag.split("}")[0] + "}" if root.tag.startswith("{") else ""
    lines = []
    for node in root.iter(f"{namespace}S"):
        prefix = CLIXML_TEXT_STREAMS.get(node.attrib.get("S", "").lower())
        if prefix is None:
            continue
        message = _CLIXML_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), node.text or "")
        lines.append(prefix + message)

    return "".join(lines).strip()


class _RemoteCommand:
    """
    One PowerShell invocation inside an open shell.

    ``abort()`` may run on the caller's thread while ``run()`` is still in
    progress on the worker. The lock orders the two: once aborted, the
    command is never dispatched, and a command whose dispatch was already
    in flight is terminated as soon as its id is known.
    """

    def __init__(self, handle: SessionHandle, encoded_script: str) -> None:
        self.handle = handle
        self.encoded_script = encoded_script
        self.command_id: Optional[str] = None
        self._lock = threading.Lock()
        self._aborted = False

    @property
    def aborted(self) -> bool:
        with self._lock:
            return self._aborted

    def run(self) -> Optional[tuple[Any, Any, int]]:
        """Dispatch the command and block until it finishes. None once aborted."""
        protocol = self.handle.protocol
        if self.aborted:
            logger.debug("Command for %s aborted before dispatch", self.handle.endpoint)
            return None

        command_id = protocol.run_command(
            self.handle.shell_id,
            "powershell",
            ["-NoProfile", "-NonInteractive", "-EncodedCommand", self.encoded_script],
        )
        with self._lock:
            self.command_id = command_id
            aborted = self._aborted
        if aborted:
            # abort() ran while the dispatch was in flight and had no id to signal
            self._terminate(command_id)
            return None

        stdout, stderr, status = protocol.get_command_output(self.handle.shell_id, command_id)
        if not self.aborted:
            protocol.cleanup_command(self.handle.shell_id, command_id)
        return stdout, stderr, status

    def abort(self) -> None:
        """Stop any further dispatch and terminate the remote process if it started."""
        with self._lock:
            self._aborted = True
            command_id = self.command_id
        if command_id is not None:
            self._terminate(command_id)

    def _terminate(self, command_id: str) -> None:
        try:
            self.handle.protocol.cleanup_command(self.handle.shell_id, command_id)
        except TRANSPORT_ERRORS as e:
            logger.debug("Terminate signal for command %s failed: %s", command_id, e)


def _log_late_failure(future: concurrent.futures.Future) -> None:
    """Done-callback for a worker left running after its call was cancelled."""
    error = future.exception()
    if error is not None:
        logger.warning("Abandoned remote command failed after cancellation: %s: %s", type(error).__name__, error)


class RemoteExecutor:
    """
    Executes script text on the remote host.

    Stateless apart from its settings; one instance may serve many
    concurrent calls as long as each call brings its own handle.
    """

    def __init__(
        self,
        poll_interval: float = POLL_INTERVAL_SEC,
        minify: bool = True,
        abort_grace: float = ABORT_GRACE_SEC,
    ) -> None:
        """
        Initialize the executor.

        Args:
            poll_interval: Seconds between cancellation checks
            minify: Strip comments/blank lines before sending
            abort_grace: Seconds a cancelled call waits for its worker to
                         wind down before the handle may be closed
        """
        self.poll_interval = poll_interval
        self.minify = minify
        self.abort_grace = abort_grace

    def execute(self, ctx: ExecutionContext, handle: SessionHandle, script: str) -> ExecutionOutcome:
        """
        Run ``script`` through ``handle`` within the budget of ``ctx``.

        Args:
            ctx: Deadline and cancellation signal
            handle: Open session
            script: PowerShell script text

        Returns:
            ExecutionOutcome for any completed round trip

        Raises:
            TransportError: CANCELLED when ctx ends first, CONNECTION_LOST or
                            PROTOCOL when the transport fails
        """
        if ctx.done:
            raise TransportError(TransportErrorKind.CANCELLED, f"not dispatched: {ctx.describe()}")
        if handle.closed:
            raise TransportError(TransportErrorKind.PROTOCOL, "session handle is already closed")

        payload = minify_script(script) if self.minify else script
        command = _RemoteCommand(handle, encode_powershell(payload))
        logger.debug("Dispatching %d-byte script to %s", len(payload), handle.endpoint)

        pool = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="winrm-exec")
        future = pool.submit(command.run)
        try:
            while not future.done():
                if ctx.wait(self.poll_interval) and not future.done():
                    self._abandon(command, future, handle)
                    raise TransportError(TransportErrorKind.CANCELLED, ctx.describe())

            stdout, stderr, status = future.result()
        except TRANSPORT_ERRORS as e:
            raise translate_transport_error(e, f"remote execution on {handle.endpoint}", in_flight=True) from e
        finally:
            # only a worker stuck past the grace period is left behind
            pool.shutdown(wait=future.done(), cancel_futures=True)

        outcome = ExecutionOutcome(
            stdout=_decode(stdout),
            stderr=clean_clixml(_decode(stderr)),
            exit_status=int(status),
        )
        logger.debug("Remote command on %s exited with %d", handle.endpoint, outcome.exit_status)
        return outcome

    def _abandon(self, command: _RemoteCommand, future: concurrent.futures.Future, handle: SessionHandle) -> None:
        """Abort the command and give the worker a bounded time to finish."""
        command.abort()
        done, _ = concurrent.futures.wait([future], timeout=self.abort_grace)
        if not done:
            logger.warning(
                "Remote command on %s still running %.1fs after cancellation; leaving it behind",
                handle.endpoint,
                self.abort_grace,
            )
            future.add_done_callback(_log_late_failure)
        elif future.exception() is not None:
            logger.debug("Cancelled command on %s ended with %s", handle.endpoint, future.exception())
        logger.debug("Remote command on %s abandoned", handle.endpoint)
