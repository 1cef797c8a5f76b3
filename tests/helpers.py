"""
Test helpers: a scripted stand-in for the pywinrm Protocol and host records.
"""

import json
import threading
import time

from winrm.exceptions import WinRMTransportError

VM_ID = "5f0c7e4e-3a57-4d38-9d0b-2f1f3c1e9a11"


class FakeProtocol:
    """
    Scripted pywinrm Protocol.

    Each run_command pops the next (stdout, stderr, status) tuple from
    ``responses``; an Exception instance in that slot is raised instead.
    ``dispatch_block`` holds run_command and ``block`` holds
    get_command_output until set. A cleanup_command for a command still
    waiting on ``block`` ends that wait, as a terminate signal does.
    """

    def __init__(self, responses=None, open_error=None, block=None, dispatch_block=None, **options):
        self.options = options
        self.responses = list(responses or [])
        self.open_error = open_error
        self.block = block
        self.commands = []
        self.cleaned = []
        self.closed_shells = []
        self.dispatch_block = dispatch_block
        self.outputs = []
        self.transport = None
        self._terminated = threading.Event()

    def open_shell(self, codepage=None):
        if self.open_error is not None:
            raise self.open_error
        self.codepage = codepage
        return "shell-1"

    def run_command(self, shell_id, command, arguments=()):
        if self.dispatch_block is not None:
            self.dispatch_block.wait(5)
        self.commands.append((shell_id, command, list(arguments)))
        return f"cmd-{len(self.commands)}"

    def get_command_output(self, shell_id, command_id):
        self.outputs.append(command_id)
        if self.block is not None:
            deadline = time.monotonic() + 5
            while not (self.block.is_set() or self._terminated.is_set()) and time.monotonic() < deadline:
                time.sleep(0.01)
            if self._terminated.is_set():
                raise WinRMTransportError("http", 500, "command terminated")
        response = self.responses.pop(0) if self.responses else (b"", b"", 0)
        if isinstance(response, Exception):
            raise response
        return response

    def cleanup_command(self, shell_id, command_id):
        self.cleaned.append(command_id)
        self._terminated.set()

    def close_shell(self, shell_id):
        self.closed_shells.append(shell_id)


def vm_record(**overrides):
    """Host-style JSON record for one VM."""
    record = {
        "VMId": VM_ID,
        "VMName": "web01",
        "Generation": 2,
        "MemoryStartup": 2147483648,
        "Path": "D:\\VMs",
        "SwitchName": "External",
        "BootDevice": "VHD",
        "Prerelease": False,
    }
    record.update(overrides)
    return json.dumps(record)
