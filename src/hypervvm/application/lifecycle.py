"""
VM Lifecycle Service.

Create, read, update and delete for Hyper-V virtual machines. Each call
runs the same pipeline:

    connect -> render -> execute -> classify -> decode

A session is opened for the call and closed before it returns. Errors are
tagged with the operation name and re-raised; nothing is retried or
swallowed, and a failed create is never rolled back.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from hypervvm.domain.context import ExecutionContext
from hypervvm.domain.errors import CodecError, CodecErrorKind, HyperVError
from hypervvm.domain.models import ConnectionConfig, OperationResult, ScriptSuccess, VirtualMachine
from hypervvm.infrastructure.codec import decode
from hypervvm.infrastructure.scripts import ScriptRenderer
from hypervvm.infrastructure.winrm import RemoteExecutor, SessionManager

from .classifier import classify

logger = logging.getLogger(__name__)

VMRef = Union[str, VirtualMachine]


def _vm_id(ref: VMRef) -> str:
    """Extract a non-empty identifier from an id string or a VM."""
    vm_id = ref.vm_id if isinstance(ref, VirtualMachine) else (ref or "")
    vm_id = vm_id.strip()
    if not vm_id:
        raise ValueError("VM identifier is required")
    return vm_id


class VMLifecycleService:
    """
    Lifecycle operations against one Hyper-V host.

    Holds only immutable configuration and stateless collaborators, so a
    single instance may serve concurrent calls.

    Usage:
        service = VMLifecycleService(config)
        created = service.create_vm(VirtualMachine(name="web01", generation=2,
                                                   memory_startup_bytes=2 * 1024**3))
        service.delete_vm(created.resource.vm_id)
    """

    def __init__(
        self,
        config: ConnectionConfig,
        session_manager: Optional[SessionManager] = None,
        renderer: Optional[ScriptRenderer] = None,
        executor: Optional[RemoteExecutor] = None,
    ) -> None:
        self.config = config
        self.session_manager = session_manager or SessionManager()
        self.renderer = renderer or ScriptRenderer()
        self.executor = executor or RemoteExecutor()

    def _context(self, ctx: Optional[ExecutionContext]) -> ExecutionContext:
        if ctx is not None:
            return ctx
        return ExecutionContext.with_timeout(self.config.timeout)

    def _run(self, operation: str, template_name: str, params, ctx: Optional[ExecutionContext]) -> ScriptSuccess:
        """Render, execute and classify one script inside a fresh session."""
        script = self.renderer.render(template_name, params)
        logger.debug("%s script for %s:\n%s", operation, self.config.endpoint, script)

        ctx = self._context(ctx)
        with self.session_manager.connect(self.config) as handle:
            outcome = self.executor.execute(ctx, handle, script)

        success = classify(outcome)
        if success.warning:
            logger.warning("%s succeeded with warnings: %s", operation, success.warning)
        return success

    def create_vm(self, vm: VirtualMachine, ctx: Optional[ExecutionContext] = None) -> OperationResult:
        """
        Create a VM and return it with its host-assigned identifier.

        Args:
            vm: Desired VM; ``vm_id`` must be empty
            ctx: Execution budget (defaults to config.timeout)

        Raises:
            ValueError: If ``vm`` already carries an identifier
            HyperVError: Any render, transport, script or codec failure
        """
        operation = "create"
        if vm.has_identifier:
            raise ValueError(f"VM '{vm.name}' already has identifier {vm.vm_id}; create expects none")

        try:
            success = self._run(operation, "create_vm", vm, ctx)
            created = decode(success.payload)
            if not created.has_identifier:
                raise CodecError(
                    CodecErrorKind.MISSING_IDENTIFIER,
                    success.payload,
                    detail=f"VM '{vm.name}' may exist on the host without a known identifier",
                )
        except HyperVError as e:
            e.operation = operation
            raise

        logger.info("Created VM %s (%s)", created.name, created.vm_id)
        return OperationResult(operation, resource=created, warning=success.warning)

    def read_vm(self, vm: VMRef, ctx: Optional[ExecutionContext] = None) -> OperationResult:
        """
        Fetch the current state of a VM by identifier.

        A missing VM surfaces as ScriptError with ``not_found`` set.
        """
        operation = "read"
        vm_id = _vm_id(vm)

        try:
            success = self._run(operation, "read_vm", {"vm_id": vm_id}, ctx)
            current = decode(success.payload)
        except HyperVError as e:
            e.operation = operation
            raise

        logger.debug("Read VM %s (%s)", current.name, current.vm_id)
        return OperationResult(operation, resource=current, warning=success.warning)

    def delete_vm(self, vm: VMRef, ctx: Optional[ExecutionContext] = None) -> OperationResult:
        """Turn off and remove a VM. Output of the delete script is not decoded."""
        operation = "delete"
        vm_id = _vm_id(vm)

        try:
            success = self._run(operation, "delete_vm", {"vm_id": vm_id}, ctx)
        except HyperVError as e:
            e.operation = operation
            raise

        logger.info("Deleted VM %s", vm_id)
        return OperationResult(operation, warning=success.warning)

    def update_vm(self, vm: VirtualMachine) -> OperationResult:
        """In-place updates are not supported; the resource is returned unchanged."""
        logger.debug("Update of VM %s is a no-op", vm.vm_id or vm.name)
        return OperationResult("update", resource=vm)
