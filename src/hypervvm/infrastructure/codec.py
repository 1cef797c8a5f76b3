"""
Resource codec - host JSON record to VirtualMachine.

Decode-only. Encoding for Create happens as parameter binding inside the
script renderer.
"""

import json
import logging

from pydantic import ValidationError

from hypervvm.domain.errors import CodecError, CodecErrorKind
from hypervvm.domain.models import VirtualMachine

logger = logging.getLogger(__name__)


def decode(payload: str) -> VirtualMachine:
    """
    Decode exactly one JSON object into a VirtualMachine.

    Unknown keys are ignored and absent keys take zero values; the host
    script may leave out properties it considers unset.

    Args:
        payload: Trimmed stdout of a successful script run

    Returns:
        VirtualMachine built from the record

    Raises:
        CodecError: MALFORMED when the payload is not a single well-formed record
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise CodecError(CodecErrorKind.MALFORMED, payload, detail=f"invalid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise CodecError(
            CodecErrorKind.MALFORMED,
            payload,
            detail=f"expected one JSON object, got {type(data).__name__}",
        )

    try:
        vm = VirtualMachine.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise CodecError(CodecErrorKind.MALFORMED, payload, detail=f"{location}: {first['msg']}") from e

    logger.debug("Decoded VM record %s (%s)", vm.vm_id or "<no id>", vm.name)
    return vm
