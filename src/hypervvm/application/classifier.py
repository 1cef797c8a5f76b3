"""
Outcome Classifier.

Turns a raw ExecutionOutcome into success or a ScriptError. The exit status
alone decides; stderr never turns a zero exit into a failure and an empty
stderr never turns a non-zero exit into a success.
"""

import logging

from hypervvm.domain.errors import ScriptError, ScriptErrorKind
from hypervvm.domain.models import ExecutionOutcome, ScriptSuccess

logger = logging.getLogger(__name__)


def classify(outcome: ExecutionOutcome) -> ScriptSuccess:
    """
    Classify one completed remote run.

    Args:
        outcome: Raw stdout/stderr/exit status from the executor

    Returns:
        ScriptSuccess with trimmed stdout as payload; trimmed stderr of a
        successful run becomes ``warning``

    Raises:
        ScriptError: EXIT_NONZERO for any non-zero exit status
    """
    stderr = outcome.stderr.strip()

    if outcome.exit_status != 0:
        raise ScriptError(
            outcome.exit_status,
            stderr=stderr,
            stdout=outcome.stdout.strip(),
            kind=ScriptErrorKind.EXIT_NONZERO,
        )

    if stderr:
        logger.debug("Script succeeded with diagnostics on stderr")
    return ScriptSuccess(payload=outcome.stdout.strip(), warning=stderr or None)
