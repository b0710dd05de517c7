import logging
from typing import Any, Dict, Tuple

from xmla_proxy.core.connection import open_connection
from xmla_proxy.core.engines.base import EngineClient
from xmla_proxy.core.executor import QueryFailure, execute_batch
from xmla_proxy.core.responses import build_batch_response
from xmla_proxy.core.validation import ValidatedRequest


# -----------------------------------------------------------------------------
# PIPELINE MODULE - Orchestration
# Purpose: open the session, run the batch, shape the response, close the session
# Blocking from start to end, the HTTP layer runs it in a worker thread
# -----------------------------------------------------------------------------


logger = logging.getLogger(__name__)


def run_query_batch(
    client: EngineClient, request: ValidatedRequest
) -> Tuple[int, Dict[str, Any]]:
    """
    Execute a validated request end to end.

    Args:
        client: Engine backend used to open the session
        request: Output of validate_request()

    Returns:
        (status code, body) ready to be written to the client

    Raises:
        EngineConnectionError: the session could not be opened
        Exception: anything unexpected, after the session has been closed
    """
    with open_connection(
        client, request.coordinates, request.impersonated_user
    ) as session:
        result = execute_batch(session, request.batch)
        status_code, body = build_batch_response(result)

    failed = sum(1 for outcome in result.outcomes if isinstance(outcome, QueryFailure))
    logger.info(
        f"Executed {len(result.outcomes)} queries, {failed} failed (status {status_code})"
    )
    return status_code, body
