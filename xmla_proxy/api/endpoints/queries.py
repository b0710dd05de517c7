import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from xmla_proxy.core import pipeline
from xmla_proxy.core.config import settings
from xmla_proxy.core.connection import get_engine_client
from xmla_proxy.core.engines.base import EngineClient
from xmla_proxy.core.errors import ProxyError
from xmla_proxy.core.responses import PrettyJSONResponse
from xmla_proxy.core.validation import validate_request

router = APIRouter(tags=["Queries"])

logger = logging.getLogger(__name__)

engine_dep = Annotated[EngineClient, Depends(get_engine_client)]


@router.post("/", response_class=PrettyJSONResponse)
async def execute_queries(request: Request, client: engine_dep):
    """
    Execute a batch of DAX queries against the dataset named in the headers.

    Body: {"queries": [{"query": "EVALUATE ..."}], "impersonatedUserName": "upn"}
    Returns the executeQueries shape, 200 if every query succeeded, 400 otherwise.
    """
    # Validation failures short-circuit here, before any connection exists
    validated = validate_request(
        request.headers,
        await request.body(),
        validate_all=settings.VALIDATE_ALL_QUERIES,
    )

    try:
        status_code, body = await asyncio.to_thread(
            pipeline.run_query_batch, client, validated
        )
        # Rendered here so serialization errors also get the JSON 500 body
        return PrettyJSONResponse(content=body, status_code=status_code)
    except ProxyError:
        raise
    except Exception as error:
        logger.exception(f"Unhandled error while executing queries: {error}")
        raise ProxyError(str(error)) from error
