import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response, status

from xmla_proxy.api.router import api_router
from xmla_proxy.core.config import settings
from xmla_proxy.core.errors import ProxyError
from xmla_proxy.core.responses import PrettyJSONResponse, build_error_response

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"XMLA proxy started (backend={settings.ENGINE_BACKEND}, "
        f"validate_all_queries={settings.VALIDATE_ALL_QUERIES})"
    )
    yield


app = FastAPI(title="XMLA Query Proxy", lifespan=lifespan)

# Include the master router containing all our endpoints
app.include_router(api_router)


# Only POST is implemented on the query endpoint, whatever the method name
@app.middleware("http")
async def reject_other_methods(request: Request, call_next):
    if request.url.path == "/" and request.method != "POST":
        return Response(status_code=status.HTTP_501_NOT_IMPLEMENTED)
    return await call_next(request)


# Validation, connection and unexpected errors all answer {"error", "detail"}
@app.exception_handler(ProxyError)
async def handle_proxy_error(request: Request, exc: ProxyError):
    if exc.status_code < 500:
        logger.info(f"Rejected request: {exc.error}: {exc.detail}")
    return PrettyJSONResponse(
        status_code=exc.status_code,
        content=build_error_response(exc.error, exc.detail),
    )


def run():
    uvicorn.run("xmla_proxy.main:app", host="0.0.0.0", port=8080)
