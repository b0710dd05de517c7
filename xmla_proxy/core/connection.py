import logging
from contextlib import contextmanager
from typing import Iterator

from xmla_proxy.core.config import settings
from xmla_proxy.core.engines.adomd import AdomdEngineClient
from xmla_proxy.core.engines.base import ConnectionDescriptor, EngineClient, EngineSession
from xmla_proxy.core.engines.sql import SqlEngineClient
from xmla_proxy.core.errors import EngineConnectionError
from xmla_proxy.core.schemas import ConnectionCoordinates


logger = logging.getLogger(__name__)


def build_descriptor(
    coordinates: ConnectionCoordinates, impersonated_user: str
) -> ConnectionDescriptor:
    # No token is fetched here, the engine exchanges app id + secret itself
    return ConnectionDescriptor(
        data_source=coordinates.endpoint_url,
        user_id=f"app:{coordinates.client_id}@{coordinates.tenant_id}",
        password=coordinates.client_secret.get_secret_value(),
        catalog=coordinates.dataset_name,
        effective_user_name=impersonated_user,
    )


@contextmanager
def open_connection(
    client: EngineClient, coordinates: ConnectionCoordinates, impersonated_user: str
) -> Iterator[EngineSession]:
    """
    Open one session for the current request and always close it.

    Args:
        client: Engine backend
        coordinates: Validated connection headers
        impersonated_user: UPN the queries run as

    Raises:
        EngineConnectionError: the session could not be opened

    Example:
        with open_connection(client, coordinates, "jane@contoso.com") as session:
            session.execute("EVALUATE Sales")
    """
    descriptor = build_descriptor(coordinates, impersonated_user)
    logger.info(
        f"Opening connection to {coordinates.endpoint_url} "
        f"(dataset={coordinates.dataset_name}, user={impersonated_user})"
    )
    try:
        session = client.connect(descriptor)
    except Exception as error:
        logger.error(f"Failed to open connection to {coordinates.endpoint_url}: {error}")
        raise EngineConnectionError(str(error)) from error

    try:
        yield session
    finally:
        try:
            session.close()
            logger.info("Connection closed")
        except Exception as error:
            # The request outcome is already decided, a failing close must not change it
            logger.warning(f"Failed to close connection: {error}")


# Clients hold no connections, one per backend is enough
_clients = {
    "adomd": AdomdEngineClient(client_path=settings.ADOMD_CLIENT_PATH),
    "sql": SqlEngineClient(allowed_prefixes=settings.SQL_ALLOWED_URL_PREFIXES),
}


# Route dependency, tests swap it through app.dependency_overrides
def get_engine_client() -> EngineClient:
    return _clients[settings.ENGINE_BACKEND]
