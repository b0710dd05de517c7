from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # "adomd" talks XMLA through ADOMD.NET, "sql" treats the endpoint as a SQLAlchemy URL
    ENGINE_BACKEND: Literal["adomd", "sql"] = "adomd"
    # Folder with Microsoft.AnalysisServices.AdomdClient.dll
    ADOMD_CLIENT_PATH: Optional[str] = None
    # URL prefixes the "sql" backend may connect to, JSON list in the env; empty allows all
    SQL_ALLOWED_URL_PREFIXES: List[str] = []

    VALIDATE_ALL_QUERIES: bool = True
    PRETTY_JSON: bool = True
    LOG_LEVEL: str = "INFO"

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create a single instance of the settings to use everywhere
settings = Settings()
