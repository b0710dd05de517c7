from fastapi import APIRouter
from xmla_proxy.api.endpoints import queries

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(queries.router)
