from fastapi import APIRouter
from adon.api.v1.endpoints import events, functions, transactions

api_router = APIRouter()
api_router.include_router(functions.router, prefix="/callable", tags=["callable"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
