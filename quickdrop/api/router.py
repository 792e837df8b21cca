"""Aggregate all API sub-routers."""

from fastapi import APIRouter

from . import system, upload, transfer, download

api_router = APIRouter()

api_router.include_router(system.router)
api_router.include_router(upload.router)
api_router.include_router(transfer.router)
api_router.include_router(download.router)
