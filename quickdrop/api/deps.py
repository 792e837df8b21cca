"""Request dependencies."""

from fastapi import Request

from ..services.transfer_service import TransferService


def get_transfer_service(request: Request) -> TransferService:
    return request.app.state.transfer_service
