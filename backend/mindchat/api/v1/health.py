"""
Health check endpoints for system status and completion API connectivity.
"""
from fastapi import APIRouter, Depends

from mindchat.core.config import settings
from mindchat.services.llm_client import LLMClient, get_llm_client

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.

    Returns:
        Simple status message indicating the API is running
    """
    return {
        "status": "ok",
        "service": settings.PROJECT_NAME,
    }


@router.get("/llm")
async def llm_health_check(llm_client: LLMClient = Depends(get_llm_client)):
    """
    Check completion API connectivity.

    Returns:
        Connection status including model, api base, and any errors
    """
    return await llm_client.health_check()
