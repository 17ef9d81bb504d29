from fastapi import APIRouter

from jobpost.ai.config import llm_enabled

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the service.")
async def health_check():
    return {"status": "healthy", "llm_enabled": llm_enabled()}
