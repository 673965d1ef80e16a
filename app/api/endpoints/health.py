from fastapi import APIRouter, status
from pydantic import BaseModel

router = APIRouter()


class HealthCheck(BaseModel):
    status: str = "oke"


@router.get("/health", tags=["Health"], response_model=HealthCheck, status_code=status.HTTP_200_OK)
def get_health() -> HealthCheck:
    return HealthCheck(status="oke")
