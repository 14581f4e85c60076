from fastapi import APIRouter, Depends

from travel_agency.core.security import get_current_user
from travel_agency.models.user import User
from travel_agency.schemas.user import UserResponse

router = APIRouter(
    prefix="/users",
    tags=["users"]
)


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return user
