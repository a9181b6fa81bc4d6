# asocial/routers/user_router.py
import uuid
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from asocial.dependencies.db import get_session_dep
from asocial.infrastructure.users_repo import UserRepository
from asocial.schemas.user_schema import UserCreate, UserRead
from asocial.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(user_in: UserCreate, session: AsyncSession = Depends(get_session_dep)):
    svc = UserService(UserRepository(session))
    try:
        return await svc.register_user(user_in)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/{user_id}", response_model=UserRead)
async def get_user(user_id: uuid.UUID, session: AsyncSession = Depends(get_session_dep)):
    user = await UserRepository(session).get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="user not found")
    return user
