"""Natours Backend: /api/v1/users list, detail and create."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from natours.database import get_db_session
from natours.schemas.common import API_ERROR_RESPONSES, serialize
from natours.schemas.user import UserCreate, UserResponse
from natours.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["Users"], responses=API_ERROR_RESPONSES)


@router.get("")
async def get_all_users(db: AsyncSession = Depends(get_db_session)) -> dict:
    users = await user_service.list(db)
    return {
        "status": "success",
        "results": len(users),
        "data": {"users": [serialize(UserResponse, user) for user in users]},
    }


@router.get("/{user_id}")
async def get_user(user_id: UUID, db: AsyncSession = Depends(get_db_session)) -> dict:
    user = await user_service.get(db, user_id)
    return {"status": "success", "data": {"user": serialize(UserResponse, user)}}


@router.post("", status_code=201)
async def create_user(payload: UserCreate, db: AsyncSession = Depends(get_db_session)) -> dict:
    data = payload.model_dump()
    data["email"] = data["email"].lower()
    user = await user_service.create(db, data)
    return {"status": "success", "data": {"user": serialize(UserResponse, user)}}
