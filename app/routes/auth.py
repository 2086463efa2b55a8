"""
TravelPlaces Backend — Register / Login Routes
================================================

What:  POST /register and POST /login against the credential store.
How:   JSON body {username, password}; UserService does hashing and lookup.
When:  Mounted only when AUTH_ENABLED is set.

Responses:
    201 {"msg": "User registered successfully"}
    200 {"msg": "Login successful"}
    400 error body for an existing user or wrong credentials
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.attraction import ErrorResponse
from app.schemas.user import Credentials, MessageResponse
from app.services.user_service import user_service

router = APIRouter(tags=["Auth"])


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=201,
    responses={400: {"description": "User already exists", "model": ErrorResponse}},
    summary="Register a username/password pair",
)
async def register(
    body: Credentials,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await user_service.register(db, body.username, body.password)


@router.post(
    "/login",
    response_model=MessageResponse,
    responses={400: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Check a username/password pair",
)
async def login(
    body: Credentials,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await user_service.login(db, body.username, body.password)
