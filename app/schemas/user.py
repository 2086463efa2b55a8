"""
TravelPlaces Backend — Credential Schemas
===========================================

Request and response bodies of POST /register and POST /login.
The `msg` key matches what existing clients of these endpoints read.
"""

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    """Username/password pair sent to /register and /login."""
    username: str = Field(min_length=1, max_length=150, description="Login name")
    password: str = Field(min_length=1, max_length=72, description="Plain-text password (bcrypt uses at most 72 bytes)")


class MessageResponse(BaseModel):
    msg: str = Field(description="Human-readable outcome")
