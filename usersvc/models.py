from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from usersvc.errors import ServiceError


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    first_name: str = Field(default="")
    last_name: str = Field(default="")
    username: str = Field(default="", description="Unique key of the record")
    password: str = Field(default="")
    email: str = Field(default="")
    role: str = Field(default="")


# Fields a PATCH may overwrite when the incoming value is non-empty.
MERGEABLE_FIELDS: tuple[str, ...] = ("first_name", "last_name", "password", "email", "role")


class EmptyResponse(BaseModel):
    """Success body for operations that return nothing: ``{}``."""


class GetUserResponse(BaseModel):
    user: User


class ErrorResponse(BaseModel):
    error: str


@dataclass(frozen=True)
class PostUserRequest:
    user: User


@dataclass(frozen=True)
class GetUserRequest:
    username: str


@dataclass(frozen=True)
class PutUserRequest:
    username: str
    user: User


@dataclass(frozen=True)
class PatchUserRequest:
    username: str
    user: User


@dataclass(frozen=True)
class DeleteUserRequest:
    username: str


T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class Result(Generic[T]):
    """What every endpoint returns: a success payload or the business error.

    Exactly one of ``value``/``err`` is set.
    """

    value: Optional[T] = None
    err: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.err is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, err: ServiceError) -> "Result[T]":
        return cls(err=err)
