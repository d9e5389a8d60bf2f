from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from usersvc.errors import ServiceError
from usersvc.models import (
    DeleteUserRequest,
    EmptyResponse,
    GetUserRequest,
    GetUserResponse,
    PatchUserRequest,
    PostUserRequest,
    PutUserRequest,
    Result,
    User,
)
from usersvc.service import Service

# request value -> Result. Raises only for transport-level failures.
Endpoint = Callable[[Any], Result]


@dataclass(frozen=True)
class Endpoints:
    """The five endpoints of the user service, bundled.

    On the server side each endpoint wraps a local :class:`Service`; the HTTP
    layer mounts them one per route. On the client side each endpoint talks to
    a remote instance, and the methods below make the bundle usable as a
    :class:`Service` again.

    ``closer`` releases whatever the endpoints own (the HTTP client of a
    client bundle). Use the bundle as a context manager or call ``close()``.
    """

    post_user_endpoint: Endpoint
    get_user_endpoint: Endpoint
    put_user_endpoint: Endpoint
    patch_user_endpoint: Endpoint
    delete_user_endpoint: Endpoint
    closer: Optional[Callable[[], None]] = field(default=None, compare=False)

    def close(self) -> None:
        if self.closer is not None:
            self.closer()

    def __enter__(self) -> "Endpoints":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def post_user(self, user: User) -> None:
        _raise_for(self.post_user_endpoint(PostUserRequest(user=user)))

    def get_user(self, username: str) -> User:
        result = _raise_for(self.get_user_endpoint(GetUserRequest(username=username)))
        return result.value.user

    def put_user(self, username: str, user: User) -> None:
        _raise_for(self.put_user_endpoint(PutUserRequest(username=username, user=user)))

    def patch_user(self, username: str, user: User) -> None:
        _raise_for(self.patch_user_endpoint(PatchUserRequest(username=username, user=user)))

    def delete_user(self, username: str) -> None:
        _raise_for(self.delete_user_endpoint(DeleteUserRequest(username=username)))


def _raise_for(result: Result) -> Result:
    if result.err is not None:
        raise result.err
    return result


def make_server_endpoints(service: Service) -> Endpoints:
    return Endpoints(
        post_user_endpoint=make_post_user_endpoint(service),
        get_user_endpoint=make_get_user_endpoint(service),
        put_user_endpoint=make_put_user_endpoint(service),
        patch_user_endpoint=make_patch_user_endpoint(service),
        delete_user_endpoint=make_delete_user_endpoint(service),
    )


# Business errors are returned inside the Result, untouched. Anything else the
# service raises is not ours to classify and propagates to the transport.


def make_post_user_endpoint(service: Service) -> Endpoint:
    def endpoint(request: PostUserRequest) -> Result[EmptyResponse]:
        try:
            service.post_user(request.user)
        except ServiceError as e:
            return Result.failure(e)
        return Result.success(EmptyResponse())

    return endpoint


def make_get_user_endpoint(service: Service) -> Endpoint:
    def endpoint(request: GetUserRequest) -> Result[GetUserResponse]:
        try:
            user = service.get_user(request.username)
        except ServiceError as e:
            return Result.failure(e)
        return Result.success(GetUserResponse(user=user))

    return endpoint


def make_put_user_endpoint(service: Service) -> Endpoint:
    def endpoint(request: PutUserRequest) -> Result[EmptyResponse]:
        try:
            service.put_user(request.username, request.user)
        except ServiceError as e:
            return Result.failure(e)
        return Result.success(EmptyResponse())

    return endpoint


def make_patch_user_endpoint(service: Service) -> Endpoint:
    def endpoint(request: PatchUserRequest) -> Result[EmptyResponse]:
        try:
            service.patch_user(request.username, request.user)
        except ServiceError as e:
            return Result.failure(e)
        return Result.success(EmptyResponse())

    return endpoint


def make_delete_user_endpoint(service: Service) -> Endpoint:
    def endpoint(request: DeleteUserRequest) -> Result[EmptyResponse]:
        try:
            service.delete_user(request.username)
        except ServiceError as e:
            return Result.failure(e)
        return Result.success(EmptyResponse())

    return endpoint
