from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from usersvc.endpoints import Endpoint, make_server_endpoints
from usersvc.errors import BadRoutingError, DecodeError, ServiceError, TransportError, error_from_message, status_code_for
from usersvc.models import (
    DeleteUserRequest,
    EmptyResponse,
    ErrorResponse,
    GetUserRequest,
    GetUserResponse,
    PatchUserRequest,
    PostUserRequest,
    PutUserRequest,
    Result,
    User,
)
from usersvc.service import Service

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

# (path params, raw body) -> request value
DecodeRequestFunc = Callable[[Mapping[str, str], bytes], Any]


def make_http_router(service: Service, logger: Optional[logging.Logger] = None) -> APIRouter:
    """Mount every service endpoint on its route.

    POST    /users               adds another user
    GET     /users/{username}    retrieves the given user
    PUT     /users/{username}    creates or replaces the given user
    PATCH   /users/{username}    partially updates the given user
    DELETE  /users/{username}    removes the given user

    The username segment uses the ``path`` convertor so usernames containing
    "/" (sent as %2F, which Starlette decodes before matching) still route.
    """
    log = logger or logging.getLogger("usersvc.http")
    e = make_server_endpoints(service)
    router = APIRouter(tags=["users"])

    routes: list[tuple[str, str, str, Endpoint, DecodeRequestFunc]] = [
        ("POST", "/users", "post_user", e.post_user_endpoint, decode_post_user_request),
        ("GET", "/users/{username:path}", "get_user", e.get_user_endpoint, decode_get_user_request),
        ("PUT", "/users/{username:path}", "put_user", e.put_user_endpoint, decode_put_user_request),
        ("PATCH", "/users/{username:path}", "patch_user", e.patch_user_endpoint, decode_patch_user_request),
        ("DELETE", "/users/{username:path}", "delete_user", e.delete_user_endpoint, decode_delete_user_request),
    ]
    for method, path, name, endpoint, decode in routes:
        router.add_api_route(path, _make_handler(endpoint, decode, log), methods=[method], name=name)
    return router


def _make_handler(
    endpoint: Endpoint, decode: DecodeRequestFunc, logger: logging.Logger
) -> Callable[[Request], Awaitable[Response]]:
    async def handler(request: Request) -> Response:
        try:
            req = decode(request.path_params, await request.body())
            # Service calls take a blocking lock; keep them off the event loop.
            result = await run_in_threadpool(endpoint, req)
        except TransportError as err:
            logger.warning("Request rejected: %s", err, extra={"path": request.url.path})
            return encode_error(err)
        except Exception as err:
            logger.exception("Unhandled error serving request", extra={"path": request.url.path})
            return encode_error(err)
        return encode_response(result)

    return handler


def _username_from(path_params: Mapping[str, str]) -> str:
    username = path_params.get("username")
    if username is None:
        raise BadRoutingError()
    return username


def _decode_user(body: bytes) -> User:
    try:
        return User.model_validate_json(body)
    except ValidationError as e:
        raise DecodeError(f"invalid user body: {e.error_count()} validation error(s)") from e


def decode_post_user_request(path_params: Mapping[str, str], body: bytes) -> PostUserRequest:
    return PostUserRequest(user=_decode_user(body))


def decode_get_user_request(path_params: Mapping[str, str], body: bytes) -> GetUserRequest:
    return GetUserRequest(username=_username_from(path_params))


def decode_put_user_request(path_params: Mapping[str, str], body: bytes) -> PutUserRequest:
    username = _username_from(path_params)
    return PutUserRequest(username=username, user=_decode_user(body))


def decode_patch_user_request(path_params: Mapping[str, str], body: bytes) -> PatchUserRequest:
    username = _username_from(path_params)
    return PatchUserRequest(username=username, user=_decode_user(body))


def decode_delete_user_request(path_params: Mapping[str, str], body: bytes) -> DeleteUserRequest:
    return DeleteUserRequest(username=_username_from(path_params))


def encode_response(result: Result) -> JSONResponse:
    """JSON-encode a successful result, or render its business error instead."""
    if result.err is not None:
        return encode_error(result.err)
    return JSONResponse(result.value.model_dump(), media_type=JSON_CONTENT_TYPE)


def encode_error(err: BaseException) -> JSONResponse:
    return JSONResponse(
        ErrorResponse(error=str(err)).model_dump(),
        status_code=status_code_for(err),
        media_type=JSON_CONTENT_TYPE,
    )


# Client side: each encoder picks method + path for its route, because all
# endpoints share one base URL.

EncodeRequestFunc = Callable[[Any], tuple[str, str, Optional[dict[str, Any]]]]
DecodeResponseFunc = Callable[[httpx.Response], Result]


def _user_path(username: str) -> str:
    return "/users/" + quote(username, safe="")


def encode_post_user_request(request: PostUserRequest) -> tuple[str, str, Optional[dict[str, Any]]]:
    return "POST", "/users", request.user.model_dump()


def encode_get_user_request(request: GetUserRequest) -> tuple[str, str, Optional[dict[str, Any]]]:
    return "GET", _user_path(request.username), None


def encode_put_user_request(request: PutUserRequest) -> tuple[str, str, Optional[dict[str, Any]]]:
    return "PUT", _user_path(request.username), request.user.model_dump()


def encode_patch_user_request(request: PatchUserRequest) -> tuple[str, str, Optional[dict[str, Any]]]:
    return "PATCH", _user_path(request.username), request.user.model_dump()


def encode_delete_user_request(request: DeleteUserRequest) -> tuple[str, str, Optional[dict[str, Any]]]:
    return "DELETE", _user_path(request.username), None


def _read_json(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as e:
        resp.raise_for_status()
        raise DecodeError(f"non-JSON response (HTTP {resp.status_code})") from e
    if not isinstance(data, dict):
        resp.raise_for_status()
        raise DecodeError(f"unexpected response shape (HTTP {resp.status_code})")
    return data


def _business_error(resp: httpx.Response, data: dict[str, Any]) -> Optional[ServiceError]:
    if "error" not in data:
        return None
    err = error_from_message(str(data["error"]))
    if err is None:
        # Not one of ours: a server-side failure, surfaced as a transport error.
        resp.raise_for_status()
        raise DecodeError(f"unrecognised error from server: {data['error']}")
    return err


def decode_empty_response(resp: httpx.Response) -> Result[EmptyResponse]:
    data = _read_json(resp)
    err = _business_error(resp, data)
    if err is not None:
        return Result.failure(err)
    resp.raise_for_status()
    return Result.success(EmptyResponse())


def decode_get_user_response(resp: httpx.Response) -> Result[GetUserResponse]:
    data = _read_json(resp)
    err = _business_error(resp, data)
    if err is not None:
        return Result.failure(err)
    resp.raise_for_status()
    try:
        return Result.success(GetUserResponse.model_validate(data))
    except ValidationError as e:
        raise DecodeError("invalid get-user response body") from e
