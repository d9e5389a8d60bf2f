from __future__ import annotations

from typing import Any
from urllib.parse import urlparse, urlunparse

import httpx

from usersvc.endpoints import Endpoint, Endpoints
from usersvc.models import Result
from usersvc.transport import (
    DecodeResponseFunc,
    EncodeRequestFunc,
    decode_empty_response,
    decode_get_user_response,
    encode_delete_user_request,
    encode_get_user_request,
    encode_patch_user_request,
    encode_post_user_request,
    encode_put_user_request,
)


def _normalize_instance(instance: str) -> str:
    """``host:port`` or a full URL -> ``scheme://host:port`` with no path."""
    url = (instance or "").strip()
    if not url:
        raise ValueError("Instance address is required")
    if not url.startswith("http"):
        url = "http://" + url
    parsed = urlparse(url)
    if not parsed.netloc:
        raise ValueError(f"Invalid instance address: {instance!r}")
    return urlunparse((parsed.scheme, parsed.netloc, "", "", "", ""))


def make_client_endpoints(
    instance: str,
    *,
    client: httpx.Client | None = None,
    timeout_seconds: float = 10.0,
) -> Endpoints:
    """Endpoints that call a remote users service over HTTP.

    The result can be used anywhere a ``Service`` is expected. Business errors
    from the server are re-raised as the matching ``ServiceError``; network
    and server failures surface as ``httpx`` exceptions.

    Pass ``client`` to share a connection pool or to target an in-process app
    (e.g. a ``fastapi.testclient.TestClient``); the caller keeps ownership of
    it. Without one, a client is created here and ``Endpoints.close()`` closes
    it.
    """
    base_url = _normalize_instance(instance)
    if client is not None:
        http, closer = client, None
    else:
        http = httpx.Client(timeout=timeout_seconds)
        closer = http.close

    return Endpoints(
        post_user_endpoint=_client_endpoint(http, base_url, encode_post_user_request, decode_empty_response),
        get_user_endpoint=_client_endpoint(http, base_url, encode_get_user_request, decode_get_user_response),
        put_user_endpoint=_client_endpoint(http, base_url, encode_put_user_request, decode_empty_response),
        patch_user_endpoint=_client_endpoint(http, base_url, encode_patch_user_request, decode_empty_response),
        delete_user_endpoint=_client_endpoint(http, base_url, encode_delete_user_request, decode_empty_response),
        closer=closer,
    )


def _client_endpoint(
    http: httpx.Client,
    base_url: str,
    encode: EncodeRequestFunc,
    decode: DecodeResponseFunc,
) -> Endpoint:
    def endpoint(request: Any) -> Result:
        method, path, body = encode(request)
        resp = http.request(method, base_url + path, json=body)
        return decode(resp)

    return endpoint
