from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Protocol

from usersvc.errors import AlreadyExistsError, InconsistentIDsError, NotFoundError
from usersvc.models import MERGEABLE_FIELDS, User
from usersvc.storage import InMemoryUserStorage, ReadWriteLock, UserStorage


class Service(Protocol):
    """CRUD interface for users, one method per HTTP verb."""

    def post_user(self, user: User) -> None: ...

    def get_user(self, username: str) -> User: ...

    def put_user(self, username: str, user: User) -> None: ...

    def patch_user(self, username: str, user: User) -> None: ...

    def delete_user(self, username: str) -> None: ...


class UserService:
    """Business rules over a :class:`UserStorage`.

    Every call is atomic with respect to the store: mutations hold the write
    lock from the existence check through the write, reads hold the read lock.
    """

    def __init__(self, storage: Optional[UserStorage] = None):
        self._storage: UserStorage = storage if storage is not None else InMemoryUserStorage()
        self._lock = ReadWriteLock()

    def post_user(self, user: User) -> None:
        # POST = create, don't overwrite
        with self._lock.write_locked():
            if self._storage.exists(user.username):
                raise AlreadyExistsError()
            self._storage.put(user)

    def get_user(self, username: str) -> User:
        with self._lock.read_locked():
            found = self._storage.get(username)
        if found is None:
            raise NotFoundError()
        return found

    def put_user(self, username: str, user: User) -> None:
        # PUT = create or replace
        if username != user.username:
            raise InconsistentIDsError()
        with self._lock.write_locked():
            self._storage.put(user)

    def patch_user(self, username: str, user: User) -> None:
        # PATCH = update existing, don't create
        if user.username and user.username != username:
            raise InconsistentIDsError()
        with self._lock.write_locked():
            existing = self._storage.get(username)
            if existing is None:
                raise NotFoundError()
            changes = {f: getattr(user, f) for f in MERGEABLE_FIELDS if getattr(user, f)}
            self._storage.put(existing.model_copy(update=changes))

    def delete_user(self, username: str) -> None:
        with self._lock.write_locked():
            if not self._storage.delete(username):
                raise NotFoundError()


Middleware = Callable[[Service], Service]


def logging_middleware(logger: logging.Logger) -> Middleware:
    def wrap(next_service: Service) -> Service:
        return LoggingService(next_service, logger)

    return wrap


class LoggingService:
    """Logs method, key, duration and outcome of every call, then delegates."""

    def __init__(self, next_service: Service, logger: logging.Logger):
        self._next = next_service
        self._logger = logger

    def _log(self, method: str, username: str, began: float, err: Optional[BaseException]) -> None:
        took_ms = (time.perf_counter() - began) * 1000.0
        self._logger.info(
            "method=%s username=%s took=%.3fms err=%s",
            method,
            username,
            took_ms,
            err,
            extra={"method": method, "username": username, "took_ms": took_ms},
        )

    def post_user(self, user: User) -> None:
        began = time.perf_counter()
        err: Optional[BaseException] = None
        try:
            return self._next.post_user(user)
        except Exception as e:
            err = e
            raise
        finally:
            self._log("post_user", user.username, began, err)

    def get_user(self, username: str) -> User:
        began = time.perf_counter()
        err: Optional[BaseException] = None
        try:
            return self._next.get_user(username)
        except Exception as e:
            err = e
            raise
        finally:
            self._log("get_user", username, began, err)

    def put_user(self, username: str, user: User) -> None:
        began = time.perf_counter()
        err: Optional[BaseException] = None
        try:
            return self._next.put_user(username, user)
        except Exception as e:
            err = e
            raise
        finally:
            self._log("put_user", username, began, err)

    def patch_user(self, username: str, user: User) -> None:
        began = time.perf_counter()
        err: Optional[BaseException] = None
        try:
            return self._next.patch_user(username, user)
        except Exception as e:
            err = e
            raise
        finally:
            self._log("patch_user", username, began, err)

    def delete_user(self, username: str) -> None:
        began = time.perf_counter()
        err: Optional[BaseException] = None
        try:
            return self._next.delete_user(username)
        except Exception as e:
            err = e
            raise
        finally:
            self._log("delete_user", username, began, err)
