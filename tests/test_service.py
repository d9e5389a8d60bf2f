import pytest

from usersvc.errors import AlreadyExistsError, InconsistentIDsError, NotFoundError
from usersvc.models import User
from usersvc.service import UserService
from usersvc.storage import InMemoryUserStorage


def _alice(**kw) -> User:
    data = {"username": "alice", "first_name": "Alice", "last_name": "Liddell", "email": "a@x.com", "role": "admin"}
    data.update(kw)
    return User(**data)


def test_post_then_get_returns_same_record():
    svc = UserService()
    svc.post_user(_alice())
    assert svc.get_user("alice") == _alice()


def test_second_post_with_same_username_fails_and_keeps_first():
    svc = UserService()
    svc.post_user(_alice())

    with pytest.raises(AlreadyExistsError):
        svc.post_user(_alice(first_name="Mallory"))

    assert svc.get_user("alice").first_name == "Alice"


def test_get_absent_username_is_not_found():
    svc = UserService()
    with pytest.raises(NotFoundError) as exc:
        svc.get_user("nobody")
    assert str(exc.value) == "not found"


def test_put_with_mismatched_username_leaves_store_unchanged():
    storage = InMemoryUserStorage()
    svc = UserService(storage)
    svc.post_user(_alice())

    with pytest.raises(InconsistentIDsError):
        svc.put_user("alice", _alice(username="bob", first_name="Bob"))

    assert len(storage) == 1
    assert svc.get_user("alice") == _alice()
    assert not storage.exists("bob")


def test_put_creates_when_absent_and_replaces_when_present():
    svc = UserService()
    svc.put_user("alice", _alice())
    assert svc.get_user("alice") == _alice()

    replacement = User(username="alice", email="new@x.com")
    svc.put_user("alice", replacement)
    # Full replacement: fields not in the new record are gone.
    assert svc.get_user("alice") == replacement


def test_put_is_idempotent():
    svc = UserService()
    svc.put_user("alice", _alice())
    first = svc.get_user("alice")
    svc.put_user("alice", _alice())
    assert svc.get_user("alice") == first


def test_patch_absent_username_is_not_found():
    svc = UserService()
    with pytest.raises(NotFoundError):
        svc.patch_user("alice", User(first_name="A"))


def test_patch_with_mismatched_username_is_inconsistent():
    svc = UserService()
    svc.post_user(_alice())
    with pytest.raises(InconsistentIDsError):
        svc.patch_user("alice", User(username="bob", first_name="B"))
    assert svc.get_user("alice") == _alice()


def test_patch_merges_every_non_empty_field():
    svc = UserService()
    svc.post_user(_alice(password="old"))

    svc.patch_user("alice", User(last_name="Pleasance", password="new", email="alice@wonder.land", role="user"))

    got = svc.get_user("alice")
    assert got.first_name == "Alice"
    assert got.last_name == "Pleasance"
    assert got.password == "new"
    assert got.email == "alice@wonder.land"
    assert got.role == "user"
    assert got.username == "alice"


def test_patch_with_empty_fields_changes_nothing():
    svc = UserService()
    svc.post_user(_alice())
    svc.patch_user("alice", User(username="alice"))
    assert svc.get_user("alice") == _alice()


def test_delete_then_get_is_not_found():
    svc = UserService()
    svc.post_user(_alice())
    svc.delete_user("alice")
    with pytest.raises(NotFoundError):
        svc.get_user("alice")


def test_delete_absent_username_is_not_found():
    svc = UserService()
    with pytest.raises(NotFoundError):
        svc.delete_user("alice")


def test_returned_record_is_a_copy():
    svc = UserService()
    svc.post_user(_alice())
    got = svc.get_user("alice")
    got.first_name = "changed"
    assert svc.get_user("alice").first_name == "Alice"
