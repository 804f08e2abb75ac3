import pytest
from sqlalchemy.exc import IntegrityError

from accounts.models.project import Project
from accounts.models.user import User
from accounts import store


def add_user(db, email, name="Ada"):
    user = store.insert_user(db, User(name=name, email=email, institute="", admin=False))
    db.commit()
    return user


def test_insert_assigns_id(database):
    with database.session() as db:
        user = add_user(db, "ada@example.com")
        assert user.id is not None
        assert store.find_user_by_id(db, user.id).email == "ada@example.com"
        assert store.find_user_by_email(db, "ada@example.com").id == user.id
        assert store.find_user_by_email(db, "nobody@example.com") is None
        assert store.find_user_by_id(db, user.id + 100) is None


def test_insert_duplicate_email(database):
    with database.session() as db:
        add_user(db, "ada@example.com")
        with pytest.raises(store.DuplicateEmailError):
            store.insert_user(db, User(name="Other", email="ada@example.com"))


def test_find_all_users_ordered_by_id(database):
    with database.session() as db:
        first = add_user(db, "a@example.com")
        second = add_user(db, "b@example.com")
        assert [u.id for u in store.find_all_users(db)] == [first.id, second.id]


def test_update_user(database):
    with database.session() as db:
        user = add_user(db, "ada@example.com")
        updated = store.update_user(
            db, User(id=user.id, name="Ada L.", email="ada@example.org", institute="RS", admin=True)
        )
        db.commit()
        assert updated.id == user.id
        assert store.find_user_by_email(db, "ada@example.org").admin is True


def test_update_missing_user(database):
    with database.session() as db:
        with pytest.raises(store.UserNotFoundError):
            store.update_user(db, User(id=5, name="x", email="x@example.com"))


def test_update_keeps_own_email(database):
    with database.session() as db:
        user = add_user(db, "ada@example.com")
        store.update_user(db, User(id=user.id, name="Renamed", email="ada@example.com"))
        assert store.find_user_by_id(db, user.id).name == "Renamed"


def test_delete_user_by_id(database):
    with database.session() as db:
        user = add_user(db, "ada@example.com")
        store.delete_user_by_id(db, user.id)
        db.commit()
        assert store.find_user_by_id(db, user.id) is None
        with pytest.raises(store.UserNotFoundError):
            store.delete_user_by_id(db, user.id)


def test_set_and_check_password(database):
    with database.session() as db:
        user = add_user(db, "ada@example.com")
        assert not store.check_user_password(db, "ada@example.com", "secret")
        store.set_user_password(db, user, "secret")
        db.commit()
        assert store.check_user_password(db, "ada@example.com", "secret")
        assert not store.check_user_password(db, "ada@example.com", "wrong")
        assert not store.check_user_password(db, "nobody@example.com", "secret")
        assert "secret" not in store.find_user_by_id(db, user.id).password_hash


def test_set_empty_password(database):
    with database.session() as db:
        user = add_user(db, "ada@example.com")
        with pytest.raises(store.InvalidPasswordError):
            store.set_user_password(db, user, "")


def test_hash_password_is_salted():
    first = store.hash_password("secret")
    second = store.hash_password("secret")
    assert first != second
    assert store.verify_password("secret", first)
    assert store.verify_password("secret", second)
    assert not store.verify_password("secret", "garbage")
    assert store.hash_password("secret", salt=b"\x00" * 16) == store.hash_password(
        "secret", salt=b"\x00" * 16
    )


def test_reassign_packages_missing_origin(database):
    with database.session() as db:
        user = add_user(db, "ada@example.com")
        db.add(Project(id=2, origin=1, owner=user.id))
        db.flush()
        with pytest.raises(store.StoreError):
            store.reassign_packages_to_owner(db, user.id)


def test_delete_user_projects_without_projects(database):
    with database.session() as db:
        user = add_user(db, "ada@example.com")
        assert store.delete_user_projects(db, user.id) == 0


def test_update_keeps_unset_fields(database):
    with database.session() as db:
        user = store.insert_user(
            db, User(name="Ada", email="ada@example.com", institute="UCL", admin=True)
        )
        db.commit()
        store.update_user(db, User(id=user.id, name="Ada L.", email="ada@example.com"))
        db.commit()
        record = store.find_user_by_id(db, user.id)
        assert record.institute == "UCL"
        assert record.admin is True


def test_integrity_errors_other_than_email_are_not_duplicates(database):
    with database.session() as db:
        with pytest.raises(IntegrityError) as excinfo:
            store.insert_user(db, User(name=None, email="ada@example.com"))
        assert not isinstance(excinfo.value, store.DuplicateEmailError)


def test_deleted_user_is_gone_from_session(database):
    with database.session() as db:
        user = add_user(db, "ada@example.com")
        assert store.find_user_by_id(db, user.id) is user
        store.delete_user_by_id(db, user.id)
        assert store.find_user_by_id(db, user.id) is None
        assert store.find_user_by_email(db, "ada@example.com") is None


def test_project_is_package(database):
    with database.session() as db:
        user = add_user(db, "ada@example.com")
        db.add_all([
            Project(id=1, origin=1, owner=user.id),
            Project(id=2, origin=1, owner=user.id),
        ])
        db.flush()
        assert db.get(Project, 1).is_package is False
        assert db.get(Project, 2).is_package is True
        assert [p.id for p in db.query(Project).filter(Project.is_package)] == [2]
