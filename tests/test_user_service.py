import pytest

from taskreward.models.user import UserRole
from taskreward.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    NotParentRoleError,
)


def test_register_and_authenticate(user_service) -> None:
    user = user_service.register(username="mom", email="Mom@Example.com", password="hunter22", role="parent")

    assert user.role == UserRole.PARENT
    assert user.email == "mom@example.com"
    assert user.hashed_password != "hunter22"
    assert user_service.authenticate("mom", "hunter22").id == user.id
    assert user_service.authenticate("mom@example.com", "hunter22").id == user.id
    assert user_service.authenticate("mom", "wrong") is None
    assert user_service.authenticate("nobody", "hunter22") is None


def test_register_rejects_duplicates_and_admins(user_service) -> None:
    user_service.register(username="mom", email="mom@example.com", password="hunter22", role="parent")

    with pytest.raises(ConflictError):
        user_service.register(username="mom", email="other@example.com", password="hunter22", role="parent")
    with pytest.raises(ConflictError):
        user_service.register(username="other", email="mom@example.com", password="hunter22", role="parent")
    with pytest.raises(ForbiddenError):
        user_service.register(username="root", email="root@example.com", password="hunter22", role="admin")


def test_create_child_account_links_parent(user_service, parent) -> None:
    kid = user_service.create_child_account(
        parent_id=parent.id, username="ben", email="ben@example.com", password="kidpass1"
    )

    assert kid.role == UserRole.CHILD
    assert [c.id for c in user_service.list_children(parent.id)] == [kid.id]
    assert [p.id for p in user_service.list_parents(kid.id)] == [parent.id]


def test_child_cannot_create_child_accounts(user_service, child) -> None:
    with pytest.raises(NotParentRoleError):
        user_service.create_child_account(
            parent_id=child.id, username="ben", email="ben@example.com", password="kidpass1"
        )


def test_add_child_by_username_or_email(user_service, make_user, parent) -> None:
    dad = make_user(UserRole.PARENT, "dad")
    kid = make_user(UserRole.CHILD, "cody")

    user_service.add_child(parent_id=parent.id, identifier="cody")
    user_service.add_child(parent_id=dad.id, identifier="cody@example.com")

    assert {p.username for p in user_service.list_parents(kid.id)} == {"mom", "dad"}


def test_add_child_rejections(user_service, make_user, parent, child) -> None:
    dad = make_user(UserRole.PARENT, "dad")

    with pytest.raises(NotFoundError):
        user_service.add_child(parent_id=parent.id, identifier="ghost")
    with pytest.raises(ConflictError):
        user_service.add_child(parent_id=parent.id, identifier="ava")
    with pytest.raises(ConflictError):
        user_service.add_child(parent_id=parent.id, identifier="dad")
    with pytest.raises(InvalidStateError):
        user_service.add_child(parent_id=parent.id, identifier="mom")


def test_remove_child(user_service, parent, child) -> None:
    user_service.remove_child(parent_id=parent.id, child_id=child.id)

    assert user_service.list_children(parent.id) == []
    with pytest.raises(NotFoundError):
        user_service.remove_child(parent_id=parent.id, child_id=child.id)


def test_update_profile(user_service, make_user, parent) -> None:
    make_user(UserRole.PARENT, "dad")

    updated = user_service.update_profile(parent.id, full_name="Maria", email="Maria@Example.com")

    assert updated.full_name == "Maria"
    assert updated.email == "maria@example.com"
    assert updated.username == "mom"
    with pytest.raises(ConflictError):
        user_service.update_profile(parent.id, username="dad")
    with pytest.raises(ConflictError):
        user_service.update_profile(parent.id, email="dad@example.com")
    with pytest.raises(NotFoundError):
        user_service.update_profile("missing", full_name="Nobody")


def test_change_password_checks_current_password(user_service) -> None:
    user = user_service.register(username="mom", email="mom@example.com", password="hunter22", role="parent")

    with pytest.raises(InvalidInputError):
        user_service.change_password(user.id, current_password="wrong", new_password="brandnew1")
    with pytest.raises(InvalidInputError):
        user_service.change_password(user.id, current_password="hunter22", new_password="hunter22")
    assert user_service.authenticate("mom", "hunter22") is not None

    user_service.change_password(user.id, current_password="hunter22", new_password="brandnew1")

    assert user_service.authenticate("mom", "hunter22") is None
    assert user_service.authenticate("mom", "brandnew1").id == user.id


def test_create_admin(user_service) -> None:
    admin = user_service.create_admin(username="root", email="root@example.com", password="hunter22")

    assert admin.is_admin
    assert user_service.authenticate("root", "hunter22").id == admin.id


def test_list_users_filters_and_pages(user_service, make_user, parent, child) -> None:
    make_user(UserRole.PARENT, "dad")

    everyone = user_service.list_users()
    parents = user_service.list_users(role=UserRole.PARENT, page_size=1)

    assert everyone.total == 3
    assert parents.total == 2
    assert len(parents.items) == 1
    assert parents.pages == 2
    assert [u.username for u in user_service.list_users(role=UserRole.CHILD).items] == ["ava"]


def test_admin_update_user(user_service, make_user) -> None:
    admin = make_user(UserRole.ADMIN, "root")
    loner = make_user(UserRole.PARENT, "solo")

    updated = user_service.update_user(loner.id, admin_id=admin.id, role="child", full_name="Solo")

    assert updated.role == UserRole.CHILD
    assert updated.full_name == "Solo"
    with pytest.raises(NotFoundError):
        user_service.update_user("missing", admin_id=admin.id, full_name="x")


def test_admin_cannot_flip_role_of_linked_user(user_service, make_user, parent, child) -> None:
    admin = make_user(UserRole.ADMIN, "root")

    with pytest.raises(ConflictError):
        user_service.update_user(child.id, admin_id=admin.id, role=UserRole.PARENT)
    with pytest.raises(InvalidStateError):
        user_service.update_user(admin.id, admin_id=admin.id, role=UserRole.PARENT)

    assert user_service.get_user(child.id).role == UserRole.CHILD


def test_deactivate_user_blocks_login(user_service, make_user) -> None:
    admin = make_user(UserRole.ADMIN, "root")
    user = user_service.register(username="mom", email="mom@example.com", password="hunter22", role="parent")

    deactivated = user_service.deactivate_user(user.id, admin_id=admin.id)

    assert deactivated.is_active is False
    assert user_service.authenticate("mom", "hunter22") is None
    assert user_service.list_users(is_active=False).total == 1
    with pytest.raises(InvalidStateError):
        user_service.deactivate_user(admin.id, admin_id=admin.id)
