"""Integration tests for the role store against SQLite."""

import uuid

import pytest

from portal.kernel.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from portal.kernel.events.event_store import EventStore
from portal.kernel.identity.role_store import RoleStore
from portal.kernel.models.base import enum_value
from portal.kernel.models.event_log import EventType
from portal.kernel.models.user import UserRole


async def test_role_comes_from_the_assignment(db_session, teacher):
    assert await RoleStore(db_session).get_role(teacher.user_id) == UserRole.TEACHER


async def test_unknown_user_has_no_role(db_session):
    store = RoleStore(db_session)
    assert await store.get_role(uuid.uuid4()) is None
    assert await store.get_assignment(uuid.uuid4()) is None


async def test_second_initial_assignment_conflicts(db_session, teacher):
    with pytest.raises(ConflictError):
        await RoleStore(db_session).assign_initial(teacher.user_id, UserRole.ADMIN)


async def test_admin_changes_role_and_it_is_logged(db_session, admin, teacher):
    store = RoleStore(db_session)
    assignment = await store.change_role(admin, teacher.user_id, UserRole.ADMIN)

    assert enum_value(assignment.role) == "admin"
    history = await EventStore(db_session).history(
        "account", teacher.user_id, event_types=[EventType.USER_ROLE_CHANGED],
    )
    assert history[0].payload == {"previous_role": "teacher", "new_role": "admin"}
    assert history[0].user_id == admin.user_id


async def test_same_role_is_a_no_op(db_session, admin, teacher):
    await RoleStore(db_session).change_role(admin, teacher.user_id, UserRole.TEACHER)

    count = await EventStore(db_session).count(
        entity_id=teacher.user_id, event_type=EventType.USER_ROLE_CHANGED,
    )
    assert count == 0


async def test_teacher_cannot_change_roles(db_session, teacher, student):
    with pytest.raises(AuthorizationError):
        await RoleStore(db_session).change_role(teacher, student.user_id, UserRole.TEACHER)


async def test_anonymous_cannot_change_roles(db_session, student):
    with pytest.raises(AuthenticationError):
        await RoleStore(db_session).change_role(None, student.user_id, UserRole.ADMIN)


async def test_admin_cannot_change_own_role(db_session, admin):
    with pytest.raises(ValidationError) as exc_info:
        await RoleStore(db_session).change_role(admin, admin.user_id, UserRole.STUDENT)
    assert exc_info.value.field == "role"


async def test_missing_user_is_not_found(db_session, admin):
    with pytest.raises(NotFoundError):
        await RoleStore(db_session).change_role(admin, uuid.uuid4(), UserRole.TEACHER)
