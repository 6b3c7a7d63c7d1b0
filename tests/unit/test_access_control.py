"""Unit tests for the access control evaluator."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from portal.kernel.errors import AuthenticationError, AuthorizationError
from portal.kernel.identity.session import Session
from portal.kernel.models.content import ContentStatus, EntityKind
from portal.kernel.models.user import UserRole
from portal.kernel.permissions.access_control import (
    ADMIN_MANAGED_KINDS,
    ANONYMOUS,
    CONTENT_KINDS,
    PORTAL_OPERATIONS,
    ContentState,
    Decision,
    Operation,
    authorize,
    decide,
    evaluate,
    granted_operations,
    require_session,
)

ALL_ROLES = (UserRole.ADMIN, UserRole.TEACHER, UserRole.STUDENT, ANONYMOUS)
ALL_STATUSES = (None,) + tuple(ContentStatus)


def make_session(role: UserRole, *, is_active: bool = True) -> Session:
    return Session(
        user_id=uuid.uuid4(),
        email=f"{role.value}@university.edu",
        role=role,
        display_name=role.value.title(),
        is_active=is_active,
    )


class TestClosedWorld:
    """Everything not explicitly granted is denied."""

    def test_student_is_denied_every_non_public_operation(self):
        for operation in Operation:
            if operation in (Operation.VIEW_PUBLIC, Operation.ENTER_STUDENT_PORTAL):
                continue
            for kind in EntityKind:
                for status in ALL_STATUSES:
                    assert decide(UserRole.STUDENT, operation, kind, status, is_owner=True) == Decision.DENY

    def test_anonymous_only_gets_view_public(self):
        for operation in Operation:
            for kind in EntityKind:
                for status in ALL_STATUSES:
                    decision = decide(ANONYMOUS, operation, kind, status)
                    if decision.allowed:
                        assert operation == Operation.VIEW_PUBLIC
                        assert status == ContentStatus.PUBLISHED

    def test_unknown_values_are_denied(self):
        assert decide("dean", Operation.APPROVE, EntityKind.NOTICE) == Decision.DENY
        assert decide(UserRole.ADMIN, "publishEverything", EntityKind.NOTICE) == Decision.DENY
        assert decide(UserRole.ADMIN, Operation.APPROVE, "course") == Decision.DENY

    def test_student_has_no_granted_operations_beyond_public(self):
        for kind in CONTENT_KINDS:
            assert granted_operations(UserRole.STUDENT, kind) == frozenset({Operation.VIEW_PUBLIC})


class TestAdminRules:

    @pytest.mark.parametrize("kind", sorted(ADMIN_MANAGED_KINDS, key=lambda k: k.value))
    @pytest.mark.parametrize(
        "operation",
        [Operation.CREATE, Operation.EDIT_ANY, Operation.APPROVE, Operation.REJECT, Operation.DELETE_ANY],
    )
    def test_admin_manages_institutional_content(self, kind, operation):
        assert decide(UserRole.ADMIN, operation, kind, ContentStatus.PENDING).allowed

    @pytest.mark.parametrize("kind", sorted(ADMIN_MANAGED_KINDS, key=lambda k: k.value))
    @pytest.mark.parametrize("operation", [Operation.CREATE, Operation.EDIT_ANY, Operation.APPROVE, Operation.DELETE_ANY])
    def test_teacher_cannot_manage_institutional_content(self, kind, operation):
        assert not decide(UserRole.TEACHER, operation, kind, ContentStatus.DRAFT, is_owner=True).allowed

    def test_admin_reviews_research_papers(self):
        for operation in (Operation.APPROVE, Operation.REJECT, Operation.DELETE_ANY):
            assert decide(UserRole.ADMIN, operation, EntityKind.RESEARCH_PAPER, ContentStatus.PENDING).allowed

    def test_admin_submits_drafts_only(self):
        assert decide(UserRole.ADMIN, Operation.SUBMIT_FOR_REVIEW, EntityKind.NOTICE, ContentStatus.DRAFT).allowed
        assert not decide(UserRole.ADMIN, Operation.SUBMIT_FOR_REVIEW, EntityKind.NOTICE, ContentStatus.PENDING).allowed

    def test_only_admin_manages_accounts(self):
        for operation in (Operation.CHANGE_ROLE, Operation.MANAGE_ACCOUNT):
            assert decide(UserRole.ADMIN, operation, EntityKind.ACCOUNT).allowed
            assert not decide(UserRole.TEACHER, operation, EntityKind.ACCOUNT).allowed
            assert not decide(UserRole.STUDENT, operation, EntityKind.ACCOUNT).allowed
            assert not decide(ANONYMOUS, operation, EntityKind.ACCOUNT).allowed

    @pytest.mark.parametrize("portal", list(UserRole))
    def test_each_portal_admits_its_own_role_only(self, portal):
        operation = PORTAL_OPERATIONS[portal]
        for role in ALL_ROLES:
            assert decide(role, operation, EntityKind.ACCOUNT).allowed == (role == portal)

    def test_deactivated_session_enters_no_portal(self):
        session = make_session(UserRole.ADMIN, is_active=False)
        assert not evaluate(session, Operation.ENTER_ADMIN_PORTAL, EntityKind.ACCOUNT).allowed


class TestTeacherRules:

    def test_teacher_creates_research_papers(self):
        assert decide(UserRole.TEACHER, Operation.CREATE, EntityKind.RESEARCH_PAPER).allowed

    def test_teacher_edits_own_paper_while_draft_or_pending(self):
        for status in (ContentStatus.DRAFT, ContentStatus.PENDING):
            assert decide(
                UserRole.TEACHER, Operation.EDIT_OWN_DRAFT, EntityKind.RESEARCH_PAPER, status, is_owner=True,
            ).allowed

    def test_teacher_cannot_edit_published_or_archived_paper(self):
        for status in (ContentStatus.PUBLISHED, ContentStatus.ARCHIVED):
            assert not decide(
                UserRole.TEACHER, Operation.EDIT_OWN_DRAFT, EntityKind.RESEARCH_PAPER, status, is_owner=True,
            ).allowed

    def test_teacher_cannot_touch_another_teachers_paper(self):
        for operation in (Operation.EDIT_OWN_DRAFT, Operation.SUBMIT_FOR_REVIEW, Operation.VIEW_PRIVATE):
            assert not decide(
                UserRole.TEACHER, operation, EntityKind.RESEARCH_PAPER, ContentStatus.DRAFT, is_owner=False,
            ).allowed

    def test_teacher_submits_only_own_drafts(self):
        assert decide(
            UserRole.TEACHER, Operation.SUBMIT_FOR_REVIEW, EntityKind.RESEARCH_PAPER, ContentStatus.DRAFT, is_owner=True,
        ).allowed
        assert not decide(
            UserRole.TEACHER, Operation.SUBMIT_FOR_REVIEW, EntityKind.RESEARCH_PAPER, ContentStatus.PENDING, is_owner=True,
        ).allowed

    def test_teacher_never_approves_or_rejects(self):
        for operation in (Operation.APPROVE, Operation.REJECT, Operation.DELETE_ANY):
            for status in ALL_STATUSES:
                assert not decide(
                    UserRole.TEACHER, operation, EntityKind.RESEARCH_PAPER, status, is_owner=True,
                ).allowed


class TestViewPublic:

    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_published_unexpired_is_public_for_everyone(self, role):
        assert decide(role, Operation.VIEW_PUBLIC, EntityKind.NOTICE, ContentStatus.PUBLISHED).allowed

    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_expired_is_hidden_for_everyone(self, role):
        assert not decide(
            role, Operation.VIEW_PUBLIC, EntityKind.NOTICE, ContentStatus.PUBLISHED, expired=True,
        ).allowed

    @pytest.mark.parametrize("status", [ContentStatus.DRAFT, ContentStatus.PENDING, ContentStatus.ARCHIVED])
    def test_unpublished_is_hidden_even_from_admin(self, status):
        assert not decide(UserRole.ADMIN, Operation.VIEW_PUBLIC, EntityKind.NEWS, status).allowed


class TestEvaluate:

    def test_deactivated_session_is_anonymous(self):
        inactive = make_session(UserRole.ADMIN, is_active=False)
        assert not evaluate(inactive, Operation.CREATE, EntityKind.NOTICE).allowed
        state = ContentState(status=ContentStatus.PUBLISHED)
        assert evaluate(inactive, Operation.VIEW_PUBLIC, EntityKind.NOTICE, state).allowed

    def test_ownership_comes_from_state(self):
        teacher = make_session(UserRole.TEACHER)
        mine = ContentState(status=ContentStatus.DRAFT, owner_id=teacher.user_id)
        theirs = ContentState(status=ContentStatus.DRAFT, owner_id=uuid.uuid4())
        assert evaluate(teacher, Operation.EDIT_OWN_DRAFT, EntityKind.RESEARCH_PAPER, mine).allowed
        assert not evaluate(teacher, Operation.EDIT_OWN_DRAFT, EntityKind.RESEARCH_PAPER, theirs).allowed

    def test_expiry_is_judged_against_now(self):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        state = ContentState(status=ContentStatus.PUBLISHED, expires_at=now + timedelta(days=1))
        assert evaluate(None, Operation.VIEW_PUBLIC, EntityKind.NOTICE, state, now=now).allowed
        assert not evaluate(
            None, Operation.VIEW_PUBLIC, EntityKind.NOTICE, state, now=now + timedelta(days=1),
        ).allowed

    def test_naive_expiry_is_treated_as_utc(self):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        state = ContentState(status=ContentStatus.PUBLISHED, expires_at=datetime(2026, 2, 28))
        assert not evaluate(None, Operation.VIEW_PUBLIC, EntityKind.NOTICE, state, now=now).allowed


class TestAuthorize:

    def test_no_session_is_authentication_error(self):
        with pytest.raises(AuthenticationError):
            authorize(None, Operation.CREATE, EntityKind.NOTICE)

    def test_deactivated_is_authentication_error(self):
        with pytest.raises(AuthenticationError, match="deactivated"):
            authorize(make_session(UserRole.ADMIN, is_active=False), Operation.CREATE, EntityKind.NOTICE)

    def test_denied_is_authorization_error(self):
        with pytest.raises(AuthorizationError):
            authorize(make_session(UserRole.TEACHER), Operation.CREATE, EntityKind.NOTICE)

    def test_allowed_returns_session(self):
        admin = make_session(UserRole.ADMIN)
        assert authorize(admin, Operation.CREATE, EntityKind.NOTICE) == admin

    def test_anonymous_public_read_returns_none(self):
        state = ContentState(status=ContentStatus.PUBLISHED)
        assert authorize(None, Operation.VIEW_PUBLIC, EntityKind.EVENT, state) is None

    def test_require_session(self):
        teacher = make_session(UserRole.TEACHER)
        assert require_session(teacher) is teacher
        with pytest.raises(AuthenticationError, match="Sign-in required"):
            require_session(None)
