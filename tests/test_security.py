from datetime import timedelta

from components.core.security import acting_user_from_token, create_access_token, create_user_token
from components.status.models import StatusCode
from components.user.schemas import ActingUser, Role


def test_token_resolves_to_acting_user():
    user = acting_user_from_token(create_user_token(123, Role.INSTRUCTOR))
    assert user == ActingUser(user_id=123, role=Role.INSTRUCTOR)


def test_expired_or_tampered_tokens_are_rejected():
    assert acting_user_from_token(create_user_token(123, Role.ADMIN, timedelta(minutes=-5))) is None
    assert acting_user_from_token(create_user_token(123, Role.ADMIN) + "x") is None


def test_token_with_unknown_role_is_rejected():
    assert acting_user_from_token(create_access_token({"sub": "123", "tip_usr_id": 9})) is None
    assert acting_user_from_token(create_access_token({"sub": "abc", "tip_usr_id": 1})) is None


def test_capabilities_per_role():
    instructor = ActingUser(user_id=5, role=Role.INSTRUCTOR)
    warehouse = ActingUser(user_id=6, role=Role.WAREHOUSE)
    admin = ActingUser(user_id=7, role=Role.ADMIN)

    assert instructor.can_access_loan(5) and not instructor.can_access_loan(6)
    assert not instructor.can_view_all_loans and not instructor.is_privileged
    assert warehouse.is_privileged and warehouse.can_view_all_loans and warehouse.can_access_loan(5)
    assert admin.can_view_all_loans and not admin.is_privileged


def test_only_warehouse_moves_loans_past_cancel():
    instructor = ActingUser(user_id=5, role=Role.INSTRUCTOR)
    warehouse = ActingUser(user_id=6, role=Role.WAREHOUSE)
    admin = ActingUser(user_id=7, role=Role.ADMIN)

    assert all(warehouse.can_set_status(code) for code in StatusCode)
    for user in (instructor, admin):
        assert user.can_set_status(StatusCode.CANCELLED)
        assert not any(user.can_set_status(code) for code in StatusCode if code != StatusCode.CANCELLED)
