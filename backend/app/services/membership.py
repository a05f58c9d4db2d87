"""
Group lookup and membership checks shared by the movie, group and rotation
services.
"""
from sqlalchemy.orm import Session

from app.db.models import Group, GroupMember
from app.services.errors import GroupNotFoundError, NotGroupMemberError


def get_group_or_raise(db: Session, group_id: int) -> Group:
    group = db.query(Group).filter(Group.id == group_id).first()
    if group is None:
        raise GroupNotFoundError("Group not found")
    return group


def lock_group_or_raise(db: Session, group_id: int) -> Group:
    """
    Load the group row with SELECT ... FOR UPDATE.

    Every mutation of rotation state goes through this so that requests
    against the same group run one after another.
    """
    group = (
        db.query(Group)
        .filter(Group.id == group_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if group is None:
        raise GroupNotFoundError("Group not found")
    return group


def ordered_member_ids(db: Session, group_id: int) -> list[int]:
    """User ids of the group's members in rotation (join) order."""
    rows = (
        db.query(GroupMember.user_id)
        .filter(GroupMember.group_id == group_id)
        .order_by(GroupMember.id.asc())
        .all()
    )
    return [row.user_id for row in rows]


def is_member(db: Session, group_id: int, user_id: int) -> bool:
    return (
        db.query(GroupMember.id)
        .filter(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
        .first()
        is not None
    )


def assert_member(db: Session, group_id: int, user_id: int) -> None:
    if not is_member(db, group_id, user_id):
        raise NotGroupMemberError("You are not a member of this group")
