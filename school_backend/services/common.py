import logging
import re
from datetime import datetime
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session, aliased

from ..middleware import CurrentUser
from ..models import Announcement, Parent, ParentStudentPair, Role, SchoolClass, Staff, Student, User
from ..schemas import AnnouncementCreateRequest


logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
PESEL_PATTERN = re.compile(r"^\d{11}$")

Author = aliased(User, name="author")


def normalize_email(value: str) -> str:
    normalized = value.lower().strip()
    if not EMAIL_PATTERN.match(normalized):
        raise HTTPException(status_code=400, detail="Invalid email format")
    return normalized


def validate_pesel(value: str) -> str:
    pesel = value.strip()
    if not PESEL_PATTERN.match(pesel):
        raise HTTPException(status_code=400, detail="PESEL must be 11 digits")
    return pesel


def require_text(value: str | None, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise HTTPException(status_code=400, detail=f"Field '{field}' is required")
    return cleaned


def as_dicts(result) -> list[dict[str, Any]]:
    return [dict(row) for row in result.mappings().all()]


def first_dict(result) -> dict[str, Any] | None:
    row = result.mappings().first()
    return dict(row) if row else None


def get_staff_id(db: Session, user_id: int) -> int:
    staff_id = db.scalar(select(Staff.staff_id).where(Staff.user_id == user_id))
    if staff_id is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User has no staff profile")
    return staff_id


def get_class_or_404(db: Session, class_id: int) -> SchoolClass:
    school_class = db.get(SchoolClass, class_id)
    if not school_class:
        raise HTTPException(status_code=404, detail="Class not found")
    return school_class


def is_parent_of(db: Session, parent_user_id: int, student_id: int) -> bool:
    stmt = (
        select(ParentStudentPair.student_id)
        .join(Parent, Parent.parent_id == ParentStudentPair.parent_id)
        .where(Parent.user_id == parent_user_id, ParentStudentPair.student_id == student_id)
    )
    return db.execute(stmt).first() is not None


def resolve_student(db: Session, current_user: CurrentUser, child_id: int | None) -> Student:
    """Student whose data the caller is viewing: themselves, or a parent's linked child."""
    if current_user.role == Role.PARENT:
        if child_id is None:
            raise HTTPException(status_code=400, detail="X-Child-Id header is required for parents")
        if not is_parent_of(db, current_user.user_id, child_id):
            logger.warning(f"Parent user {current_user.user_id} requested data of unrelated student {child_id}")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your child")
        student = db.get(Student, child_id)
    else:
        student = db.query(Student).filter(Student.user_id == current_user.user_id).first()

    if not student:
        raise HTTPException(status_code=404, detail="Student profile not found")
    return student


def require_own_child(db: Session, current_user: CurrentUser, student_id: int | None) -> int:
    if student_id is None:
        raise HTTPException(status_code=400, detail="Query parameter 'studentId' is required")
    if not is_parent_of(db, current_user.user_id, student_id):
        logger.warning(f"Parent user {current_user.user_id} requested data of unrelated student {student_id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return student_id


def announcement_columns():
    return (
        Announcement.announcement_id,
        Announcement.title,
        Announcement.content,
        Announcement.created_at,
        Announcement.is_pinned,
        Author.first_name,
        Author.last_name,
    )


def announcements_select(*extra_columns):
    return select(*announcement_columns(), *extra_columns).join(Author, Author.user_id == Announcement.user_id)


def post_announcement(
    db: Session, current_user: CurrentUser, payload: AnnouncementCreateRequest, require_class: bool = False
) -> Announcement:
    if payload.class_id is None:
        if require_class:
            raise HTTPException(status_code=400, detail="Field 'class_id' is required")
    else:
        get_class_or_404(db, payload.class_id)
    now = datetime.now()
    announcement = Announcement(
        user_id=current_user.user_id,
        class_id=payload.class_id,
        title=require_text(payload.title, "title"),
        content=require_text(payload.content, "content"),
        is_pinned=payload.is_pinned,
        created_at=now,
        updated_at=now,
    )
    db.add(announcement)
    db.commit()
    logger.info(f"User {current_user.user_id} posted announcement {announcement.announcement_id} (class {payload.class_id})")
    return announcement
