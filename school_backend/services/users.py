import logging

from fastapi import HTTPException, status
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import (
    Absence,
    Announcement,
    Grade,
    Lesson,
    Parent,
    ParentStudentPair,
    SchoolClass,
    Scholarship,
    Staff,
    Student,
    StudentCoursePair,
    TeacherCoursePair,
    User,
)
from ..schemas import UserCreateRequest, UserUpdateRequest
from ..security import hash_password
from .auth import DUPLICATE_USER_DETAIL
from .common import normalize_email, require_text, validate_pesel


logger = logging.getLogger(__name__)


def _check_user_id(user_id: int) -> None:
    if user_id <= 0:
        raise HTTPException(status_code=400, detail="Invalid user id")


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.user_id.desc()).all()


def get_user(db: Session, user_id: int) -> User:
    _check_user_id(user_id)
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def create_user(db: Session, payload: UserCreateRequest) -> User:
    middle_name = payload.middle_name.strip() if payload.middle_name else None
    user = User(
        first_name=require_text(payload.first_name, "first_name"),
        middle_name=middle_name or None,
        last_name=require_text(payload.last_name, "last_name"),
        email=normalize_email(payload.email),
        password_hash=hash_password(require_text(payload.password, "password")),
        pesel=validate_pesel(payload.pesel),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_USER_DETAIL) from exc
    db.refresh(user)
    logger.info(f"Created user {user.user_id}")
    return user


def update_user(db: Session, user_id: int, payload: UserUpdateRequest) -> User:
    _check_user_id(user_id)
    changes: dict[str, str] = {}
    for field in ("first_name", "middle_name", "last_name"):
        value = getattr(payload, field)
        if value is not None and value.strip():
            changes[field] = value.strip()
    if payload.email is not None and payload.email.strip():
        changes["email"] = normalize_email(payload.email)
    if payload.pesel is not None and payload.pesel.strip():
        changes["pesel"] = validate_pesel(payload.pesel)
    if payload.password is not None and payload.password.strip():
        changes["password_hash"] = hash_password(payload.password)

    if not changes:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    for field, value in changes.items():
        setattr(user, field, value)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_USER_DETAIL) from exc
    db.refresh(user)
    return user


def delete_user_cascade(db: Session, user_id: int) -> None:
    """Remove a user together with every row that references it, in one transaction."""
    _check_user_id(user_id)
    if not db.get(User, user_id):
        raise HTTPException(status_code=404, detail="User not found")

    staff_id = db.scalar(select(Staff.staff_id).where(Staff.user_id == user_id))
    student_id = db.scalar(select(Student.student_id).where(Student.user_id == user_id))
    parent_id = db.scalar(select(Parent.parent_id).where(Parent.user_id == user_id))

    try:
        if staff_id is not None:
            db.execute(delete(TeacherCoursePair).where(TeacherCoursePair.teacher_id == staff_id))
            db.execute(update(Lesson).where(Lesson.teacher_id == staff_id).values(teacher_id=None))
            db.execute(update(SchoolClass).where(SchoolClass.main_teacher_id == staff_id).values(main_teacher_id=None))

        if student_id is not None:
            db.execute(delete(Grade).where(Grade.student_id == student_id))
            db.execute(delete(Absence).where(Absence.student_id == student_id))
            db.execute(delete(Scholarship).where(Scholarship.student_id == student_id))
            db.execute(delete(StudentCoursePair).where(StudentCoursePair.student_id == student_id))
            db.execute(delete(ParentStudentPair).where(ParentStudentPair.student_id == student_id))

        if parent_id is not None:
            db.execute(delete(ParentStudentPair).where(ParentStudentPair.parent_id == parent_id))

        db.execute(delete(Announcement).where(Announcement.user_id == user_id))
        db.execute(delete(Student).where(Student.user_id == user_id))
        db.execute(delete(Staff).where(Staff.user_id == user_id))
        db.execute(delete(Parent).where(Parent.user_id == user_id))
        db.execute(delete(User).where(User.user_id == user_id))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Failed to delete user {user_id}")
        raise

    logger.info(f"Deleted user {user_id} (staff={staff_id}, student={student_id}, parent={parent_id})")
