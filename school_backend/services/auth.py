import logging
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..models import (
    ADMIN_OCCUPATION,
    DEFAULT_LATE_REASON,
    STAFF_OCCUPATION,
    TEACHER_OCCUPATION,
    Address,
    LateReason,
    Occupation,
    Parent,
    Role,
    Staff,
    Student,
    User,
)
from ..schemas import LoginResponse, ProfileOut
from ..security import create_access_token, hash_password, verify_password
from .common import normalize_email, require_text, validate_pesel


logger = logging.getLogger(__name__)

SELF_REGISTRATION_ROLES = {Role.STUDENT, Role.PARENT, Role.TEACHER}
STAFF_OCCUPATIONS = {
    Role.TEACHER: TEACHER_OCCUPATION,
    Role.ADMIN: ADMIN_OCCUPATION,
    Role.SCHOOL_STAFF: STAFF_OCCUPATION,
}
DUPLICATE_USER_DETAIL = "Email or PESEL already exists"


def ensure_occupation(db: Session, name: str) -> Occupation:
    occupation = db.query(Occupation).filter(Occupation.occupation == name).first()
    if occupation:
        return occupation
    occupation = Occupation(occupation=name)
    db.add(occupation)
    db.flush()
    return occupation


def _placeholder_address(db: Session) -> Address:
    address = Address(
        building_number="1",
        town="Unknown",
        voivodeship="Unknown",
        country="Unknown",
        post_code="00-000",
    )
    db.add(address)
    db.flush()
    return address


def create_account(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    pesel: str,
    role: Role,
    salary: float = 0,
) -> User:
    """Insert a user and its role profile row in one transaction."""
    user = User(
        first_name=require_text(first_name, "first_name"),
        last_name=require_text(last_name, "last_name"),
        email=normalize_email(email),
        password_hash=hash_password(require_text(password, "password")),
        pesel=validate_pesel(pesel),
    )
    try:
        db.add(user)
        db.flush()

        if role == Role.STUDENT:
            max_number = db.scalar(select(func.max(Student.student_number))) or 0
            db.add(Student(user_id=user.user_id, student_number=max_number + 1, enrollment_date=datetime.now()))
        elif role == Role.PARENT:
            address = _placeholder_address(db)
            db.add(Parent(user_id=user.user_id, address_id=address.address_id))
        else:
            occupation = ensure_occupation(db, STAFF_OCCUPATIONS[role])
            db.add(
                Staff(
                    user_id=user.user_id,
                    occupation_id=occupation.occupation_id,
                    employed_at=datetime.now(),
                    salary=salary,
                )
            )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_USER_DETAIL) from exc

    db.refresh(user)
    logger.info(f"Registered user {user.user_id} as {role.value}")
    return user


def register_user(db: Session, *, email: str, password: str, first_name: str, last_name: str, pesel: str, role: str) -> User:
    try:
        parsed_role = Role((role or "student").strip().lower())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Unsupported role") from exc
    if parsed_role not in SELF_REGISTRATION_ROLES:
        raise HTTPException(status_code=400, detail="Unsupported role")
    return create_account(
        db,
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        pesel=pesel,
        role=parsed_role,
    )


def detect_role(db: Session, user_id: int) -> Role | None:
    occupation = db.scalar(
        select(Occupation.occupation)
        .join(Staff, Staff.occupation_id == Occupation.occupation_id)
        .where(Staff.user_id == user_id)
    )
    if occupation is not None:
        if occupation == TEACHER_OCCUPATION:
            return Role.TEACHER
        if occupation == ADMIN_OCCUPATION:
            return Role.ADMIN
        return Role.SCHOOL_STAFF

    if db.execute(select(Student.student_id).where(Student.user_id == user_id)).first():
        return Role.STUDENT
    if db.execute(select(Parent.parent_id).where(Parent.user_id == user_id)).first():
        return Role.PARENT
    return None


def login_user(db: Session, *, email: str, password: str) -> LoginResponse:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    role = detect_role(db, user.user_id)
    if role is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User has no assigned role")

    token = create_access_token(user_id=user.user_id, email=user.email, role=role.value)
    logger.info(f"User {user.user_id} logged in as {role.value}")
    return LoginResponse(token=token, user=profile_of(user, role))


def profile_of(user: User, role: Role) -> ProfileOut:
    return ProfileOut(
        user_id=user.user_id,
        first_name=user.first_name,
        middle_name=user.middle_name,
        last_name=user.last_name,
        email=user.email,
        pesel=user.pesel,
        created_at=user.created_at,
        updated_at=user.updated_at,
        role=role,
    )


def seed_defaults(db: Session) -> None:
    for name in (TEACHER_OCCUPATION, STAFF_OCCUPATION, ADMIN_OCCUPATION):
        ensure_occupation(db, name)
    if not db.query(LateReason).first():
        db.add(LateReason(reason=DEFAULT_LATE_REASON))
    db.commit()

    if not settings.admin_email or not settings.admin_password:
        return
    if db.query(User).filter(User.email == settings.admin_email.strip().lower()).first():
        return
    create_account(
        db,
        email=settings.admin_email,
        password=settings.admin_password,
        first_name="Admin",
        last_name="Admin",
        pesel=settings.admin_pesel,
        role=Role.ADMIN,
    )
