import itertools
import os
from datetime import datetime, timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from school_backend.app import app
from school_backend.database import Base, enable_sqlite_foreign_keys, get_db_session
from school_backend.models import (
    Course,
    Lesson,
    Parent,
    ParentStudentPair,
    Role,
    Room,
    SchoolClass,
    Staff,
    Student,
    StudentCoursePair,
    Subject,
    TeacherCoursePair,
)
from school_backend.security import create_access_token
from school_backend.services.auth import create_account, seed_defaults


engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

_pesels = itertools.count(10000000000)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    seed_defaults(db)
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db_session():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db_session] = override_get_db_session
    yield TestClient(app)
    app.dependency_overrides.clear()


class Account:
    def __init__(self, user, role: Role, profile_id: int):
        self.user_id = user.user_id
        self.email = user.email
        self.role = role
        self.profile_id = profile_id
        token = create_access_token(user_id=self.user_id, email=self.email, role=role.value)
        self.headers = {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_account(db_session):
    def _make(role: Role = Role.STUDENT, first_name: str = "Jan", last_name: str = "Kowalski", password: str = "secret123"):
        pesel = str(next(_pesels))
        user = create_account(
            db_session,
            email=f"{role.value}.{pesel}@school.pl",
            password=password,
            first_name=first_name,
            last_name=last_name,
            pesel=pesel,
            role=role,
        )
        if role == Role.STUDENT:
            profile_id = db_session.query(Student).filter(Student.user_id == user.user_id).one().student_id
        elif role == Role.PARENT:
            profile_id = db_session.query(Parent).filter(Parent.user_id == user.user_id).one().parent_id
        else:
            profile_id = db_session.query(Staff).filter(Staff.user_id == user.user_id).one().staff_id
        return Account(user, role, profile_id)

    return _make


@pytest.fixture
def school(db_session, make_account):
    """A class 1A led by a teacher, one student and one parent linked to them, a math course and lessons."""
    teacher = make_account(Role.TEACHER, first_name="Anna", last_name="Nowak")
    student = make_account(Role.STUDENT, first_name="Piotr", last_name="Zielinski")
    parent = make_account(Role.PARENT, first_name="Ewa", last_name="Zielinska")

    school_class = SchoolClass(name="1A", main_teacher_id=teacher.profile_id)
    subject = Subject(name="Matematyka")
    room = Room(name="Sala 101")
    db_session.add_all([school_class, subject, room])
    db_session.flush()

    course = Course(name="Matematyka 1A", description="Algebra", weight=1, subject_id=subject.subject_id)
    db_session.add(course)
    db_session.flush()

    db_session.add(TeacherCoursePair(teacher_id=teacher.profile_id, course_id=course.course_id))
    db_session.add(StudentCoursePair(student_id=student.profile_id, course_id=course.course_id))
    db_session.add(ParentStudentPair(parent_id=parent.profile_id, student_id=student.profile_id))
    db_session.get(Student, student.profile_id).class_id = school_class.class_id

    now = datetime.now()
    past_lesson = Lesson(
        class_id=school_class.class_id,
        course_id=course.course_id,
        room_id=room.room_id,
        teacher_id=teacher.profile_id,
        start_time=(now - timedelta(hours=2)).replace(second=0, microsecond=0),
        duration_min=45,
        room_name=room.name,
    )
    future_lesson = Lesson(
        class_id=school_class.class_id,
        course_id=course.course_id,
        room_id=room.room_id,
        teacher_id=teacher.profile_id,
        start_time=(now + timedelta(days=1)).replace(hour=8, minute=0, second=0, microsecond=0),
        duration_min=45,
        room_name=room.name,
    )
    db_session.add_all([past_lesson, future_lesson])
    db_session.commit()

    return {
        "teacher": teacher,
        "student": student,
        "parent": parent,
        "class_id": school_class.class_id,
        "subject_id": subject.subject_id,
        "room_id": room.room_id,
        "course_id": course.course_id,
        "past_lesson_id": past_lesson.lesson_id,
        "future_lesson_id": future_lesson.lesson_id,
    }
