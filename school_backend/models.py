import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class Role(str, enum.Enum):
    STUDENT = "student"
    PARENT = "parent"
    TEACHER = "teacher"
    SCHOOL_STAFF = "school_staff"
    ADMIN = "admin"


TEACHER_OCCUPATION = "Nauczyciel"
STAFF_OCCUPATION = "Sekretariat"
ADMIN_OCCUPATION = "Administrator"
DEFAULT_LATE_REASON = "Spóźnienie"


class Address(Base):
    __tablename__ = "address"

    address_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    building_number: Mapped[str] = mapped_column(String(16), nullable=False)
    apartment_number: Mapped[str | None] = mapped_column(String(16), nullable=True)
    town: Mapped[str] = mapped_column(String(128), nullable=False)
    voivodeship: Mapped[str] = mapped_column(String(64), nullable=False)
    country: Mapped[str] = mapped_column(String(64), nullable=False)
    post_code: Mapped[str] = mapped_column(String(16), nullable=False)


class User(Base):
    __tablename__ = "user"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    first_name: Mapped[str] = mapped_column(String(64), nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_name: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    pesel: Mapped[str] = mapped_column(String(11), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)


class Occupation(Base):
    __tablename__ = "occupations"

    occupation_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    occupation: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)


class Staff(Base):
    __tablename__ = "staff"

    staff_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.user_id"), unique=True, nullable=False)
    occupation_id: Mapped[int] = mapped_column(ForeignKey("occupations.occupation_id"), nullable=False)
    employed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    salary: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), default=0, nullable=False)


class SchoolClass(Base):
    __tablename__ = "class"

    class_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(32), nullable=False)
    main_teacher_id: Mapped[int | None] = mapped_column(ForeignKey("staff.staff_id"), nullable=True)


class Student(Base):
    __tablename__ = "student"

    student_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.user_id"), unique=True, nullable=False)
    class_id: Mapped[int | None] = mapped_column(ForeignKey("class.class_id"), nullable=True, index=True)
    student_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    enrollment_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)


class Parent(Base):
    __tablename__ = "parent"

    parent_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.user_id"), unique=True, nullable=False)
    address_id: Mapped[int | None] = mapped_column(ForeignKey("address.address_id"), nullable=True)


class ParentStudentPair(Base):
    __tablename__ = "parentstudentpair"

    parent_id: Mapped[int] = mapped_column(ForeignKey("parent.parent_id"), primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("student.student_id"), primary_key=True)


class Subject(Base):
    __tablename__ = "subject"

    subject_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)


class Course(Base):
    __tablename__ = "course"

    course_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    weight: Mapped[float] = mapped_column(Numeric(4, 2, asdecimal=False), default=1, nullable=False)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subject.subject_id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)


class TeacherCoursePair(Base):
    __tablename__ = "teachercoursepair"

    teacher_id: Mapped[int] = mapped_column(ForeignKey("staff.staff_id"), primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("course.course_id"), primary_key=True)


class StudentCoursePair(Base):
    __tablename__ = "studentcoursepairs"

    student_id: Mapped[int] = mapped_column(ForeignKey("student.student_id"), primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("course.course_id"), primary_key=True)


class Room(Base):
    __tablename__ = "room"

    room_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)


class Lesson(Base):
    __tablename__ = "lesson"

    lesson_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("class.class_id"), nullable=False, index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("course.course_id"), nullable=False, index=True)
    room_id: Mapped[int | None] = mapped_column(ForeignKey("room.room_id"), nullable=True)
    teacher_id: Mapped[int | None] = mapped_column(ForeignKey("staff.staff_id"), nullable=True, index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    duration_min: Mapped[int] = mapped_column(Integer, default=45, nullable=False)
    room_name: Mapped[str | None] = mapped_column(String(64), nullable=True)


class LateReason(Base):
    __tablename__ = "latereason"

    late_reason_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    reason: Mapped[str] = mapped_column(String(128), nullable=False)


class Absence(Base):
    __tablename__ = "absence"

    absence_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("student.student_id"), nullable=False, index=True)
    lesson_id: Mapped[int] = mapped_column(ForeignKey("lesson.lesson_id"), nullable=False, index=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    late_reason_id: Mapped[int | None] = mapped_column(ForeignKey("latereason.late_reason_id"), nullable=True)


class Grade(Base):
    __tablename__ = "grade"

    grade_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("student.student_id"), nullable=False, index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("course.course_id"), nullable=False, index=True)
    lesson_id: Mapped[int | None] = mapped_column(ForeignKey("lesson.lesson_id"), nullable=True)
    grade: Mapped[float] = mapped_column(Numeric(4, 2, asdecimal=False), nullable=False)
    weight: Mapped[float] = mapped_column(Numeric(4, 2, asdecimal=False), default=1, nullable=False)
    comment: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)


class ScholarshipType(Base):
    __tablename__ = "scholarshiptype"

    scholarship_type_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    requirements: Mapped[str] = mapped_column(String(255), nullable=False)
    duration_semesters: Mapped[int] = mapped_column(Integer, default=1, nullable=False)


class Scholarship(Base):
    __tablename__ = "scholarship"

    scholarship_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("student.student_id"), nullable=False, index=True)
    scholarship_type_id: Mapped[int] = mapped_column(ForeignKey("scholarshiptype.scholarship_type_id"), nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)


class Announcement(Base):
    __tablename__ = "announcement"

    announcement_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.user_id"), nullable=False)
    class_id: Mapped[int | None] = mapped_column(ForeignKey("class.class_id"), nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)
