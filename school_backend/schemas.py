from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .models import Role


class MessageResponse(BaseModel):
    message: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    first_name: str
    middle_name: str | None = None
    last_name: str
    email: str
    pesel: str
    created_at: datetime
    updated_at: datetime


class ProfileOut(UserOut):
    role: Role


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)
    first_name: str = Field(max_length=64)
    last_name: str = Field(max_length=64)
    pesel: str
    role: str = "student"


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str
    user: ProfileOut


class UserCreateRequest(BaseModel):
    first_name: str = Field(max_length=64)
    middle_name: str | None = Field(default=None, max_length=64)
    last_name: str = Field(max_length=64)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)
    pesel: str


class UserUpdateRequest(BaseModel):
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    password: str | None = None
    pesel: str | None = None


class AdminRegisterRequest(RegisterRequest):
    role: Literal["student", "teacher", "admin", "parent"]


class AssignClassRequest(BaseModel):
    user_id: int
    class_id: int


class ScholarshipCreateRequest(BaseModel):
    student_id: int
    scholarship_type_id: int
    amount: float = Field(gt=0)
    start_date: datetime | None = None


class ClassCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=32)
    main_teacher_id: int | None = None


class CourseCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = None
    weight: float | None = Field(default=None, gt=0)
    subject_id: int
    teacher_id: int


class LessonCreateRequest(BaseModel):
    class_id: int
    course_id: int
    room_id: int | None = None
    teacher_id: int
    start_time: datetime
    duration_min: int | None = Field(default=None, gt=0)


class AnnouncementCreateRequest(BaseModel):
    title: str
    content: str
    class_id: int | None = None
    is_pinned: bool = False


class StudentScholarshipRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scholarship_type_id: int | None = Field(default=None, alias="scholarshipTypeId")


class LessonRegisterEntry(BaseModel):
    student_id: int
    is_absent: bool = False
    late_reason_id: int | None = None
    grade: float | None = None
    weight: float | None = None


class LessonRegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    students_data: list[LessonRegisterEntry] = Field(alias="studentsData")


class AttendanceEntry(BaseModel):
    student_id: int
    status: Literal["present", "absent", "late"]


class AttendanceRegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    attendance_data: list[AttendanceEntry] = Field(alias="attendanceData")


class AddGradeRequest(BaseModel):
    student_id: int
    course_id: int
    grade: float
    weight: float = 1.0


class GradeUpdateRequest(BaseModel):
    grade: float
    weight: float


class LessonGradeRequest(BaseModel):
    student_id: int
    lesson_id: int
    grade: float
    weight: float = 1.0
    comment: str | None = None
