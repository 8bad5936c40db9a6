from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware import CurrentUser, require_roles
from ..models import Role, Student
from ..schemas import StudentScholarshipRequest
from ..services import student as student_service
from ..services.common import resolve_student

router = APIRouter(prefix="/api/student", tags=["Student"])

allow_student_or_parent = require_roles(Role.STUDENT, Role.PARENT)


def get_viewed_student(
    x_child_id: int | None = Header(default=None, alias="X-Child-Id"),
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(allow_student_or_parent),
) -> Student:
    return resolve_student(db, current_user, x_child_id)


@router.post("/scholarships", status_code=status.HTTP_201_CREATED)
def apply_for_scholarship(
    payload: StudentScholarshipRequest,
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(allow_student_or_parent),
):
    scholarship = student_service.apply_for_scholarship(db, current_user, payload.scholarship_type_id)
    return {"message": "Scholarship granted", "scholarship_id": scholarship.scholarship_id}


@router.get("/scholarships")
def scholarships(student: Student = Depends(get_viewed_student), db: Session = Depends(get_db_session)):
    return student_service.scholarships_overview(db, student.student_id)


@router.get("/schedule")
def schedule(
    future: bool = Query(default=False),
    student: Student = Depends(get_viewed_student),
    db: Session = Depends(get_db_session),
):
    return student_service.schedule(db, student, only_future=future)


@router.get("/attendance")
def attendance(student: Student = Depends(get_viewed_student), db: Session = Depends(get_db_session)):
    return student_service.attendance(db, student)


@router.get("/grades")
def grades(student: Student = Depends(get_viewed_student), db: Session = Depends(get_db_session)):
    return student_service.grades(db, student)


@router.get("/class-info")
def class_info(
    x_child_id: int | None = Header(default=None, alias="X-Child-Id"),
    student: Student = Depends(get_viewed_student),
    db: Session = Depends(get_db_session),
):
    return student_service.class_info(db, student, x_child_id)


@router.get("/courses")
def courses(student: Student = Depends(get_viewed_student), db: Session = Depends(get_db_session)):
    return student_service.courses(db, student)


@router.get("/courses/{course_id}")
def course_detail(course_id: int, student: Student = Depends(get_viewed_student), db: Session = Depends(get_db_session)):
    return student_service.course_detail(db, student, course_id)


@router.get("/dashboard-summary")
def dashboard_summary(student: Student = Depends(get_viewed_student), db: Session = Depends(get_db_session)):
    return student_service.dashboard_summary(db, student)
