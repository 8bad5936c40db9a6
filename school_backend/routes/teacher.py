from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware import CurrentUser, require_roles
from ..models import Role
from ..schemas import (
    AddGradeRequest,
    AnnouncementCreateRequest,
    GradeUpdateRequest,
    LessonRegisterRequest,
    MessageResponse,
)
from ..services import teacher as teacher_service
from ..services.common import get_staff_id, post_announcement

router = APIRouter(prefix="/api/teacher", tags=["Teacher"])

allow_teacher = require_roles(Role.TEACHER, Role.ADMIN)


def get_teacher_staff_id(
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(allow_teacher),
) -> int:
    return get_staff_id(db, current_user.user_id)


@router.get("/schedule")
def schedule(staff_id: int = Depends(get_teacher_staff_id), db: Session = Depends(get_db_session)):
    return teacher_service.schedule(db, staff_id)


@router.get("/classes")
def classes(staff_id: int = Depends(get_teacher_staff_id), db: Session = Depends(get_db_session)):
    return teacher_service.classes(db, staff_id)


@router.get("/classes/{class_id}")
def class_detail(class_id: int, _: int = Depends(get_teacher_staff_id), db: Session = Depends(get_db_session)):
    return teacher_service.class_detail(db, class_id)


@router.get("/dashboard-summary")
def dashboard_summary(staff_id: int = Depends(get_teacher_staff_id), db: Session = Depends(get_db_session)):
    return teacher_service.dashboard_summary(db, staff_id)


@router.get("/lesson/{lesson_id}/details")
def lesson_details(lesson_id: int, _: int = Depends(get_teacher_staff_id), db: Session = Depends(get_db_session)):
    return teacher_service.lesson_details(db, lesson_id)


@router.post("/lesson/{lesson_id}/register", response_model=MessageResponse)
def register_lesson(
    lesson_id: int,
    payload: LessonRegisterRequest,
    _: int = Depends(get_teacher_staff_id),
    db: Session = Depends(get_db_session),
):
    teacher_service.register_lesson(db, lesson_id, payload)
    return MessageResponse(message="Lesson register saved")


@router.post("/add-grade", status_code=status.HTTP_201_CREATED)
def add_grade(payload: AddGradeRequest, _: int = Depends(get_teacher_staff_id), db: Session = Depends(get_db_session)):
    grade = teacher_service.add_grade(db, payload)
    return {"message": "Grade added", "grade_id": grade.grade_id}


@router.get("/course/{course_id}/students")
def course_students(course_id: int, _: int = Depends(get_teacher_staff_id), db: Session = Depends(get_db_session)):
    return teacher_service.course_students(db, course_id)


@router.put("/grade/{grade_id}", response_model=MessageResponse)
def update_grade(
    grade_id: int,
    payload: GradeUpdateRequest,
    _: int = Depends(get_teacher_staff_id),
    db: Session = Depends(get_db_session),
):
    teacher_service.update_grade(db, grade_id, payload)
    return MessageResponse(message="Grade updated")


@router.delete("/grade/{grade_id}", response_model=MessageResponse)
def delete_grade(grade_id: int, _: int = Depends(get_teacher_staff_id), db: Session = Depends(get_db_session)):
    teacher_service.delete_grade(db, grade_id)
    return MessageResponse(message="Grade deleted")


@router.post("/announcements", status_code=status.HTTP_201_CREATED)
def create_announcement(
    payload: AnnouncementCreateRequest,
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(allow_teacher),
):
    get_staff_id(db, current_user.user_id)
    announcement = post_announcement(db, current_user, payload)
    return {"message": "Announcement published", "announcement_id": announcement.announcement_id}
