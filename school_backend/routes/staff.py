from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware import CurrentUser, require_roles
from ..models import Role
from ..schemas import AnnouncementCreateRequest, AttendanceRegisterRequest, LessonGradeRequest, MessageResponse
from ..services import staff as staff_service
from ..services.common import get_staff_id, post_announcement

router = APIRouter(prefix="/api/staff", tags=["Staff"])

allow_staff = require_roles(Role.TEACHER, Role.SCHOOL_STAFF, Role.ADMIN)


def get_member_staff_id(
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(allow_staff),
) -> int:
    return get_staff_id(db, current_user.user_id)


@router.get("/dashboard-summary")
def dashboard_summary(staff_id: int = Depends(get_member_staff_id), db: Session = Depends(get_db_session)):
    return staff_service.dashboard_summary(db, staff_id)


@router.get("/schedule")
def schedule(staff_id: int = Depends(get_member_staff_id), db: Session = Depends(get_db_session)):
    return staff_service.schedule(db, staff_id)


@router.get("/classes")
def classes(staff_id: int = Depends(get_member_staff_id), db: Session = Depends(get_db_session)):
    return staff_service.classes(db, staff_id)


@router.get("/classes/{class_id}")
def class_detail(class_id: int, _: int = Depends(get_member_staff_id), db: Session = Depends(get_db_session)):
    return staff_service.class_detail(db, class_id)


@router.post("/announcements", status_code=status.HTTP_201_CREATED)
def create_announcement(
    payload: AnnouncementCreateRequest,
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(allow_staff),
):
    get_staff_id(db, current_user.user_id)
    announcement = post_announcement(db, current_user, payload, require_class=True)
    return {"message": "Announcement published", "announcement_id": announcement.announcement_id}


@router.get("/lesson/{lesson_id}/details")
def lesson_details(lesson_id: int, _: int = Depends(get_member_staff_id), db: Session = Depends(get_db_session)):
    return staff_service.lesson_details(db, lesson_id)


@router.post("/lesson/{lesson_id}/register", response_model=MessageResponse)
def register_attendance(
    lesson_id: int,
    payload: AttendanceRegisterRequest,
    _: int = Depends(get_member_staff_id),
    db: Session = Depends(get_db_session),
):
    staff_service.register_attendance(db, lesson_id, payload)
    return MessageResponse(message="Attendance saved")


@router.post("/grade", status_code=status.HTTP_201_CREATED)
def add_grade(payload: LessonGradeRequest, _: int = Depends(get_member_staff_id), db: Session = Depends(get_db_session)):
    grade = staff_service.grade_for_lesson(db, payload)
    return {"message": "Grade added", "grade_id": grade.grade_id}


@router.delete("/grade/{grade_id}", response_model=MessageResponse)
def delete_grade(grade_id: int, _: int = Depends(get_member_staff_id), db: Session = Depends(get_db_session)):
    staff_service.delete_grade(db, grade_id)
    return MessageResponse(message="Grade deleted")
