from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware import CurrentUser, get_current_user, require_roles
from ..models import Role
from ..schemas import (
    AdminRegisterRequest,
    AnnouncementCreateRequest,
    AssignClassRequest,
    ClassCreateRequest,
    CourseCreateRequest,
    LessonCreateRequest,
    MessageResponse,
    ScholarshipCreateRequest,
)
from ..services import admin as admin_service
from ..services.common import post_announcement
from ..services.users import delete_user_cascade

router = APIRouter(prefix="/api/admin", tags=["Admin"])

require_admin = require_roles(Role.ADMIN)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: AdminRegisterRequest,
    db: Session = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    user = admin_service.register_account(db, payload)
    return {"message": "Account created", "user_id": user.user_id}


@router.get("/users")
def users(db: Session = Depends(get_db_session), _: CurrentUser = Depends(require_admin)):
    return admin_service.list_users_with_roles(db)


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, db: Session = Depends(get_db_session), _: CurrentUser = Depends(require_admin)):
    delete_user_cascade(db, user_id)
    return MessageResponse(message="User deleted")


@router.post("/assign-class", response_model=MessageResponse)
def assign_class(
    payload: AssignClassRequest,
    db: Session = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    admin_service.assign_class(db, payload)
    return MessageResponse(message="Class assigned")


@router.get("/scholarship-types")
def scholarship_types(db: Session = Depends(get_db_session), _: CurrentUser = Depends(get_current_user)):
    return admin_service.list_scholarship_types(db)


@router.get("/scholarships")
def scholarships(db: Session = Depends(get_db_session), _: CurrentUser = Depends(require_admin)):
    return admin_service.list_scholarships(db)


@router.post("/scholarships", status_code=status.HTTP_201_CREATED)
def grant_scholarship(
    payload: ScholarshipCreateRequest,
    db: Session = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    scholarship = admin_service.grant_scholarship(db, payload)
    return {"message": "Scholarship granted", "scholarship_id": scholarship.scholarship_id}


@router.delete("/scholarships/{scholarship_id}", response_model=MessageResponse)
def revoke_scholarship(
    scholarship_id: int,
    db: Session = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    admin_service.revoke_scholarship(db, scholarship_id)
    return MessageResponse(message="Scholarship revoked")


@router.get("/stats")
def stats(db: Session = Depends(get_db_session), _: CurrentUser = Depends(require_admin)):
    return admin_service.school_stats(db)


@router.get("/rooms")
def rooms(db: Session = Depends(get_db_session), _: CurrentUser = Depends(get_current_user)):
    return admin_service.list_rooms(db)


@router.get("/classes")
def classes(db: Session = Depends(get_db_session), _: CurrentUser = Depends(get_current_user)):
    return admin_service.list_classes(db)


@router.post("/classes", status_code=status.HTTP_201_CREATED)
def create_class(
    payload: ClassCreateRequest,
    db: Session = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    school_class = admin_service.create_class(db, payload)
    return {"message": "Class created", "class_id": school_class.class_id}


@router.delete("/classes/{class_id}", response_model=MessageResponse)
def delete_class(class_id: int, db: Session = Depends(get_db_session), _: CurrentUser = Depends(require_admin)):
    admin_service.delete_class(db, class_id)
    return MessageResponse(message="Class deleted")


@router.get("/teachers")
def teachers(db: Session = Depends(get_db_session), _: CurrentUser = Depends(get_current_user)):
    return admin_service.list_teachers(db)


@router.get("/subjects")
def subjects(db: Session = Depends(get_db_session), _: CurrentUser = Depends(get_current_user)):
    return admin_service.list_subjects(db)


@router.get("/courses")
def courses(db: Session = Depends(get_db_session), _: CurrentUser = Depends(get_current_user)):
    return admin_service.list_courses(db)


@router.post("/courses", status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreateRequest,
    db: Session = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    course = admin_service.create_course(db, payload)
    return {"message": "Course created", "course_id": course.course_id}


@router.delete("/courses/{course_id}", response_model=MessageResponse)
def delete_course(course_id: int, db: Session = Depends(get_db_session), _: CurrentUser = Depends(require_admin)):
    admin_service.delete_course(db, course_id)
    return MessageResponse(message="Course deleted")


@router.get("/lessons-all")
def lessons_all(db: Session = Depends(get_db_session), _: CurrentUser = Depends(get_current_user)):
    return admin_service.list_recent_lessons(db)


@router.post("/lessons", status_code=status.HTTP_201_CREATED)
def create_lesson(
    payload: LessonCreateRequest,
    db: Session = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    lesson = admin_service.schedule_lesson(db, payload)
    return {"message": "Lesson scheduled", "lesson_id": lesson.lesson_id}


@router.delete("/lessons/{lesson_id}", response_model=MessageResponse)
def delete_lesson(lesson_id: int, db: Session = Depends(get_db_session), _: CurrentUser = Depends(require_admin)):
    admin_service.delete_lesson(db, lesson_id)
    return MessageResponse(message="Lesson deleted")


@router.get("/grades/student/{student_id}")
def student_grades(student_id: int, db: Session = Depends(get_db_session), _: CurrentUser = Depends(get_current_user)):
    return admin_service.student_grades(db, student_id)


@router.get("/announcements")
def announcements(db: Session = Depends(get_db_session), _: CurrentUser = Depends(get_current_user)):
    return admin_service.latest_announcements(db)


@router.post("/announcements", status_code=status.HTTP_201_CREATED)
def create_announcement(
    payload: AnnouncementCreateRequest,
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(require_admin),
):
    announcement = post_announcement(db, current_user, payload)
    return {"message": "Announcement published", "announcement_id": announcement.announcement_id}
