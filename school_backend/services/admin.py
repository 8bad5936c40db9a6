import logging
from datetime import datetime
from typing import Any

from fastapi import HTTPException
from sqlalchemy import case, delete, func, select, update
from sqlalchemy.orm import Session, aliased

from ..models import (
    ADMIN_OCCUPATION,
    TEACHER_OCCUPATION,
    Absence,
    Announcement,
    Course,
    Grade,
    Lesson,
    Occupation,
    Parent,
    Role,
    Room,
    SchoolClass,
    Scholarship,
    ScholarshipType,
    Staff,
    Student,
    StudentCoursePair,
    Subject,
    TeacherCoursePair,
    User,
)
from ..schemas import (
    AdminRegisterRequest,
    AssignClassRequest,
    ClassCreateRequest,
    CourseCreateRequest,
    LessonCreateRequest,
    ScholarshipCreateRequest,
)
from ..timetable import start_of_day
from .auth import create_account
from .common import announcements_select, as_dicts, get_class_or_404, require_text


logger = logging.getLogger(__name__)

STAFF_SALARIES = {Role.TEACHER: 4500, Role.ADMIN: 6000}
LESSONS_ALL_LIMIT = 100
ANNOUNCEMENTS_LIMIT = 10

TeacherUser = aliased(User, name="teacher_user")


def register_account(db: Session, payload: AdminRegisterRequest) -> User:
    role = Role(payload.role)
    return create_account(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        pesel=payload.pesel,
        role=role,
        salary=STAFF_SALARIES.get(role, 0),
    )


def list_users_with_roles(db: Session) -> list[dict[str, Any]]:
    display_role = case(
        (Occupation.occupation == ADMIN_OCCUPATION, "Admin"),
        (Staff.user_id.is_not(None), "Nauczyciel"),
        (Student.user_id.is_not(None), "Uczeń"),
        (Parent.user_id.is_not(None), "Rodzic"),
        else_="Gość",
    ).label("display_role")
    stmt = (
        select(
            User.user_id,
            User.first_name,
            User.last_name,
            User.email,
            User.pesel,
            Student.student_id,
            SchoolClass.name.label("class_name"),
            display_role,
        )
        .outerjoin(Student, Student.user_id == User.user_id)
        .outerjoin(SchoolClass, SchoolClass.class_id == Student.class_id)
        .outerjoin(Staff, Staff.user_id == User.user_id)
        .outerjoin(Occupation, Occupation.occupation_id == Staff.occupation_id)
        .outerjoin(Parent, Parent.user_id == User.user_id)
        .order_by(User.last_name.asc(), User.user_id.asc())
    )
    return as_dicts(db.execute(stmt))


def assign_class(db: Session, payload: AssignClassRequest) -> None:
    student = db.query(Student).filter(Student.user_id == payload.user_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    get_class_or_404(db, payload.class_id)
    student.class_id = payload.class_id
    db.commit()
    logger.info(f"Assigned student {student.student_id} to class {payload.class_id}")


def list_scholarship_types(db: Session) -> list[dict[str, Any]]:
    stmt = select(
        ScholarshipType.scholarship_type_id,
        ScholarshipType.requirements,
        ScholarshipType.duration_semesters,
    ).order_by(ScholarshipType.scholarship_type_id)
    return as_dicts(db.execute(stmt))


def list_scholarships(db: Session) -> list[dict[str, Any]]:
    stmt = (
        select(
            Scholarship.scholarship_id,
            Scholarship.amount,
            Scholarship.start_date,
            ScholarshipType.requirements.label("type_name"),
            ScholarshipType.duration_semesters,
            User.first_name,
            User.last_name,
            SchoolClass.name.label("class_name"),
        )
        .join(ScholarshipType, ScholarshipType.scholarship_type_id == Scholarship.scholarship_type_id)
        .join(Student, Student.student_id == Scholarship.student_id)
        .join(User, User.user_id == Student.user_id)
        .outerjoin(SchoolClass, SchoolClass.class_id == Student.class_id)
        .order_by(Scholarship.start_date.desc())
    )
    return as_dicts(db.execute(stmt))


def grant_scholarship(db: Session, payload: ScholarshipCreateRequest) -> Scholarship:
    if not db.get(Student, payload.student_id):
        raise HTTPException(status_code=404, detail="Student not found")
    if not db.get(ScholarshipType, payload.scholarship_type_id):
        raise HTTPException(status_code=404, detail="Scholarship type not found")
    scholarship = Scholarship(
        student_id=payload.student_id,
        scholarship_type_id=payload.scholarship_type_id,
        amount=payload.amount,
        start_date=payload.start_date or datetime.now(),
    )
    db.add(scholarship)
    db.commit()
    logger.info(f"Granted scholarship {scholarship.scholarship_id} to student {payload.student_id}")
    return scholarship


def revoke_scholarship(db: Session, scholarship_id: int) -> None:
    scholarship = db.get(Scholarship, scholarship_id)
    if not scholarship:
        raise HTTPException(status_code=404, detail="Scholarship not found")
    db.delete(scholarship)
    db.commit()


def school_stats(db: Session) -> dict[str, int]:
    teacher_count = db.scalar(
        select(func.count(Staff.staff_id))
        .join(Occupation, Occupation.occupation_id == Staff.occupation_id)
        .where(Occupation.occupation == TEACHER_OCCUPATION)
    )
    return {
        "studentCount": db.scalar(select(func.count(Student.student_id))),
        "teacherCount": teacher_count,
        "courseCount": db.scalar(select(func.count(Course.course_id))),
        "lessonsToday": db.scalar(select(func.count(Lesson.lesson_id)).where(Lesson.start_time >= start_of_day())),
    }


def list_rooms(db: Session) -> list[dict[str, Any]]:
    return as_dicts(db.execute(select(Room.room_id, Room.name).order_by(Room.room_id)))


def list_classes(db: Session) -> list[dict[str, Any]]:
    stmt = (
        select(SchoolClass.class_id, SchoolClass.name, User.first_name, User.last_name)
        .outerjoin(Staff, Staff.staff_id == SchoolClass.main_teacher_id)
        .outerjoin(User, User.user_id == Staff.user_id)
        .order_by(SchoolClass.name)
    )
    return as_dicts(db.execute(stmt))


def create_class(db: Session, payload: ClassCreateRequest) -> SchoolClass:
    if payload.main_teacher_id is not None and not db.get(Staff, payload.main_teacher_id):
        raise HTTPException(status_code=404, detail="Teacher not found")
    school_class = SchoolClass(name=require_text(payload.name, "name"), main_teacher_id=payload.main_teacher_id)
    db.add(school_class)
    db.commit()
    logger.info(f"Created class {school_class.class_id} ({school_class.name})")
    return school_class


def _purge_lessons(db: Session, lesson_ids: list[int]) -> None:
    if not lesson_ids:
        return
    db.execute(delete(Absence).where(Absence.lesson_id.in_(lesson_ids)))
    db.execute(update(Grade).where(Grade.lesson_id.in_(lesson_ids)).values(lesson_id=None))
    db.execute(delete(Lesson).where(Lesson.lesson_id.in_(lesson_ids)))


def delete_class(db: Session, class_id: int) -> None:
    get_class_or_404(db, class_id)
    try:
        lesson_ids = list(db.scalars(select(Lesson.lesson_id).where(Lesson.class_id == class_id)))
        db.execute(update(Student).where(Student.class_id == class_id).values(class_id=None))
        db.execute(delete(Announcement).where(Announcement.class_id == class_id))
        _purge_lessons(db, lesson_ids)
        db.execute(delete(SchoolClass).where(SchoolClass.class_id == class_id))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Failed to delete class {class_id}")
        raise
    logger.info(f"Deleted class {class_id} with {len(lesson_ids)} lessons")


def list_teachers(db: Session) -> list[dict[str, Any]]:
    stmt = (
        select(Staff.staff_id, User.first_name, User.last_name)
        .join(User, User.user_id == Staff.user_id)
        .order_by(User.last_name)
    )
    return as_dicts(db.execute(stmt))


def list_subjects(db: Session) -> list[dict[str, Any]]:
    return as_dicts(db.execute(select(Subject.subject_id, Subject.name).order_by(Subject.subject_id)))


def list_courses(db: Session) -> list[dict[str, Any]]:
    teacher_name = (TeacherUser.first_name + " " + TeacherUser.last_name).label("teacher_name")
    stmt = (
        select(
            Course.course_id,
            Course.name,
            Course.description,
            Course.weight,
            Subject.name.label("subject_name"),
            teacher_name,
        )
        .outerjoin(Subject, Subject.subject_id == Course.subject_id)
        .outerjoin(TeacherCoursePair, TeacherCoursePair.course_id == Course.course_id)
        .outerjoin(Staff, Staff.staff_id == TeacherCoursePair.teacher_id)
        .outerjoin(TeacherUser, TeacherUser.user_id == Staff.user_id)
        .order_by(Course.created_at.desc(), Course.course_id.desc())
    )
    return as_dicts(db.execute(stmt))


def create_course(db: Session, payload: CourseCreateRequest) -> Course:
    if not db.get(Subject, payload.subject_id):
        raise HTTPException(status_code=404, detail="Subject not found")
    if not db.get(Staff, payload.teacher_id):
        raise HTTPException(status_code=404, detail="Teacher not found")
    try:
        course = Course(
            name=require_text(payload.name, "name"),
            description=payload.description or "",
            weight=payload.weight or 1,
            subject_id=payload.subject_id,
            created_at=datetime.now(),
        )
        db.add(course)
        db.flush()
        db.add(TeacherCoursePair(teacher_id=payload.teacher_id, course_id=course.course_id))
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Created course {course.course_id} taught by staff {payload.teacher_id}")
    return course


def delete_course(db: Session, course_id: int) -> None:
    if not db.get(Course, course_id):
        raise HTTPException(status_code=404, detail="Course not found")
    try:
        lesson_ids = list(db.scalars(select(Lesson.lesson_id).where(Lesson.course_id == course_id)))
        db.execute(delete(Grade).where(Grade.course_id == course_id))
        _purge_lessons(db, lesson_ids)
        db.execute(delete(TeacherCoursePair).where(TeacherCoursePair.course_id == course_id))
        db.execute(delete(StudentCoursePair).where(StudentCoursePair.course_id == course_id))
        db.execute(delete(Course).where(Course.course_id == course_id))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Failed to delete course {course_id}")
        raise
    logger.info(f"Deleted course {course_id}")


def list_recent_lessons(db: Session) -> list[dict[str, Any]]:
    stmt = (
        select(
            Lesson.lesson_id,
            Lesson.start_time,
            SchoolClass.name.label("class_name"),
            Course.name.label("course_name"),
            Lesson.room_name,
        )
        .join(SchoolClass, SchoolClass.class_id == Lesson.class_id)
        .join(Course, Course.course_id == Lesson.course_id)
        .order_by(Lesson.start_time.desc())
        .limit(LESSONS_ALL_LIMIT)
    )
    return as_dicts(db.execute(stmt))


def schedule_lesson(db: Session, payload: LessonCreateRequest) -> Lesson:
    get_class_or_404(db, payload.class_id)
    if not db.get(Course, payload.course_id):
        raise HTTPException(status_code=404, detail="Course not found")
    if not db.get(Staff, payload.teacher_id):
        raise HTTPException(status_code=404, detail="Teacher not found")

    clash = db.execute(
        select(Lesson.lesson_id).where(Lesson.class_id == payload.class_id, Lesson.start_time == payload.start_time)
    ).first()
    if clash:
        raise HTTPException(status_code=400, detail="This class already has a lesson scheduled at that time")

    room_name = None
    if payload.room_id is not None:
        room = db.get(Room, payload.room_id)
        if not room:
            raise HTTPException(status_code=404, detail="Room not found")
        room_name = room.name or f"Sala {payload.room_id}"

    lesson = Lesson(
        class_id=payload.class_id,
        course_id=payload.course_id,
        room_id=payload.room_id,
        teacher_id=payload.teacher_id,
        start_time=payload.start_time,
        duration_min=payload.duration_min or 45,
        room_name=room_name,
    )
    db.add(lesson)
    db.commit()
    logger.info(f"Scheduled lesson {lesson.lesson_id} for class {payload.class_id} at {payload.start_time}")
    return lesson


def delete_lesson(db: Session, lesson_id: int) -> None:
    if not db.get(Lesson, lesson_id):
        raise HTTPException(status_code=404, detail="Lesson not found")
    try:
        _purge_lessons(db, [lesson_id])
        db.commit()
    except Exception:
        db.rollback()
        raise


def student_grades(db: Session, student_id: int) -> list[dict[str, Any]]:
    stmt = (
        select(Grade.grade, Grade.weight, Course.name.label("course_name"), Grade.created_at)
        .join(Course, Course.course_id == Grade.course_id)
        .where(Grade.student_id == student_id)
        .order_by(Grade.created_at.desc())
    )
    return as_dicts(db.execute(stmt))


def latest_announcements(db: Session) -> list[dict[str, Any]]:
    stmt = (
        announcements_select(SchoolClass.name.label("class_name"))
        .outerjoin(SchoolClass, SchoolClass.class_id == Announcement.class_id)
        .order_by(Announcement.created_at.desc(), Announcement.announcement_id.desc())
        .limit(ANNOUNCEMENTS_LIMIT)
    )
    return as_dicts(db.execute(stmt))

