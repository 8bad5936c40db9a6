import logging
from datetime import datetime
from typing import Any

from fastapi import HTTPException
from sqlalchemy import case, delete, func, select
from sqlalchemy.orm import Session

from ..models import (
    Absence,
    Announcement,
    Course,
    Grade,
    LateReason,
    Lesson,
    SchoolClass,
    Staff,
    Student,
    Subject,
    User,
)
from ..schemas import AttendanceRegisterRequest, LessonGradeRequest
from ..timetable import format_hhmm, polish_day
from .common import announcements_select, as_dicts, first_dict
from .teacher import check_lesson_roster, class_students, get_grade_or_404, get_lesson_or_404, teaches_class


logger = logging.getLogger(__name__)

RECENT_LIMIT = 3
CLASS_LESSONS_LIMIT = 50


def _staff_lessons():
    return (
        select(
            Lesson.lesson_id,
            Course.name.label("subject_name"),
            SchoolClass.name.label("class_name"),
            Lesson.start_time,
            Lesson.room_name,
            Lesson.room_id,
        )
        .join(Course, Course.course_id == Lesson.course_id)
        .join(SchoolClass, SchoolClass.class_id == Lesson.class_id)
    )


def _is_main_teacher(staff_id: int):
    return case((SchoolClass.main_teacher_id == staff_id, 1), else_=0).label("is_main_teacher")


def dashboard_summary(db: Session, staff_id: int) -> dict[str, Any]:
    now = datetime.now()
    next_lesson = first_dict(
        db.execute(
            _staff_lessons()
            .where(Lesson.teacher_id == staff_id, Lesson.start_time >= now)
            .order_by(Lesson.start_time.asc())
            .limit(1)
        )
    )
    recent_lessons = as_dicts(
        db.execute(
            _staff_lessons()
            .where(Lesson.teacher_id == staff_id, Lesson.start_time < now)
            .order_by(Lesson.start_time.desc())
            .limit(RECENT_LIMIT)
        )
    )
    my_classes = as_dicts(
        db.execute(
            select(SchoolClass.class_id, SchoolClass.name).where(teaches_class(staff_id)).order_by(SchoolClass.name)
        )
    )
    announcements = as_dicts(
        db.execute(
            announcements_select()
            .order_by(Announcement.created_at.desc(), Announcement.announcement_id.desc())
            .limit(RECENT_LIMIT)
        )
    )
    return {
        "nextLesson": next_lesson,
        "recentLessons": recent_lessons,
        "classes": my_classes,
        "announcements": announcements,
    }


def schedule(db: Session, staff_id: int) -> list[dict[str, Any]]:
    stmt = (
        select(
            Lesson.lesson_id,
            Lesson.start_time,
            Lesson.duration_min,
            Lesson.room_name,
            SchoolClass.name.label("class_name"),
            Course.name.label("subject_name"),
        )
        .join(SchoolClass, SchoolClass.class_id == Lesson.class_id)
        .join(Course, Course.course_id == Lesson.course_id)
        .where(Lesson.teacher_id == staff_id)
        .order_by(Lesson.start_time.asc())
    )
    return [
        {
            **row,
            "raw_start_time": row["start_time"],
            "day_of_week": polish_day(row["start_time"]),
            "start_time": format_hhmm(row["start_time"]),
        }
        for row in as_dicts(db.execute(stmt))
    ]


def classes(db: Session, staff_id: int) -> list[dict[str, Any]]:
    student_count = (
        select(func.count(Student.student_id)).where(Student.class_id == SchoolClass.class_id).scalar_subquery()
    )
    stmt = (
        select(
            SchoolClass.class_id,
            SchoolClass.name.label("class_name"),
            student_count.label("student_count"),
            _is_main_teacher(staff_id),
        )
        .where(teaches_class(staff_id))
        .order_by(SchoolClass.name)
    )
    return as_dicts(db.execute(stmt))


def class_detail(db: Session, class_id: int) -> dict[str, Any]:
    info = first_dict(
        db.execute(select(SchoolClass.class_id, SchoolClass.name).where(SchoolClass.class_id == class_id))
    )
    if not info:
        raise HTTPException(status_code=404, detail="Class not found")

    lessons = as_dicts(
        db.execute(
            select(
                Lesson.lesson_id,
                Lesson.start_time,
                Lesson.room_name,
                Subject.name.label("subject_name"),
                User.last_name.label("teacher_surname"),
                User.first_name.label("teacher_firstname"),
            )
            .join(Course, Course.course_id == Lesson.course_id)
            .join(Subject, Subject.subject_id == Course.subject_id)
            .outerjoin(Staff, Staff.staff_id == Lesson.teacher_id)
            .outerjoin(User, User.user_id == Staff.user_id)
            .where(Lesson.class_id == class_id)
            .order_by(Lesson.start_time.desc())
            .limit(CLASS_LESSONS_LIMIT)
        )
    )
    announcements = as_dicts(
        db.execute(
            announcements_select()
            .where(Announcement.class_id == class_id)
            .order_by(Announcement.created_at.desc(), Announcement.announcement_id.desc())
        )
    )
    return {
        "info": info,
        "students": class_students(db, class_id),
        "lessons": lessons,
        "announcements": announcements,
    }


def lesson_details(db: Session, lesson_id: int) -> dict[str, Any]:
    lesson = first_dict(
        db.execute(
            select(
                Lesson.lesson_id,
                Lesson.class_id,
                Lesson.course_id,
                Course.name.label("subject_name"),
                SchoolClass.name.label("class_name"),
                Lesson.start_time,
                Lesson.room_name,
            )
            .join(Course, Course.course_id == Lesson.course_id)
            .join(SchoolClass, SchoolClass.class_id == Lesson.class_id)
            .where(Lesson.lesson_id == lesson_id)
        )
    )
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")

    status = case(
        (Absence.absence_id.is_(None), "present"),
        (Absence.late_reason_id.is_not(None), "late"),
        else_="absent",
    ).label("status")
    students = as_dicts(
        db.execute(
            select(Student.student_id, User.first_name, User.last_name, status)
            .join(User, User.user_id == Student.user_id)
            .outerjoin(Absence, (Absence.student_id == Student.student_id) & (Absence.lesson_id == lesson_id))
            .where(Student.class_id == lesson["class_id"])
            .order_by(User.last_name.asc())
        )
    )
    grades = as_dicts(
        db.execute(
            select(Grade.grade_id, Grade.student_id, Grade.grade, Grade.weight, Grade.comment)
            .where(Grade.lesson_id == lesson_id)
            .order_by(Grade.grade_id)
        )
    )
    return {"lesson": lesson, "students": students, "grades": grades}


def register_attendance(db: Session, lesson_id: int, payload: AttendanceRegisterRequest) -> None:
    lesson = get_lesson_or_404(db, lesson_id)
    check_lesson_roster(db, lesson, [entry.student_id for entry in payload.attendance_data])
    late_reason_id = db.scalar(select(func.min(LateReason.late_reason_id)))
    try:
        for entry in payload.attendance_data:
            db.execute(delete(Absence).where(Absence.lesson_id == lesson_id, Absence.student_id == entry.student_id))
            if entry.status == "present":
                continue
            db.add(
                Absence(
                    student_id=entry.student_id,
                    lesson_id=lesson_id,
                    date=lesson.start_time,
                    late_reason_id=late_reason_id if entry.status == "late" else None,
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Failed to register attendance for lesson {lesson_id}")
        raise
    logger.info(f"Registered attendance for lesson {lesson_id} ({len(payload.attendance_data)} students)")


def grade_for_lesson(db: Session, payload: LessonGradeRequest) -> Grade:
    lesson = get_lesson_or_404(db, payload.lesson_id)
    if not db.get(Student, payload.student_id):
        raise HTTPException(status_code=404, detail="Student not found")
    now = datetime.now()
    grade = Grade(
        student_id=payload.student_id,
        lesson_id=lesson.lesson_id,
        course_id=lesson.course_id,
        grade=payload.grade,
        weight=payload.weight,
        comment=payload.comment or None,
        created_at=now,
        updated_at=now,
    )
    db.add(grade)
    db.commit()
    logger.info(f"Added grade {grade.grade_id} for student {payload.student_id} in lesson {lesson.lesson_id}")
    return grade


def delete_grade(db: Session, grade_id: int) -> None:
    db.delete(get_grade_or_404(db, grade_id))
    db.commit()
