import logging
from datetime import datetime
from typing import Any

from fastapi import HTTPException
from sqlalchemy import delete, func, or_, select
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
from ..schemas import AddGradeRequest, GradeUpdateRequest, LessonRegisterRequest
from ..timetable import format_hhmm, polish_day, slot_bounds
from .common import announcements_select, as_dicts, first_dict


logger = logging.getLogger(__name__)

DASHBOARD_LIMIT = 3


def _lessons_with_subject():
    return (
        select(
            Lesson.lesson_id,
            Lesson.start_time,
            Lesson.room_name,
            Subject.name.label("subject_name"),
            SchoolClass.name.label("class_name"),
        )
        .join(Course, Course.course_id == Lesson.course_id)
        .join(Subject, Subject.subject_id == Course.subject_id)
        .join(SchoolClass, SchoolClass.class_id == Lesson.class_id)
    )


def teaches_class(staff_id: int):
    """Matches classes the teacher leads or has lessons with."""
    taught = select(Lesson.class_id).where(Lesson.teacher_id == staff_id)
    return or_(SchoolClass.main_teacher_id == staff_id, SchoolClass.class_id.in_(taught))


def schedule(db: Session, staff_id: int) -> list[dict[str, Any]]:
    rows = db.execute(
        _lessons_with_subject().where(Lesson.teacher_id == staff_id).order_by(Lesson.start_time.asc())
    ).mappings()
    result = []
    for row in rows:
        slot = slot_bounds(format_hhmm(row["start_time"]))
        result.append(
            {
                "name": f"{row['subject_name']} ({row['class_name']})",
                "day_of_week": polish_day(row["start_time"]),
                "start_time": slot["start"],
                "end_time": slot["end"],
                "room": row["room_name"],
                "lesson_id": row["lesson_id"],
            }
        )
    return result


def classes(db: Session, staff_id: int) -> list[dict[str, Any]]:
    student_count = (
        select(func.count(Student.student_id)).where(Student.class_id == SchoolClass.class_id).scalar_subquery()
    )
    stmt = (
        select(
            SchoolClass.class_id,
            SchoolClass.name.label("class_name"),
            student_count.label("student_count"),
            (SchoolClass.main_teacher_id == staff_id).label("is_main_teacher"),
        )
        .where(teaches_class(staff_id))
        .order_by(SchoolClass.name)
    )
    return [{**row, "is_main_teacher": bool(row["is_main_teacher"])} for row in as_dicts(db.execute(stmt))]


def class_students(db: Session, class_id: int) -> list[dict[str, Any]]:
    stmt = (
        select(Student.student_id, User.first_name, User.last_name, User.email)
        .join(User, User.user_id == Student.user_id)
        .where(Student.class_id == class_id)
        .order_by(User.last_name)
    )
    return as_dicts(db.execute(stmt))


def class_detail(db: Session, class_id: int) -> dict[str, Any]:
    info = first_dict(
        db.execute(
            select(SchoolClass.name, User.first_name, User.last_name)
            .outerjoin(Staff, Staff.staff_id == SchoolClass.main_teacher_id)
            .outerjoin(User, User.user_id == Staff.user_id)
            .where(SchoolClass.class_id == class_id)
        )
    )
    if not info:
        raise HTTPException(status_code=404, detail="Class not found")

    announcements = as_dicts(
        db.execute(
            announcements_select()
            .where(Announcement.class_id == class_id)
            .order_by(Announcement.is_pinned.desc(), Announcement.created_at.desc())
        )
    )
    return {"info": info, "students": class_students(db, class_id), "announcements": announcements}


def dashboard_summary(db: Session, staff_id: int) -> dict[str, Any]:
    now = datetime.now()
    next_lesson = first_dict(
        db.execute(
            _lessons_with_subject()
            .where(Lesson.teacher_id == staff_id, Lesson.start_time >= now)
            .order_by(Lesson.start_time.asc())
            .limit(1)
        )
    )
    recent_lessons = as_dicts(
        db.execute(
            _lessons_with_subject()
            .where(Lesson.teacher_id == staff_id, Lesson.start_time < now)
            .order_by(Lesson.start_time.desc())
            .limit(DASHBOARD_LIMIT)
        )
    )
    my_classes = [
        {**row, "is_main_teacher": bool(row["is_main_teacher"])}
        for row in as_dicts(
            db.execute(
                select(
                    SchoolClass.class_id,
                    SchoolClass.name,
                    (SchoolClass.main_teacher_id == staff_id).label("is_main_teacher"),
                )
                .where(teaches_class(staff_id))
                .order_by(SchoolClass.name)
                .limit(DASHBOARD_LIMIT)
            )
        )
    ]
    announcements = as_dicts(
        db.execute(
            announcements_select()
            .where(Announcement.class_id.is_(None))
            .order_by(Announcement.created_at.desc(), Announcement.announcement_id.desc())
            .limit(DASHBOARD_LIMIT)
        )
    )
    return {
        "nextLesson": next_lesson,
        "classes": my_classes,
        "recentLessons": recent_lessons,
        "announcements": announcements,
    }


def get_lesson_or_404(db: Session, lesson_id: int) -> Lesson:
    lesson = db.get(Lesson, lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return lesson


def check_lesson_roster(db: Session, lesson: Lesson, student_ids: list[int]) -> None:
    """Reject ids that are not students, or students outside the lesson's class."""
    rows = db.execute(select(Student.student_id, Student.class_id).where(Student.student_id.in_(student_ids))).all()
    known = {row.student_id: row.class_id for row in rows}
    unknown = sorted(set(student_ids) - set(known))
    if unknown:
        raise HTTPException(status_code=404, detail=f"Students not found: {unknown}")
    outside = sorted(sid for sid, class_id in known.items() if class_id != lesson.class_id)
    if outside:
        raise HTTPException(status_code=400, detail=f"Students not in the lesson's class: {outside}")


def lesson_details(db: Session, lesson_id: int) -> dict[str, Any]:
    lesson = first_dict(
        db.execute(
            select(
                Lesson.lesson_id,
                Lesson.start_time,
                Lesson.room_name,
                Lesson.course_id,
                Lesson.class_id,
                Subject.name.label("subject_name"),
                SchoolClass.name.label("class_name"),
                Lesson.room_id,
            )
            .join(Course, Course.course_id == Lesson.course_id)
            .join(Subject, Subject.subject_id == Course.subject_id)
            .join(SchoolClass, SchoolClass.class_id == Lesson.class_id)
            .where(Lesson.lesson_id == lesson_id)
        )
    )
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")

    students = as_dicts(
        db.execute(
            select(
                Student.student_id,
                User.first_name,
                User.last_name,
                Absence.absence_id.label("absence_record_id"),
                Absence.late_reason_id,
            )
            .join(User, User.user_id == Student.user_id)
            .outerjoin(Absence, (Absence.student_id == Student.student_id) & (Absence.lesson_id == lesson_id))
            .where(Student.class_id == lesson["class_id"])
            .order_by(User.last_name)
        )
    )
    late_reasons = as_dicts(
        db.execute(select(LateReason.late_reason_id, LateReason.reason).order_by(LateReason.late_reason_id))
    )
    return {"lesson": lesson, "students": students, "lateReasons": late_reasons}


def register_lesson(db: Session, lesson_id: int, payload: LessonRegisterRequest) -> None:
    """Replace absences and append grades for a lesson in one transaction."""
    lesson = get_lesson_or_404(db, lesson_id)
    check_lesson_roster(db, lesson, [entry.student_id for entry in payload.students_data])
    for late_reason_id in {entry.late_reason_id for entry in payload.students_data if entry.late_reason_id is not None}:
        if not db.get(LateReason, late_reason_id):
            raise HTTPException(status_code=404, detail=f"Late reason {late_reason_id} not found")
    try:
        for entry in payload.students_data:
            db.execute(delete(Absence).where(Absence.lesson_id == lesson_id, Absence.student_id == entry.student_id))
            if entry.is_absent:
                db.add(
                    Absence(
                        student_id=entry.student_id,
                        lesson_id=lesson_id,
                        date=lesson.start_time,
                        late_reason_id=entry.late_reason_id,
                    )
                )
            if entry.grade:
                db.add(
                    Grade(
                        student_id=entry.student_id,
                        course_id=lesson.course_id,
                        lesson_id=lesson_id,
                        grade=entry.grade,
                        weight=entry.weight or 1,
                        created_at=datetime.now(),
                    )
                )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Failed to register lesson {lesson_id}")
        raise
    logger.info(f"Registered lesson {lesson_id} for {len(payload.students_data)} students")


def add_grade(db: Session, payload: AddGradeRequest) -> Grade:
    if not db.get(Student, payload.student_id):
        raise HTTPException(status_code=404, detail="Student not found")
    if not db.get(Course, payload.course_id):
        raise HTTPException(status_code=404, detail="Course not found")
    grade = Grade(
        student_id=payload.student_id,
        course_id=payload.course_id,
        grade=payload.grade,
        weight=payload.weight or 1.0,
        created_at=datetime.now(),
    )
    db.add(grade)
    db.commit()
    logger.info(f"Added grade {grade.grade_id} for student {payload.student_id}")
    return grade


def course_students(db: Session, course_id: int) -> list[dict[str, Any]]:
    class_id = db.scalar(
        select(Lesson.class_id).where(Lesson.course_id == course_id).order_by(Lesson.start_time).limit(1)
    )
    if class_id is None:
        return []

    students = as_dicts(
        db.execute(
            select(Student.student_id, User.first_name, User.last_name)
            .join(User, User.user_id == Student.user_id)
            .where(Student.class_id == class_id)
            .order_by(User.last_name)
        )
    )
    course_grades = as_dicts(
        db.execute(
            select(Grade.grade_id, Grade.student_id, Grade.grade, Grade.weight)
            .where(Grade.course_id == course_id)
            .order_by(Grade.grade_id)
        )
    )
    return [
        {**student, "grades": [g for g in course_grades if g["student_id"] == student["student_id"]]}
        for student in students
    ]


def get_grade_or_404(db: Session, grade_id: int) -> Grade:
    grade = db.get(Grade, grade_id)
    if not grade:
        raise HTTPException(status_code=404, detail="Grade not found")
    return grade


def update_grade(db: Session, grade_id: int, payload: GradeUpdateRequest) -> Grade:
    grade = get_grade_or_404(db, grade_id)
    grade.grade = payload.grade
    grade.weight = payload.weight
    db.commit()
    return grade


def delete_grade(db: Session, grade_id: int) -> None:
    grade = get_grade_or_404(db, grade_id)
    db.delete(grade)
    db.commit()
    logger.info(f"Deleted grade {grade_id}")

