import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models import (
    Absence,
    Announcement,
    Course,
    Grade,
    Lesson,
    Parent,
    ParentStudentPair,
    Room,
    Staff,
    Student,
    StudentCoursePair,
    Subject,
    TeacherCoursePair,
    User,
)
from ..timetable import attendance_percentage, english_day, format_hhmm, polish_day, span_label
from .common import announcements_select, as_dicts


logger = logging.getLogger(__name__)

RECENT_GRADES_LIMIT = 5
ANNOUNCEMENTS_LIMIT = 3


def children(db: Session, parent_user_id: int) -> list[dict[str, Any]]:
    stmt = (
        select(Student.student_id, Student.class_id, User.first_name, User.last_name)
        .join(ParentStudentPair, ParentStudentPair.student_id == Student.student_id)
        .join(Parent, Parent.parent_id == ParentStudentPair.parent_id)
        .join(User, User.user_id == Student.user_id)
        .where(Parent.user_id == parent_user_id)
        .order_by(Student.student_id)
    )
    return as_dicts(db.execute(stmt))


def _child_attendance(db: Session, child: dict[str, Any], now: datetime) -> int:
    total = 0
    if child["class_id"] is not None:
        total = db.scalar(
            select(func.count(Lesson.lesson_id)).where(Lesson.class_id == child["class_id"], Lesson.start_time < now)
        )
    absent = db.scalar(select(func.count(Absence.absence_id)).where(Absence.student_id == child["student_id"]))
    return attendance_percentage(total, absent)


def dashboard(db: Session, parent_user_id: int) -> dict[str, Any]:
    kids = children(db, parent_user_id)
    if not kids:
        return {"children": [], "recentGrades": [], "announcements": []}

    now = datetime.now()
    student_ids = [child["student_id"] for child in kids]
    class_ids = [child["class_id"] for child in kids if child["class_id"] is not None]

    recent_grades = as_dicts(
        db.execute(
            select(
                Grade.grade,
                Grade.weight,
                Course.name.label("subject_name"),
                Grade.created_at,
                User.first_name.label("student_name"),
            )
            .join(Course, Course.course_id == Grade.course_id)
            .join(Student, Student.student_id == Grade.student_id)
            .join(User, User.user_id == Student.user_id)
            .where(Grade.student_id.in_(student_ids))
            .order_by(Grade.created_at.desc(), Grade.grade_id.desc())
            .limit(RECENT_GRADES_LIMIT)
        )
    )

    announcements = []
    if class_ids:
        announcements = as_dicts(
            db.execute(
                announcements_select(Announcement.class_id)
                .where(Announcement.class_id.in_(class_ids))
                .order_by(Announcement.created_at.desc(), Announcement.announcement_id.desc())
                .limit(ANNOUNCEMENTS_LIMIT)
            )
        )

    return {
        "children": [{**child, "attendance_percentage": _child_attendance(db, child, now)} for child in kids],
        "recentGrades": recent_grades,
        "announcements": announcements,
    }


def schedule(db: Session, student_id: int) -> list[dict[str, Any]]:
    class_id = db.scalar(select(Student.class_id).where(Student.student_id == student_id))
    if class_id is None:
        return []

    stmt = (
        select(
            Lesson.lesson_id,
            Lesson.start_time,
            Lesson.duration_min,
            Lesson.room_name,
            Subject.name.label("subject"),
            User.last_name.label("teacher"),
            Room.name.label("room"),
        )
        .join(Course, Course.course_id == Lesson.course_id)
        .join(Subject, Subject.subject_id == Course.subject_id)
        .outerjoin(Staff, Staff.staff_id == Lesson.teacher_id)
        .outerjoin(User, User.user_id == Staff.user_id)
        .outerjoin(Room, Room.room_id == Lesson.room_id)
        .where(Lesson.class_id == class_id)
        .order_by(Lesson.start_time)
    )
    result = []
    for row in db.execute(stmt).mappings():
        start = row["start_time"]
        result.append(
            {
                "lesson_id": row["lesson_id"],
                "day_of_week": english_day(start),
                "day_name": polish_day(start).upper(),
                "subject": row["subject"],
                "teacher": row["teacher"],
                "room": row["room"] or row["room_name"],
                "start_time_only": format_hhmm(start),
                "time_slot": span_label(start, row["duration_min"]),
            }
        )
    return result


def grades(db: Session, student_id: int) -> list[dict[str, Any]]:
    stmt = (
        select(
            Grade.grade_id,
            Grade.grade,
            Grade.weight,
            Grade.created_at,
            Subject.name.label("subject_name"),
            Grade.comment,
        )
        .join(Course, Course.course_id == Grade.course_id)
        .join(Subject, Subject.subject_id == Course.subject_id)
        .where(Grade.student_id == student_id)
        .order_by(Grade.created_at.desc(), Grade.grade_id.desc())
    )
    return as_dicts(db.execute(stmt))


def courses(db: Session, student_id: int) -> list[dict[str, Any]]:
    now = datetime.now()
    teacher_name = (
        select(User.last_name)
        .join(Staff, Staff.user_id == User.user_id)
        .join(TeacherCoursePair, TeacherCoursePair.teacher_id == Staff.staff_id)
        .where(TeacherCoursePair.course_id == Course.course_id)
        .order_by(Staff.staff_id)
        .limit(1)
        .scalar_subquery()
    )
    total_lessons = (
        select(func.count(Lesson.lesson_id))
        .where(Lesson.course_id == Course.course_id, Lesson.start_time < now)
        .scalar_subquery()
    )
    absences = (
        select(func.count(Absence.absence_id))
        .join(Lesson, Lesson.lesson_id == Absence.lesson_id)
        .where(Lesson.course_id == Course.course_id, Absence.student_id == student_id)
        .scalar_subquery()
    )
    stmt = (
        select(
            Course.course_id,
            Subject.name.label("subject_name"),
            teacher_name.label("teacher_name"),
            Course.description,
            total_lessons.label("total_lessons"),
            absences.label("absences"),
        )
        .join(StudentCoursePair, StudentCoursePair.course_id == Course.course_id)
        .join(Subject, Subject.subject_id == Course.subject_id)
        .where(StudentCoursePair.student_id == student_id)
        .order_by(Subject.name)
    )
    return [
        {**row, "attendance_percentage": attendance_percentage(row["total_lessons"], row["absences"])}
        for row in as_dicts(db.execute(stmt))
    ]
