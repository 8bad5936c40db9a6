import logging
from datetime import datetime, timedelta
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..middleware import CurrentUser
from ..models import (
    Absence,
    Announcement,
    Course,
    Grade,
    Lesson,
    Role,
    SchoolClass,
    Scholarship,
    ScholarshipType,
    Staff,
    Student,
    User,
)
from ..timetable import (
    attendance_percentage,
    english_day,
    format_hhmm,
    polish_day,
    relative_day,
    school_year_start,
    slot_label,
)
from .common import Author, announcements_select, as_dicts, first_dict


logger = logging.getLogger(__name__)

STUDENT_SCHOLARSHIP_AMOUNT = 1000.00
DASHBOARD_GRADES_LIMIT = 5
DASHBOARD_ANNOUNCEMENTS_LIMIT = 5


def apply_for_scholarship(db: Session, current_user: CurrentUser, scholarship_type_id: int | None) -> Scholarship:
    if current_user.role == Role.PARENT:
        logger.warning(f"Parent user {current_user.user_id} tried to apply for a scholarship")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only students can apply for scholarships")
    if scholarship_type_id is None:
        raise HTTPException(status_code=400, detail="Scholarship type id is required")

    student = db.query(Student).filter(Student.user_id == current_user.user_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student profile not found")
    if not db.get(ScholarshipType, scholarship_type_id):
        raise HTTPException(status_code=404, detail="Scholarship type not found")

    existing = db.execute(
        select(Scholarship.scholarship_id).where(
            Scholarship.student_id == student.student_id,
            Scholarship.scholarship_type_id == scholarship_type_id,
        )
    ).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Student already holds this scholarship")

    scholarship = Scholarship(
        student_id=student.student_id,
        scholarship_type_id=scholarship_type_id,
        amount=STUDENT_SCHOLARSHIP_AMOUNT,
        start_date=datetime.now(),
    )
    db.add(scholarship)
    db.commit()
    logger.info(f"Student {student.student_id} received scholarship type {scholarship_type_id}")
    return scholarship


def scholarships_overview(db: Session, student_id: int) -> dict[str, list[dict[str, Any]]]:
    active = as_dicts(
        db.execute(
            select(
                Scholarship.scholarship_id,
                Scholarship.amount,
                Scholarship.start_date,
                ScholarshipType.requirements.label("name"),
            )
            .join(ScholarshipType, ScholarshipType.scholarship_type_id == Scholarship.scholarship_type_id)
            .where(Scholarship.student_id == student_id)
            .order_by(Scholarship.start_date.desc())
        )
    )
    available = as_dicts(
        db.execute(
            select(
                ScholarshipType.scholarship_type_id,
                ScholarshipType.requirements.label("name"),
                ScholarshipType.duration_semesters,
            ).order_by(ScholarshipType.scholarship_type_id)
        )
    )
    return {"active": active, "available": available}


def schedule(db: Session, student: Student, only_future: bool = False) -> list[dict[str, Any]]:
    if not student.class_id:
        raise HTTPException(status_code=404, detail="Student is not assigned to any class")

    is_absent = (
        select(func.count(Absence.absence_id))
        .where(Absence.student_id == student.student_id, Absence.lesson_id == Lesson.lesson_id)
        .scalar_subquery()
    )
    stmt = (
        select(
            Lesson.lesson_id,
            Lesson.start_time,
            Lesson.room_id,
            Lesson.duration_min,
            Course.name.label("subject_name"),
            User.last_name.label("teacher_name"),
            is_absent.label("absences"),
        )
        .join(Course, Course.course_id == Lesson.course_id)
        .outerjoin(Staff, Staff.staff_id == Lesson.teacher_id)
        .outerjoin(User, User.user_id == Staff.user_id)
        .where(Lesson.class_id == student.class_id, Lesson.start_time >= school_year_start())
        .order_by(Lesson.start_time.asc())
    )

    now = datetime.now()
    lessons = []
    for row in db.execute(stmt).mappings():
        if only_future and row["start_time"] + timedelta(minutes=row["duration_min"]) <= now:
            continue
        start_only = format_hhmm(row["start_time"])
        lessons.append(
            {
                "lesson_id": row["lesson_id"],
                "day_name": english_day(row["start_time"]),
                "start_time_only": start_only,
                "raw_start_time": row["start_time"],
                "subject_name": row["subject_name"],
                "room": row["room_id"],
                "teacher_name": row["teacher_name"],
                "duration_min": row["duration_min"],
                "time_slot": slot_label(start_only),
                "day_of_week": polish_day(row["start_time"]).upper(),
                "subject": row["subject_name"],
                "teacher": row["teacher_name"] or "Nauczyciel nieprzypisany",
                "is_absent": row["absences"] > 0,
            }
        )
    return lessons


def _conducted_and_missed(db: Session, student: Student, since: datetime) -> tuple[int, int]:
    now = datetime.now()
    conducted = db.scalar(
        select(func.count(Lesson.lesson_id)).where(
            Lesson.class_id == student.class_id,
            Lesson.start_time >= since,
            Lesson.start_time <= now,
        )
    )
    missed = db.scalar(
        select(func.count(func.distinct(Absence.lesson_id))).where(
            Absence.student_id == student.student_id,
            Absence.date >= since,
        )
    )
    return conducted or 0, missed or 0


def attendance(db: Session, student: Student) -> dict[str, Any]:
    conducted, missed = _conducted_and_missed(db, student, school_year_start())
    return {
        "percentage": attendance_percentage(conducted, missed),
        "meta": {
            "total_conducted_lessons": conducted,
            "student_absences": missed,
            "calculation_date": datetime.now().isoformat(),
        },
    }


def grades(db: Session, student: Student) -> list[dict[str, Any]]:
    stmt = (
        select(Grade.grade, Grade.weight, Course.name.label("subject_name"), Grade.created_at, Grade.comment)
        .join(Course, Course.course_id == Grade.course_id)
        .where(Grade.student_id == student.student_id, Grade.created_at >= school_year_start())
        .order_by(Grade.created_at.desc())
    )
    return as_dicts(db.execute(stmt))


def class_info(db: Session, student: Student, child_id: int | None) -> dict[str, Any]:
    info = first_dict(
        db.execute(
            select(
                Student.class_id,
                SchoolClass.name.label("class_name"),
                User.first_name.label("educator_name"),
                User.last_name.label("educator_surname"),
                User.email.label("educator_email"),
            )
            .outerjoin(SchoolClass, SchoolClass.class_id == Student.class_id)
            .outerjoin(Staff, Staff.staff_id == SchoolClass.main_teacher_id)
            .outerjoin(User, User.user_id == Staff.user_id)
            .where(Student.student_id == student.student_id)
        )
    )
    if not info or not info["class_id"]:
        return {"info": {"class_name": "Klasa niezdefiniowana"}, "announcements": [], "status": "UNASSIGNED"}

    announcements = as_dicts(
        db.execute(
            select(Announcement.title, Announcement.content, Announcement.created_at, Author.first_name, Author.last_name)
            .outerjoin(Author, Author.user_id == Announcement.user_id)
            .where(Announcement.class_id == info["class_id"])
            .order_by(Announcement.created_at.desc())
        )
    )
    return {
        "info": info,
        "announcements": announcements,
        "meta": {"timestamp": datetime.now().isoformat(), "child_context": child_id},
    }


def courses(db: Session, student: Student) -> list[dict[str, Any]]:
    since = school_year_start()
    now = datetime.now()
    lesson_rows = db.execute(
        select(Course.course_id, Course.name, User.first_name, User.last_name)
        .join(Lesson, Lesson.course_id == Course.course_id)
        .outerjoin(Staff, Staff.staff_id == Lesson.teacher_id)
        .outerjoin(User, User.user_id == Staff.user_id)
        .where(Lesson.class_id == student.class_id)
        .order_by(Course.name, Lesson.start_time)
    ).all()

    totals = dict(
        db.execute(
            select(Lesson.course_id, func.count(Lesson.lesson_id))
            .where(Lesson.class_id == student.class_id, Lesson.start_time >= since, Lesson.start_time <= now)
            .group_by(Lesson.course_id)
        ).all()
    )
    absences = dict(
        db.execute(
            select(Lesson.course_id, func.count(Absence.absence_id))
            .join(Lesson, Lesson.lesson_id == Absence.lesson_id)
            .where(Absence.student_id == student.student_id, Lesson.start_time >= since)
            .group_by(Lesson.course_id)
        ).all()
    )

    by_course: dict[int, dict[str, Any]] = {}
    for course_id, name, first_name, last_name in lesson_rows:
        entry = by_course.setdefault(
            course_id,
            {
                "course_id": course_id,
                "subject_name": name,
                "teacher_surname": None,
                "teacher_firstname": None,
                "total_lessons": totals.get(course_id, 0),
                "absent_lessons": absences.get(course_id, 0),
            },
        )
        if entry["teacher_surname"] is None and last_name is not None:
            entry["teacher_surname"] = last_name
            entry["teacher_firstname"] = first_name
    return list(by_course.values())


def course_detail(db: Session, student: Student, course_id: int) -> dict[str, Any]:
    since = school_year_start()
    course_grades = as_dicts(
        db.execute(
            select(Grade.grade, Grade.weight, Grade.created_at, Grade.comment)
            .where(Grade.student_id == student.student_id, Grade.course_id == course_id, Grade.created_at >= since)
            .order_by(Grade.created_at.desc())
        )
    )
    subject = first_dict(db.execute(select(Course.name, Course.description).where(Course.course_id == course_id)))
    missed = as_dicts(
        db.execute(
            select(Absence.date, Lesson.start_time)
            .join(Lesson, Lesson.lesson_id == Absence.lesson_id)
            .where(Absence.student_id == student.student_id, Lesson.course_id == course_id, Absence.date >= since)
            .order_by(Absence.date.desc())
        )
    )
    return {"subject": subject or {"name": "Przedmiot"}, "grades": course_grades, "absences": missed}


def format_grade(value: float) -> str:
    return f"{float(value):g}"


def dashboard_summary(db: Session, student: Student) -> dict[str, Any]:
    conducted, missed = _conducted_and_missed(db, student, school_year_start())

    next_lessons = []
    upcoming = db.execute(
        select(
            Lesson.lesson_id,
            Course.name.label("subject"),
            Lesson.start_time,
            Lesson.room_name,
            Lesson.room_id,
            User.last_name.label("teacher"),
        )
        .join(Course, Course.course_id == Lesson.course_id)
        .outerjoin(Staff, Staff.staff_id == Lesson.teacher_id)
        .outerjoin(User, User.user_id == Staff.user_id)
        .where(Lesson.class_id == student.class_id, Lesson.start_time > datetime.now())
        .order_by(Lesson.start_time.asc())
        .limit(1)
    ).mappings()
    for row in upcoming:
        lesson = dict(row)
        lesson["room"] = row["room_name"] or row["room_id"]
        lesson["relative_day"] = relative_day(row["start_time"])
        lesson["time_display"] = format_hhmm(row["start_time"])
        lesson["teacher"] = row["teacher"] or "Brak danych"
        next_lessons.append(lesson)

    recent_grades = [
        {**row, "grade": format_grade(row["grade"]), "weight": f"{float(row['weight']):.2f}"}
        for row in as_dicts(
            db.execute(
                select(Grade.grade, Grade.weight, Course.name.label("subject"), Grade.created_at)
                .join(Course, Course.course_id == Grade.course_id)
                .where(Grade.student_id == student.student_id)
                .order_by(Grade.created_at.desc(), Grade.grade_id.desc())
                .limit(DASHBOARD_GRADES_LIMIT)
            )
        )
    ]

    announcements = as_dicts(
        db.execute(
            announcements_select()
            .where(or_(Announcement.class_id == student.class_id, Announcement.class_id.is_(None)))
            .order_by(Announcement.created_at.desc(), Announcement.announcement_id.desc())
            .limit(DASHBOARD_ANNOUNCEMENTS_LIMIT)
        )
    )

    return {
        "attendance": attendance_percentage(conducted, missed),
        "nextLessons": next_lessons,
        "recentGrades": recent_grades,
        "announcement": announcements[0] if announcements else None,
        "announcements": announcements,
    }
