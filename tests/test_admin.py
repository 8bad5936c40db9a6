from datetime import datetime, timedelta

import pytest

from school_backend.models import Absence, Grade, Lesson, Role, ScholarshipType, Staff, Student


@pytest.fixture
def admin(make_account):
    return make_account(Role.ADMIN, first_name="Ala", last_name="Admin")


def account_payload(**overrides):
    payload = {
        "email": "nowy@school.pl",
        "password": "haslo123",
        "first_name": "Nowy",
        "last_name": "Nauczyciel",
        "pesel": "75010112345",
        "role": "teacher",
    }
    payload.update(overrides)
    return payload


def test_admin_register_sets_staff_salary(client, db_session, admin):
    response = client.post("/api/admin/register", json=account_payload(), headers=admin.headers)
    assert response.status_code == 201
    user_id = response.json()["user_id"]
    assert db_session.query(Staff).filter(Staff.user_id == user_id).one().salary == 4500

    response = client.post(
        "/api/admin/register",
        json=account_payload(email="boss@school.pl", pesel="75010112346", role="admin"),
        headers=admin.headers,
    )
    user_id = response.json()["user_id"]
    assert db_session.query(Staff).filter(Staff.user_id == user_id).one().salary == 6000


def test_admin_register_errors(client, admin):
    assert client.post("/api/admin/register", json=account_payload(), headers=admin.headers).status_code == 201
    duplicate = client.post("/api/admin/register", json=account_payload(pesel="75010199999"), headers=admin.headers)
    assert duplicate.status_code == 409
    bad_pesel = client.post(
        "/api/admin/register", json=account_payload(email="x@school.pl", pesel="7501"), headers=admin.headers
    )
    assert bad_pesel.status_code == 400
    bad_role = client.post("/api/admin/register", json=account_payload(role="janitor"), headers=admin.headers)
    assert bad_role.status_code == 422


def test_writes_require_admin_but_reads_do_not(client, school):
    teacher = school["teacher"]
    assert client.get("/api/admin/classes", headers=teacher.headers).status_code == 200
    assert client.post("/api/admin/classes", json={"name": "2B"}, headers=teacher.headers).status_code == 403
    assert client.get("/api/admin/classes").status_code == 401


@pytest.mark.parametrize("path", ["/api/admin/users", "/api/admin/scholarships", "/api/admin/stats"])
def test_sensitive_reads_are_admin_only(client, admin, school, path):
    assert client.get(path, headers=school["student"].headers).status_code == 403
    assert client.get(path, headers=school["parent"].headers).status_code == 403
    assert client.get(path, headers=school["teacher"].headers).status_code == 403
    assert client.get(path, headers=admin.headers).status_code == 200


def test_users_list_has_display_roles(client, admin, school):
    rows = client.get("/api/admin/users", headers=admin.headers).json()
    roles = {row["user_id"]: row["display_role"] for row in rows}
    assert roles[admin.user_id] == "Admin"
    assert roles[school["teacher"].user_id] == "Nauczyciel"
    assert roles[school["student"].user_id] == "Uczeń"
    assert roles[school["parent"].user_id] == "Rodzic"

    student_row = next(row for row in rows if row["user_id"] == school["student"].user_id)
    assert student_row["class_name"] == "1A"
    assert [row["last_name"] for row in rows] == sorted(row["last_name"] for row in rows)


def test_assign_class(client, db_session, admin, school, make_account):
    newcomer = make_account(Role.STUDENT)
    payload = {"user_id": newcomer.user_id, "class_id": school["class_id"]}
    assert client.post("/api/admin/assign-class", json=payload, headers=admin.headers).status_code == 200
    db_session.expire_all()
    assert db_session.get(Student, newcomer.profile_id).class_id == school["class_id"]

    payload = {"user_id": school["teacher"].user_id, "class_id": school["class_id"]}
    assert client.post("/api/admin/assign-class", json=payload, headers=admin.headers).status_code == 404
    payload = {"user_id": newcomer.user_id, "class_id": 999}
    assert client.post("/api/admin/assign-class", json=payload, headers=admin.headers).status_code == 404


def test_scholarship_lifecycle(client, db_session, admin, school):
    db_session.add(ScholarshipType(requirements="Średnia 5.0", duration_semesters=2))
    db_session.commit()
    types = client.get("/api/admin/scholarship-types", headers=admin.headers).json()
    assert types[0]["requirements"] == "Średnia 5.0"

    payload = {
        "student_id": school["student"].profile_id,
        "scholarship_type_id": types[0]["scholarship_type_id"],
        "amount": 500,
    }
    response = client.post("/api/admin/scholarships", json=payload, headers=admin.headers)
    assert response.status_code == 201
    scholarship_id = response.json()["scholarship_id"]

    listed = client.get("/api/admin/scholarships", headers=admin.headers).json()
    assert listed[0]["type_name"] == "Średnia 5.0"
    assert listed[0]["class_name"] == "1A"
    assert listed[0]["amount"] == 500

    missing_amount = {key: value for key, value in payload.items() if key != "amount"}
    assert client.post("/api/admin/scholarships", json=missing_amount, headers=admin.headers).status_code == 422

    assert client.delete(f"/api/admin/scholarships/{scholarship_id}", headers=admin.headers).status_code == 200
    assert client.delete(f"/api/admin/scholarships/{scholarship_id}", headers=admin.headers).status_code == 404


def test_stats(client, admin, school):
    stats = client.get("/api/admin/stats", headers=admin.headers).json()
    assert stats["studentCount"] == 1
    assert stats["teacherCount"] == 1
    assert stats["courseCount"] == 1
    assert stats["lessonsToday"] >= 1


def test_create_and_delete_class_cascades(client, db_session, admin, school):
    response = client.post(
        "/api/admin/classes", json={"name": "2B", "main_teacher_id": school["teacher"].profile_id}, headers=admin.headers
    )
    assert response.status_code == 201
    names = [row["name"] for row in client.get("/api/admin/classes", headers=admin.headers).json()]
    assert names == ["1A", "2B"]

    db_session.add(
        Absence(student_id=school["student"].profile_id, lesson_id=school["past_lesson_id"], date=datetime.now())
    )
    db_session.add(
        Grade(
            student_id=school["student"].profile_id,
            course_id=school["course_id"],
            lesson_id=school["past_lesson_id"],
            grade=4,
            weight=1,
        )
    )
    db_session.commit()

    assert client.delete(f"/api/admin/classes/{school['class_id']}", headers=admin.headers).status_code == 200
    db_session.expire_all()
    assert db_session.query(Lesson).count() == 0
    assert db_session.query(Absence).count() == 0
    assert db_session.query(Grade).one().lesson_id is None
    assert db_session.get(Student, school["student"].profile_id).class_id is None
    assert client.delete(f"/api/admin/classes/{school['class_id']}", headers=admin.headers).status_code == 404


def test_course_creation_and_listing(client, admin, school):
    payload = {
        "name": "Fizyka 1A",
        "subject_id": school["subject_id"],
        "teacher_id": school["teacher"].profile_id,
    }
    response = client.post("/api/admin/courses", json=payload, headers=admin.headers)
    assert response.status_code == 201

    courses = client.get("/api/admin/courses", headers=admin.headers).json()
    created = next(course for course in courses if course["course_id"] == response.json()["course_id"])
    assert created["teacher_name"] == "Anna Nowak"
    assert created["subject_name"] == "Matematyka"
    assert created["weight"] == 1

    payload["teacher_id"] = 999
    assert client.post("/api/admin/courses", json=payload, headers=admin.headers).status_code == 404


def test_delete_course_removes_lessons_and_grades(client, db_session, admin, school):
    db_session.add(Grade(student_id=school["student"].profile_id, course_id=school["course_id"], grade=3, weight=1))
    db_session.commit()
    assert client.delete(f"/api/admin/courses/{school['course_id']}", headers=admin.headers).status_code == 200
    db_session.expire_all()
    assert db_session.query(Lesson).count() == 0
    assert db_session.query(Grade).count() == 0


def test_schedule_lesson(client, admin, school):
    start = (datetime.now() + timedelta(days=3)).replace(hour=9, minute=50, second=0, microsecond=0)
    payload = {
        "class_id": school["class_id"],
        "course_id": school["course_id"],
        "teacher_id": school["teacher"].profile_id,
        "room_id": school["room_id"],
        "start_time": start.isoformat(),
    }
    response = client.post("/api/admin/lessons", json=payload, headers=admin.headers)
    assert response.status_code == 201

    clash = client.post("/api/admin/lessons", json=payload, headers=admin.headers)
    assert clash.status_code == 400

    lessons = client.get("/api/admin/lessons-all", headers=admin.headers).json()
    created = next(lesson for lesson in lessons if lesson["lesson_id"] == response.json()["lesson_id"])
    assert created["room_name"] == "Sala 101"
    assert created["class_name"] == "1A"

    payload["room_id"] = 999
    payload["start_time"] = (start + timedelta(hours=1)).isoformat()
    assert client.post("/api/admin/lessons", json=payload, headers=admin.headers).status_code == 404

    del payload["room_id"]
    roomless = client.post("/api/admin/lessons", json=payload, headers=admin.headers)
    assert roomless.status_code == 201
    lessons = client.get("/api/admin/lessons-all", headers=admin.headers).json()
    created = next(lesson for lesson in lessons if lesson["lesson_id"] == roomless.json()["lesson_id"])
    assert created["room_name"] is None


def test_delete_lesson(client, db_session, admin, school):
    lesson_id = school["past_lesson_id"]
    db_session.add(Absence(student_id=school["student"].profile_id, lesson_id=lesson_id, date=datetime.now()))
    db_session.commit()
    assert client.delete(f"/api/admin/lessons/{lesson_id}", headers=admin.headers).status_code == 200
    db_session.expire_all()
    assert db_session.query(Absence).count() == 0
    assert client.delete(f"/api/admin/lessons/{lesson_id}", headers=admin.headers).status_code == 404


def test_student_grades_and_announcements(client, db_session, admin, school):
    db_session.add(Grade(student_id=school["student"].profile_id, course_id=school["course_id"], grade=5, weight=2))
    db_session.commit()
    grades = client.get(f"/api/admin/grades/student/{school['student'].profile_id}", headers=admin.headers).json()
    assert grades == [
        {"grade": 5, "weight": 2, "course_name": "Matematyka 1A", "created_at": grades[0]["created_at"]}
    ]

    payload = {"title": "Wycieczka", "content": "W piątek jedziemy do muzeum", "class_id": school["class_id"]}
    assert client.post("/api/admin/announcements", json=payload, headers=admin.headers).status_code == 201
    school_wide = {"title": "Dzień wolny", "content": "Szkoła zamknięta"}
    assert client.post("/api/admin/announcements", json=school_wide, headers=admin.headers).status_code == 201
    missing_class = {"title": "X", "content": "Y", "class_id": 999}
    assert client.post("/api/admin/announcements", json=missing_class, headers=admin.headers).status_code == 404

    announcements = client.get("/api/admin/announcements", headers=school["teacher"].headers).json()
    assert {a["title"] for a in announcements} == {"Wycieczka", "Dzień wolny"}
    by_title = {a["title"]: a for a in announcements}
    assert by_title["Wycieczka"]["class_name"] == "1A"
    assert by_title["Dzień wolny"]["class_name"] is None
    assert by_title["Wycieczka"]["first_name"] == "Ala"


def test_reference_lists(client, school):
    headers = school["student"].headers
    assert client.get("/api/admin/rooms", headers=headers).json() == [{"room_id": school["room_id"], "name": "Sala 101"}]
    assert client.get("/api/admin/subjects", headers=headers).json() == [
        {"subject_id": school["subject_id"], "name": "Matematyka"}
    ]
    teachers = client.get("/api/admin/teachers", headers=headers).json()
    assert teachers == [{"staff_id": school["teacher"].profile_id, "first_name": "Anna", "last_name": "Nowak"}]
