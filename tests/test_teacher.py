from datetime import datetime

from school_backend.models import Absence, Announcement, Grade, Role


def test_teacher_routes_need_staff_role(client, school):
    assert client.get("/api/teacher/schedule", headers=school["student"].headers).status_code == 403
    assert client.get("/api/teacher/schedule", headers=school["parent"].headers).status_code == 403


def test_schedule_maps_bell_slots(client, school):
    schedule = client.get("/api/teacher/schedule", headers=school["teacher"].headers).json()
    upcoming = next(item for item in schedule if item["lesson_id"] == school["future_lesson_id"])
    assert upcoming["name"] == "Matematyka (1A)"
    assert upcoming["start_time"] == "08:00"
    assert upcoming["end_time"] == "08:45"
    assert upcoming["room"] == "Sala 101"


def test_classes_and_class_detail(client, db_session, school):
    teacher = school["teacher"]
    classes = client.get("/api/teacher/classes", headers=teacher.headers).json()
    assert classes == [
        {"class_id": school["class_id"], "class_name": "1A", "student_count": 1, "is_main_teacher": True}
    ]

    db_session.add(Announcement(user_id=teacher.user_id, class_id=school["class_id"], title="Zwykłe", content="a"))
    db_session.add(
        Announcement(user_id=teacher.user_id, class_id=school["class_id"], title="Ważne", content="b", is_pinned=True)
    )
    db_session.commit()

    detail = client.get(f"/api/teacher/classes/{school['class_id']}", headers=teacher.headers).json()
    assert detail["info"]["name"] == "1A"
    assert detail["students"][0]["last_name"] == "Zielinski"
    assert [a["title"] for a in detail["announcements"]] == ["Ważne", "Zwykłe"]
    assert client.get("/api/teacher/classes/999", headers=teacher.headers).status_code == 404


def test_admin_allowed_and_school_staff_forbidden(client, school, make_account):
    admin = make_account(Role.ADMIN)
    assert client.get("/api/teacher/classes", headers=admin.headers).status_code == 200

    school_staff = make_account(Role.SCHOOL_STAFF)
    assert client.get("/api/teacher/classes", headers=school_staff.headers).status_code == 403


def test_dashboard_summary(client, school):
    body = client.get("/api/teacher/dashboard-summary", headers=school["teacher"].headers).json()
    assert body["nextLesson"]["lesson_id"] == school["future_lesson_id"]
    assert body["recentLessons"][0]["lesson_id"] == school["past_lesson_id"]
    assert body["classes"][0]["is_main_teacher"] is True
    assert body["announcements"] == []


def test_lesson_details_and_register(client, db_session, school):
    teacher = school["teacher"]
    student_id = school["student"].profile_id
    lesson_id = school["past_lesson_id"]

    details = client.get(f"/api/teacher/lesson/{lesson_id}/details", headers=teacher.headers).json()
    assert details["lesson"]["subject_name"] == "Matematyka"
    assert details["students"][0]["absence_record_id"] is None
    assert details["lateReasons"][0]["reason"] == "Spóźnienie"

    payload = {"studentsData": [{"student_id": student_id, "is_absent": True, "grade": 4, "weight": 2}]}
    response = client.post(f"/api/teacher/lesson/{lesson_id}/register", json=payload, headers=teacher.headers)
    assert response.status_code == 200

    # registering again replaces the absence but appends another grade
    client.post(f"/api/teacher/lesson/{lesson_id}/register", json=payload, headers=teacher.headers)
    assert db_session.query(Absence).count() == 1
    assert db_session.query(Grade).filter(Grade.lesson_id == lesson_id).count() == 2

    payload = {"studentsData": [{"student_id": student_id, "is_absent": False}]}
    client.post(f"/api/teacher/lesson/{lesson_id}/register", json=payload, headers=teacher.headers)
    assert db_session.query(Absence).count() == 0

    assert client.post("/api/teacher/lesson/999/register", json=payload, headers=teacher.headers).status_code == 404
    assert client.get("/api/teacher/lesson/999/details", headers=teacher.headers).status_code == 404


def test_register_rejects_students_outside_the_class(client, db_session, school, make_account):
    teacher = school["teacher"]
    url = f"/api/teacher/lesson/{school['past_lesson_id']}/register"

    unknown = client.post(url, json={"studentsData": [{"student_id": 9999, "is_absent": True}]}, headers=teacher.headers)
    assert unknown.status_code == 404
    assert "9999" in unknown.json()["detail"]

    outsider = make_account(Role.STUDENT)
    payload = {"studentsData": [{"student_id": outsider.profile_id, "is_absent": True}]}
    assert client.post(url, json=payload, headers=teacher.headers).status_code == 400

    student_id = school["student"].profile_id
    payload = {"studentsData": [{"student_id": student_id, "is_absent": True, "late_reason_id": 999}]}
    assert client.post(url, json=payload, headers=teacher.headers).status_code == 404
    assert db_session.query(Absence).count() == 0


def test_grade_crud(client, db_session, school):
    teacher = school["teacher"]
    payload = {"student_id": school["student"].profile_id, "course_id": school["course_id"], "grade": 3}
    response = client.post("/api/teacher/add-grade", json=payload, headers=teacher.headers)
    assert response.status_code == 201
    grade_id = response.json()["grade_id"]

    students = client.get(f"/api/teacher/course/{school['course_id']}/students", headers=teacher.headers).json()
    assert students[0]["grades"] == [{"grade_id": grade_id, "student_id": school["student"].profile_id, "grade": 3, "weight": 1}]

    update = {"grade": 4.5, "weight": 2}
    assert client.put(f"/api/teacher/grade/{grade_id}", json=update, headers=teacher.headers).status_code == 200
    db_session.expire_all()
    assert db_session.get(Grade, grade_id).grade == 4.5

    assert client.delete(f"/api/teacher/grade/{grade_id}", headers=teacher.headers).status_code == 200
    assert client.delete(f"/api/teacher/grade/{grade_id}", headers=teacher.headers).status_code == 404
    assert client.put(f"/api/teacher/grade/{grade_id}", json=update, headers=teacher.headers).status_code == 404


def test_course_students_empty_without_lessons(client, db_session, school):
    response = client.get("/api/teacher/course/999/students", headers=school["teacher"].headers)
    assert response.json() == []


def test_post_announcement(client, school):
    payload = {"title": "Sprawdzian", "content": "W czwartek", "class_id": school["class_id"], "is_pinned": True}
    response = client.post("/api/teacher/announcements", json=payload, headers=school["teacher"].headers)
    assert response.status_code == 201

    detail = client.get(f"/api/teacher/classes/{school['class_id']}", headers=school["teacher"].headers).json()
    assert detail["announcements"][0]["is_pinned"] is True
    assert detail["announcements"][0]["first_name"] == "Anna"
