from datetime import datetime

import pytest

from school_backend.models import Absence, Grade, ParentStudentPair, Role, SchoolClass, Student, User


@pytest.fixture
def admin(make_account):
    return make_account(Role.ADMIN, first_name="Ala", last_name="Admin")


def new_user_payload(**overrides):
    payload = {
        "first_name": "Marek",
        "last_name": "Lis",
        "email": "marek.lis@school.pl",
        "password": "haslo123",
        "pesel": "85010112345",
    }
    payload.update(overrides)
    return payload


def test_users_routes_require_admin(client, make_account):
    student = make_account(Role.STUDENT)
    assert client.get("/api/users/").status_code == 401
    assert client.get("/api/users/", headers=student.headers).status_code == 403


def test_create_and_list_users(client, admin):
    response = client.post("/api/users/", json=new_user_payload(), headers=admin.headers)
    assert response.status_code == 201
    created = response.json()
    assert created["email"] == "marek.lis@school.pl"
    assert "password_hash" not in created

    listed = client.get("/api/users/", headers=admin.headers).json()
    assert listed[0]["user_id"] == created["user_id"]

    duplicate = client.post("/api/users/", json=new_user_payload(pesel="85010199999"), headers=admin.headers)
    assert duplicate.status_code == 409


def test_get_user_validates_id(client, admin):
    assert client.get("/api/users/0", headers=admin.headers).status_code == 400
    assert client.get("/api/users/4242", headers=admin.headers).status_code == 404
    assert client.get(f"/api/users/{admin.user_id}", headers=admin.headers).json()["email"] == admin.email


def test_update_user_ignores_blank_fields(client, admin, make_account):
    target = make_account(Role.STUDENT, first_name="Stary")
    response = client.put(
        f"/api/users/{target.user_id}",
        json={"first_name": "Nowy", "last_name": "  ", "middle_name": None},
        headers=admin.headers,
    )
    assert response.status_code == 200
    assert response.json()["first_name"] == "Nowy"
    assert response.json()["last_name"] == "Kowalski"


def test_update_user_errors(client, admin, make_account):
    target = make_account(Role.STUDENT)
    assert client.put(f"/api/users/{target.user_id}", json={"first_name": " "}, headers=admin.headers).status_code == 400
    assert client.put("/api/users/4242", json={"first_name": "X"}, headers=admin.headers).status_code == 404
    conflict = client.put(f"/api/users/{target.user_id}", json={"email": admin.email}, headers=admin.headers)
    assert conflict.status_code == 409
    assert client.put(f"/api/users/{target.user_id}", json={"pesel": "12"}, headers=admin.headers).status_code == 400


def test_delete_student_cascades(client, db_session, admin, school):
    student = school["student"]
    db_session.add(Absence(student_id=student.profile_id, lesson_id=school["past_lesson_id"], date=datetime.now()))
    db_session.add(Grade(student_id=student.profile_id, course_id=school["course_id"], grade=5, weight=1))
    db_session.commit()

    response = client.delete(f"/api/users/{student.user_id}", headers=admin.headers)
    assert response.status_code == 204

    db_session.expire_all()
    assert db_session.query(User).filter(User.user_id == student.user_id).count() == 0
    assert db_session.query(Student).count() == 0
    assert db_session.query(Grade).count() == 0
    assert db_session.query(Absence).count() == 0
    assert db_session.query(ParentStudentPair).count() == 0


def test_delete_teacher_detaches_classes(client, db_session, admin, school):
    teacher = school["teacher"]
    assert client.delete(f"/api/users/{teacher.user_id}", headers=admin.headers).status_code == 204

    db_session.expire_all()
    assert db_session.get(SchoolClass, school["class_id"]).main_teacher_id is None
    assert client.delete(f"/api/users/{teacher.user_id}", headers=admin.headers).status_code == 404
