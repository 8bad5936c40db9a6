from datetime import datetime

from school_backend.timetable import (
    attendance_percentage,
    english_day,
    find_slot,
    polish_day,
    relative_day,
    school_year_start,
    slot_bounds,
    slot_label,
    span_label,
)


def test_school_year_starts_in_september_of_current_year_from_autumn():
    assert school_year_start(datetime(2024, 10, 15, 12, 0)) == datetime(2024, 9, 1)
    assert school_year_start(datetime(2024, 9, 1, 0, 0)) == datetime(2024, 9, 1)


def test_school_year_starts_in_previous_september_before_autumn():
    assert school_year_start(datetime(2025, 3, 10)) == datetime(2024, 9, 1)
    assert school_year_start(datetime(2025, 8, 31, 23, 59)) == datetime(2024, 9, 1)


def test_slot_matching_uses_minute_ranges():
    assert find_slot("08:00") == ("08:00", "08:45")
    assert find_slot("07:20") == ("08:00", "08:45")
    assert find_slot("08:41") == ("08:55", "09:40")
    assert find_slot("15:25") == ("15:25", "16:10")
    assert find_slot("17:00") is None


def test_student_slot_label():
    assert slot_label("08:00") == "8:00 - 8:45"
    assert slot_label("10:50") == "10:50 - 11:35"
    assert slot_label("18:30") == "Lekcja poza planem (18:30)"


def test_staff_slot_bounds():
    assert slot_bounds("09:50") == {"start": "09:50", "end": "10:35"}
    assert slot_bounds("19:00") == {"start": "19:00", "end": ""}


def test_polish_day_names():
    assert polish_day(datetime(2024, 10, 14)) == "Poniedziałek"
    assert polish_day(datetime(2024, 10, 20)) == "Niedziela"


def test_english_day_names_ignore_locale():
    assert english_day(datetime(2024, 10, 14)) == "Monday"
    assert english_day(datetime(2024, 10, 20)) == "Sunday"


def test_relative_day():
    today = datetime(2024, 10, 16, 10, 0)
    assert relative_day(datetime(2024, 10, 16, 8, 0), today) == "Dzisiaj"
    assert relative_day(datetime(2024, 10, 17, 8, 0), today) == "Jutro"
    assert relative_day(datetime(2024, 10, 18, 8, 0), today) == "piątek"


def test_span_label_adds_duration():
    assert span_label(datetime(2024, 10, 14, 8, 0), 45) == "08:00 - 08:45"


def test_attendance_percentage():
    assert attendance_percentage(0, 0) == 100
    assert attendance_percentage(10, 2) == 80
    # 7 of 8 attended is 87.5
    assert attendance_percentage(8, 1) == 88
    assert attendance_percentage(2, 5) == 0
