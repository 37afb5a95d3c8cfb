from datetime import date

import pytest

from config import DEFAULT_MESSAGE
from models import FormInput, StoredRecord


def test_from_form_parses_raw_strings():
    form = FormInput.from_form(
        " Ahmad bin Ali ",
        date_of_birth="1950-01-01",
        date_of_death="2024-03-15",
        age="74",
        place_of_death=" Kuala Lumpur ",
    )
    assert form.full_name == "Ahmad bin Ali"
    assert form.date_of_birth == date(1950, 1, 1)
    assert form.date_of_death == date(2024, 3, 15)
    assert form.age == 74
    assert form.place_of_death == "Kuala Lumpur"
    assert form.custom_message == DEFAULT_MESSAGE


def test_from_form_blank_optionals_become_none():
    form = FormInput.from_form("Siti", date_of_birth="", date_of_death="  ", age="", place_of_death="")
    assert form.date_of_birth is None
    assert form.date_of_death is None
    assert form.age is None
    assert form.place_of_death is None


@pytest.mark.parametrize("age", ["-1", "seventy", "7.5"])
def test_from_form_rejects_bad_age(age):
    with pytest.raises(ValueError):
        FormInput.from_form("Siti", age=age)


def test_from_form_rejects_bad_date():
    with pytest.raises(ValueError, match="Date of death"):
        FormInput.from_form("Siti", date_of_death="15/03/2024")


def test_to_row_uses_iso_dates_and_nulls():
    row = FormInput.from_form("Siti", date_of_death="2024-03-15", custom_message="").to_row()
    assert row == {
        "full_name": "Siti",
        "date_of_birth": None,
        "date_of_death": "2024-03-15",
        "age": None,
        "place_of_death": None,
        "custom_message": None,
    }


def test_stored_record_from_row_keeps_unknown_columns():
    rec = StoredRecord.from_row(
        {"id": 7, "created_at": "2024-03-15T10:00:00+00:00", "full_name": "Siti", "age": "70", "gender": "F"}
    )
    assert rec.id == "7"
    assert rec.age == 70
    assert rec.is_public is True
    assert rec.extra == {"gender": "F"}
    assert rec.to_row()["gender"] == "F"


def test_stored_record_requires_id_and_name():
    with pytest.raises(ValueError):
        StoredRecord.from_row({"id": "1", "full_name": ""})
