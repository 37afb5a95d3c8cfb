"""
Value types shared by the renderer, the record stores and the UI.

Keep imports light (no Pillow/pandas/requests here).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, Optional

from config import DEFAULT_MESSAGE


def _blank(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, float) and str(v) == "nan":
        return True
    return isinstance(v, str) and not v.strip()


def _parse_date(v: Any, label: str) -> Optional[date]:
    if _blank(v):
        return None
    if isinstance(v, date):
        return v
    try:
        # Form date inputs and database rows both use YYYY-MM-DD
        return date.fromisoformat(str(v).strip()[:10])
    except ValueError as e:
        raise ValueError(f"{label} must be a date (YYYY-MM-DD), got {v!r}") from e


def _parse_age(v: Any) -> Optional[int]:
    if _blank(v):
        return None
    try:
        age = int(str(v).strip()) if not isinstance(v, int) else v
    except ValueError as e:
        raise ValueError(f"Age must be a whole number, got {v!r}") from e
    if age < 0:
        raise ValueError(f"Age must not be negative, got {age}")
    return age


def _clean_text(v: Any) -> Optional[str]:
    if _blank(v):
        return None
    return str(v).strip()


@dataclass(frozen=True)
class FormInput:
    """Personal details entered for one condolence card."""

    full_name: str
    date_of_birth: Optional[date] = None
    date_of_death: Optional[date] = None
    age: Optional[int] = None
    place_of_death: Optional[str] = None
    custom_message: str = DEFAULT_MESSAGE

    @classmethod
    def from_form(
        cls,
        full_name: Any,
        date_of_birth: Any = None,
        date_of_death: Any = None,
        age: Any = None,
        place_of_death: Any = None,
        custom_message: Any = DEFAULT_MESSAGE,
    ) -> "FormInput":
        """
        Build from raw form values (strings as typed, blanks allowed).
        Raises ValueError for unparseable dates/age or a negative age.
        A blank name is accepted here; the renderer rejects it.
        """
        message = "" if custom_message is None else str(custom_message).strip()
        return cls(
            full_name=("" if full_name is None else str(full_name)).strip(),
            date_of_birth=_parse_date(date_of_birth, "Date of birth"),
            date_of_death=_parse_date(date_of_death, "Date of death"),
            age=_parse_age(age),
            place_of_death=_clean_text(place_of_death),
            custom_message=message,
        )

    def to_row(self) -> Dict[str, Any]:
        """Column values for a death_records row (blank optionals -> None)."""
        return {
            "full_name": self.full_name,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "date_of_death": self.date_of_death.isoformat() if self.date_of_death else None,
            "age": self.age,
            "place_of_death": self.place_of_death or None,
            "custom_message": self.custom_message or None,
        }


@dataclass(frozen=True)
class StoredRecord:
    """A saved card as read back from a record store."""

    id: str
    created_at: str
    full_name: str
    original_photo_url: Optional[str] = None
    condolence_image_url: Optional[str] = None
    date_of_birth: Optional[str] = None
    date_of_death: Optional[str] = None
    age: Optional[int] = None
    place_of_death: Optional[str] = None
    custom_message: Optional[str] = None
    is_public: bool = True
    updated_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "StoredRecord":
        """Build from a row dict; unknown columns are kept in `extra`."""
        known = {f for f in cls.__dataclass_fields__ if f != "extra"}
        missing = [k for k in ("id", "full_name") if _blank(row.get(k))]
        if missing:
            raise ValueError(f"Record row is missing {', '.join(missing)}: {row!r}")
        values = {k: row.get(k) for k in known if k in row}
        values["id"] = str(row["id"])
        values["created_at"] = str(row.get("created_at") or "")
        if values.get("age") is not None:
            values["age"] = int(values["age"])
        values["is_public"] = bool(row.get("is_public", True))
        extra = {k: v for k, v in row.items() if k not in known}
        return cls(extra=extra, **values)

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        extra = row.pop("extra")
        return {**extra, **row}
