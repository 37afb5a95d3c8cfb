from io import BytesIO
from pathlib import Path

from PIL import Image
from streamlit.testing.v1 import AppTest

from models import FormInput
from records import DatabaseError, LocalRecordStore

UI_SCRIPT = str(Path(__file__).resolve().parents[1] / "ui.py")


def _png(color=(120, 90, 60)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (600, 800), color).save(buf, format="PNG")
    return buf.getvalue()


def _app(tmp_path, monkeypatch):
    monkeypatch.setenv("CONDOLENCE_STORE", "local")
    monkeypatch.setenv("CONDOLENCE_LOCAL_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("CONDOLENCE_GALLERY_CACHE", str(tmp_path / "gallery.json"))
    return AppTest.from_file(UI_SCRIPT, default_timeout=60)


def test_save_stores_one_record_and_reports_success_after_rerun(tmp_path, monkeypatch):
    at = _app(tmp_path, monkeypatch)
    at.session_state["generated"] = {
        "png_bytes": _png(),
        "pdf_bytes": b"%PDF-1.4",
        "form": FormInput(full_name="Siti Aminah", place_of_death="Ipoh"),
        "photo_bytes": _png((10, 20, 30)),
        "photo_name": "siti.png",
    }
    at.run()
    assert not at.exception
    assert not at.session_state["busy"]

    at.button(key="save_card").click().run()

    assert not at.exception
    assert [s.value for s in at.success] == ["Condolence card has been successfully saved!"]
    assert at.session_state["generated"] is None
    assert not at.session_state["busy"]
    # The card is no longer pending, so there is nothing left to save twice
    assert all(b.key != "save_card" for b in at.button)
    saved = LocalRecordStore(str(tmp_path / "store")).list_public_records()
    assert [r.full_name for r in saved] == ["Siti Aminah"]

    # Shown once
    at.run()
    assert len(at.success) == 0


def test_save_failure_is_reported_and_card_stays_pending(tmp_path, monkeypatch):
    def _fail(self, form, original_url, rendered_url):
        raise DatabaseError("Failed to save record: disk full")

    monkeypatch.setattr(LocalRecordStore, "insert_record", _fail)
    at = _app(tmp_path, monkeypatch)
    at.session_state["generated"] = {
        "png_bytes": _png(),
        "pdf_bytes": b"%PDF-1.4",
        "form": FormInput(full_name="Siti Aminah"),
        "photo_bytes": _png((10, 20, 30)),
        "photo_name": "siti.png",
    }
    at.run()
    at.button(key="save_card").click().run()

    assert not at.exception
    assert [e.value for e in at.error] == ["Error while saving: Failed to save record: disk full"]
    assert at.session_state["generated"] is not None
    assert not at.session_state["busy"]
    assert list((tmp_path / "store").rglob("*.png")) == []
