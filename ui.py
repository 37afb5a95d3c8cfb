#!/usr/bin/env python3
"""
Streamlit UI for the Islamic Condolence Card Generator
"""

import os
import time
import traceback
from datetime import date
from urllib.parse import unquote, urlparse

import streamlit as st

from config import (
    DEFAULT_GALLERY_CACHE,
    DEFAULT_MESSAGE,
    GALLERY_COLUMNS_DESKTOP,
    GALLERY_COLUMNS_MOBILE,
    GALLERY_WIDTH,
    PREVIEW_WIDTH,
)
from models import FormInput, StoredRecord
from records import (
    GalleryCache,
    MissingConfigError,
    PersistenceError,
    StoreSettings,
    create_complete_record,
    load_gallery,
    make_record_store,
    records_dataframe,
)
from utils import safe_pdf_filename, safe_png_filename

_MIN_DATE = date(1900, 1, 1)

# Startup timing (logged to stdout for Streamlit Cloud logs)
_UI_T0 = time.perf_counter()
def _ui_log(msg: str) -> None:
    print(f"[ui] +{time.perf_counter() - _UI_T0:.3f}s {msg}", flush=True)

_ui_log("ui.py start")

# Page config
st.set_page_config(
    page_title="Islamic Condolence Card Generator",
    page_icon="🤲",
    layout="centered"
)

st.markdown(
    """
<style>
  button, input, textarea, select {
    border-radius: 10px !important;
  }
  .main .block-container {
    max-width: 980px;
    padding-top: 1rem;
    padding-bottom: 2.5rem;
  }
  @media (max-width: 640px) {
    .main .block-container {
      padding-left: 0.75rem;
      padding-right: 0.75rem;
    }
  }
</style>
""",
    unsafe_allow_html=True,
)

# --- Header ---
st.markdown(
    """
<div style="margin-top: 0.25rem; margin-bottom: 0.25rem;">
  <div style="font-size: 1.8rem; font-weight: 750; line-height: 1.15;">
    Islamic Condolence Card Generator
  </div>
  <div style="font-size: 1.05rem; opacity: 0.8; margin-top: 0.2rem;">
    Create beautiful and meaningful Islamic condolence cards
  </div>
</div>
<div style="text-align: center; font-size: 1.6rem; margin: 0.8rem 0 0.2rem 0; font-family: serif;">
  إِنَّا لِلَّهِ وَإِنَّا إِلَيْهِ رَاجِعُونَ
</div>
<div style="text-align: center; opacity: 0.75;">
  "Indeed we belong to Allah, and indeed to Him we will return" (Al-Baqarah: 156)
</div>
""",
    unsafe_allow_html=True,
)
_ui_log("rendered header")


def _load_settings() -> StoreSettings:
    """Streamlit secrets ([store] / [supabase]) override environment variables."""
    secrets = {}
    try:
        secrets = {k: dict(st.secrets.get(k, {})) for k in ("store", "supabase")}  # type: ignore[attr-defined]
    except Exception:
        secrets = {}
    return StoreSettings.from_secrets(secrets)


# Initialize session state
if "store" not in st.session_state:
    st.session_state.store = None
    st.session_state._store_error = None
    try:
        # streamlit_app.py leaves the settings it checked at startup
        settings = st.session_state.get("store_settings") or _load_settings()
        st.session_state.store = make_record_store(settings)
        _ui_log(f"record store: {type(st.session_state.store).__name__}")
    except (MissingConfigError, ValueError) as e:
        st.session_state._store_error = str(e)
        _ui_log(f"record store unavailable: {e}")
if "gallery_cache" not in st.session_state:
    st.session_state.gallery_cache = GalleryCache(os.environ.get("CONDOLENCE_GALLERY_CACHE", DEFAULT_GALLERY_CACHE))
if "generated" not in st.session_state:
    # {png_bytes, pdf_bytes, form, photo_bytes, photo_name}
    st.session_state.generated = None
if "gallery" not in st.session_state:
    st.session_state.gallery = None
    st.session_state.gallery_from_cache = False
if "search_term" not in st.session_state:
    st.session_state.search_term = ""
if "form_version" not in st.session_state:
    # Bumped after a successful save so the form widgets start empty
    st.session_state.form_version = 0
if "_last_error" not in st.session_state:
    st.session_state._last_error = None
if "busy" not in st.session_state:
    # True from a Generate/Save click until that action's run finishes
    st.session_state.busy = False
if "flash" not in st.session_state:
    # (kind, text) messages shown once, after the rerun that follows an action
    st.session_state.flash = []


def _start_busy() -> None:
    st.session_state.busy = True


def _flash(kind: str, text: str) -> None:
    st.session_state.flash.append((kind, text))


def _show_flash() -> None:
    show = {"success": st.success, "warning": st.warning, "error": st.error}
    for kind, text in st.session_state.flash:
        show.get(kind, st.info)(text)
    st.session_state.flash = []


busy = st.session_state.busy
store = st.session_state.store

# Sidebar (collapsible in Streamlit UI)
with st.sidebar:
    with st.expander("About", expanded=False):
        st.markdown("**Islamic Condolence Card Generator**")
        st.markdown("Al-Fatihah cards with photo, dates and a message, saved to a shared gallery.")
    with st.expander("Connection test", expanded=False):
        if store is None:
            st.caption("No record store configured.")
        elif st.button("Run connection test"):
            with st.spinner("Testing connection…"):
                report = store.check_connection()
            icons = {"success": "✅", "warning": "⚠️", "failed": "❌"}
            for check in report.checks:
                st.markdown(f"{icons.get(check['status'], '•')} **{check['name']}**: {check['details']}")
_ui_log("rendered sidebar")

if st.session_state._store_error:
    st.error(f"Saving is disabled: {st.session_state._store_error}")

mobile_mode = st.checkbox("Mobile-friendly layout", value=False, help="Single-column gallery for small screens.")

st.markdown("---")
st.header("📝 Create Condolence Card")

v = st.session_state.form_version
photo_file = st.file_uploader(
    "Upload photo",
    type=["png", "jpg", "jpeg", "webp"],
    help="Photo of the deceased; it is cropped into a circle.",
    key=f"photo_{v}",
)
if photo_file is not None:
    st.image(photo_file.getvalue(), width=128, caption="Image selected")

with st.form(f"card_form_{v}", clear_on_submit=False):
    full_name = st.text_input("Full name *", placeholder="Enter full name")
    c1, c2 = st.columns([1, 1])
    with c1:
        date_of_birth = st.date_input("Date of birth", value=None, min_value=_MIN_DATE, max_value=date.today(), format="YYYY-MM-DD")
        age = st.text_input("Age", placeholder="65")
    with c2:
        date_of_death = st.date_input("Date of death", value=None, min_value=_MIN_DATE, max_value=date.today(), format="YYYY-MM-DD")
        place_of_death = st.text_input("Place of death", placeholder="Kuala Lumpur")
    custom_message = st.text_area("Condolence message", value=DEFAULT_MESSAGE, height=110)
    generate = st.form_submit_button(
        "👁️ Generate condolence card",
        type="primary",
        use_container_width=True,
        disabled=busy,
        on_click=_start_busy,
    )

if generate:
    st.session_state._last_error = None
    try:
        if photo_file is None or not (full_name or "").strip():
            _flash("warning", "Please upload an image and enter full name")
        else:
            try:
                form = FormInput.from_form(
                    full_name,
                    date_of_birth=date_of_birth,
                    date_of_death=date_of_death,
                    age=age,
                    place_of_death=place_of_death,
                    custom_message=custom_message,
                )
            except ValueError as e:
                _flash("error", str(e))
                form = None
            if form is not None:
                # Import heavy rendering code only when needed (improves Streamlit Cloud startup)
                from app import CondolenceCardRenderer, RenderError

                st.session_state.generated = None
                photo_bytes = photo_file.getvalue()
                try:
                    with st.spinner("Generating…"):
                        renderer = CondolenceCardRenderer()
                        card_img = renderer.render_card(photo_bytes, form)
                        png_bytes = renderer.encode_png(card_img)
                        pdf_bytes = renderer.create_pdf_bytes(card_img)
                    st.session_state.generated = {
                        "png_bytes": png_bytes,
                        "pdf_bytes": pdf_bytes,
                        "form": form,
                        "photo_bytes": photo_bytes,
                        "photo_name": photo_file.name,
                    }
                    _ui_log(f"generated card for {form.full_name!r} ({len(png_bytes)} bytes)")
                except RenderError as e:
                    _ui_log(f"render failed ({e.reason}): {e}")
                    if e.reason == "decode-failure":
                        _flash("error", "Error loading image. Please try again.")
                    else:
                        _flash("error", "Error occurred while generating card. Please try again.")
                    st.session_state._last_error = traceback.format_exc()
    finally:
        st.session_state.busy = False
    # Re-render with the buttons enabled again
    st.rerun()

_show_flash()

if st.session_state._last_error:
    with st.expander("Show error details", expanded=False):
        st.code(st.session_state._last_error)

# --- Preview / download / save ---
generated = st.session_state.generated
if generated is not None:
    st.subheader("Condolence card preview")
    st.image(generated["png_bytes"], width=PREVIEW_WIDTH)
    d1, d2, d3 = st.columns([1, 1, 1])
    with d1:
        st.download_button(
            "⬇️ Download PNG",
            data=generated["png_bytes"],
            file_name=safe_png_filename(generated["form"].full_name),
            mime="image/png",
            use_container_width=True,
        )
    with d2:
        st.download_button(
            "🖨️ Download PDF",
            data=generated["pdf_bytes"],
            file_name=safe_pdf_filename(generated["form"].full_name),
            mime="application/pdf",
            use_container_width=True,
        )
    with d3:
        save = st.button(
            "💾 Save to gallery",
            key="save_card",
            disabled=store is None or busy,
            use_container_width=True,
            on_click=_start_busy,
        )
    if save:
        try:
            with st.spinner("Saving…"):
                record = create_complete_record(
                    store,
                    generated["form"],
                    generated["photo_bytes"],
                    generated["png_bytes"],
                    photo_filename=generated["photo_name"],
                )
                # Cleared before the next st.* call: an interrupted run must not leave the card saveable
                st.session_state.generated = None
        except PersistenceError as e:
            _ui_log(f"save failed: {e}")
            _flash("error", f"Error while saving: {e.message}")
        else:
            st.session_state.gallery_cache.prepend(record)
            if st.session_state.gallery is not None and not st.session_state.search_term:
                st.session_state.gallery = [record] + list(st.session_state.gallery)
            st.session_state.form_version += 1
            _flash("success", "Condolence card has been successfully saved!")
        finally:
            st.session_state.busy = False
        st.rerun()

# --- Gallery ---
st.markdown("---")
st.header("🖼️ Condolence Cards")


def _refresh_gallery() -> None:
    if store is None:
        st.session_state.gallery = st.session_state.gallery_cache.load()
        st.session_state.gallery_from_cache = True
        return
    try:
        result = load_gallery(store, st.session_state.gallery_cache, st.session_state.search_term)
    except PersistenceError as e:
        _ui_log(f"gallery load failed: {e}")
        st.error(f"Error loading cards: {e.message}")
        st.session_state.gallery = []
        st.session_state.gallery_from_cache = False
        return
    st.session_state.gallery = result.records
    st.session_state.gallery_from_cache = result.from_cache


with st.form("search_form", clear_on_submit=False):
    s1, s2 = st.columns([4, 1])
    with s1:
        search_term_input = st.text_input(
            "Search cards",
            value=st.session_state.search_term,
            placeholder="Search by name, message or place…",
            label_visibility="collapsed",
        )
    with s2:
        apply_search = st.form_submit_button("Search")
if apply_search:
    st.session_state.search_term = search_term_input.strip()
    st.session_state.gallery = None

r1, r2 = st.columns([1, 1])
with r1:
    if st.button("🔄 Refresh", use_container_width=True):
        st.session_state.gallery = None
with r2:
    if st.button("Clear search", use_container_width=True):
        st.session_state.search_term = ""
        st.session_state.gallery = None

if st.session_state.gallery is None:
    with st.spinner("Loading cards…"):
        _refresh_gallery()

cards = st.session_state.gallery or []
if st.session_state.gallery_from_cache:
    st.warning("Could not reach the database; showing the last loaded cards.")
if st.session_state.search_term:
    st.caption(f"Search applied: `{st.session_state.search_term}`")
st.markdown(f"**{len(cards)}** card(s)")


def _image_source(url: str):
    """st.image can't open file:// URLs; hand it the local path instead."""
    parsed = urlparse(url or "")
    if parsed.scheme == "file":
        return unquote(parsed.path)
    return url


def _card_caption(card: StoredRecord) -> str:
    parts = [card.full_name]
    if card.date_of_birth and card.date_of_death:
        parts.append(f"{card.date_of_birth} – {card.date_of_death}")
    if card.place_of_death:
        parts.append(card.place_of_death)
    return " · ".join(parts)


if cards:
    columns_per_row = GALLERY_COLUMNS_MOBILE if mobile_mode else GALLERY_COLUMNS_DESKTOP
    for start in range(0, len(cards), columns_per_row):
        row_cards = cards[start : start + columns_per_row]
        cols = st.columns(columns_per_row)
        for c, card in enumerate(row_cards):
            with cols[c]:
                if card.condolence_image_url:
                    st.image(_image_source(card.condolence_image_url), width=GALLERY_WIDTH)
                st.caption(_card_caption(card))
                if card.condolence_image_url and urlparse(card.condolence_image_url).scheme in ("http", "https"):
                    st.markdown(f"[⬇️ {safe_png_filename(card.full_name)}]({card.condolence_image_url})")
    with st.expander("Show as table", expanded=False):
        st.dataframe(records_dataframe(cards), use_container_width=True, hide_index=True)
elif st.session_state.search_term:
    st.info("No cards match your search.")
else:
    st.info("No cards yet. Create the first condolence card above.")

# Footer
st.markdown("---")
st.caption("Al-Fatihah. May Allah grant them Jannah.")

# Generate/Save runs end in st.rerun(); a run that gets here holds no action
st.session_state.busy = False
