"""
Entry point for `streamlit run streamlit_app.py`.

Resolves the record-store settings from Streamlit secrets and the environment,
logs which store will be used (and what is missing), then runs ui.py.
"""

import runpy
import time
from pathlib import Path

_T0 = time.perf_counter()


def _log(msg: str) -> None:
    print(f"[startup] +{time.perf_counter() - _T0:.3f}s {msg}", flush=True)


import streamlit as st

from records import StoreSettings

UI_SCRIPT = Path(__file__).resolve().with_name("ui.py")


def _check_store_settings() -> StoreSettings:
    secrets = {}
    try:
        secrets = {k: dict(st.secrets.get(k, {})) for k in ("store", "supabase")}  # type: ignore[attr-defined]
    except Exception as e:
        _log(f"secrets unreadable ({type(e).__name__}), using environment only")
        secrets = {}
    settings = StoreSettings.from_secrets(secrets)
    _log(f"record store: {settings.describe()}")
    missing = settings.missing()
    if missing:
        _log(f"saving disabled until set: {', '.join(missing)}")
    return settings


# Once per browser session; ui.py builds its store from these
if "store_settings" not in st.session_state:
    st.session_state.store_settings = _check_store_settings()

try:
    if not UI_SCRIPT.exists():
        raise FileNotFoundError(f"ui.py not found next to {Path(__file__).name} ({UI_SCRIPT})")
    runpy.run_path(str(UI_SCRIPT), run_name="condolence_ui")
except Exception as e:
    st.error("The condolence card app could not start.")
    st.exception(e)
    _log(f"ui failed: {type(e).__name__}: {e}")
