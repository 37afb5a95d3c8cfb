"""
Record stores for saved condolence cards.

A store keeps the original photo and the rendered card as objects and one
row per card that references both URLs. Two implementations share the
RecordStore interface: Supabase (Storage + PostgREST over HTTP) and a local
directory.

Important: Keep imports light at module import time (Streamlit Cloud startup).
We import pandas/requests only inside functions.
"""

from __future__ import annotations

import json
import mimetypes
import os
import random
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence
from urllib.parse import quote, unquote, urlparse

from config import (
    CONDOLENCE_FOLDER,
    DEFAULT_LOCAL_STORE_DIR,
    ORIGINAL_FOLDER,
    RECORDS_TABLE,
    STORAGE_BUCKET,
    STORAGE_CACHE_CONTROL,
)
from models import FormInput, StoredRecord
from utils import file_extension, storage_object_name

RETRY_STATUSES = (429, 500, 502, 503)
# Gateway answers mean the backend itself was not reached
GATEWAY_STATUSES = (502, 503, 504)
SEARCH_COLUMNS = ("full_name", "custom_message", "place_of_death")


def _log(msg: str) -> None:
    print(f"[store] {msg}", flush=True)


class PersistenceError(RuntimeError):
    """A store operation failed; `message` is the backend's explanation."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StorageError(PersistenceError):
    """Object upload/delete rejected."""


class DatabaseError(PersistenceError):
    """Row insert/select rejected or malformed."""


class ConnectivityError(PersistenceError):
    """Backend unreachable."""


class MissingConfigError(ValueError):
    """Required connection settings are absent."""


@dataclass(frozen=True)
class StoreSettings:
    backend: str = "supabase"
    supabase_url: str = ""
    supabase_anon_key: str = ""
    local_dir: str = DEFAULT_LOCAL_STORE_DIR
    bucket: str = STORAGE_BUCKET
    table: str = RECORDS_TABLE

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "StoreSettings":
        """Keys: backend, url, anon_key, local_dir, bucket, table (all optional)."""

        def _get(key: str, default: str = "") -> str:
            v = values.get(key)
            return default if v is None or not str(v).strip() else str(v).strip()

        return cls(
            backend=_get("backend", "supabase").lower(),
            supabase_url=_get("url"),
            supabase_anon_key=_get("anon_key"),
            local_dir=_get("local_dir", DEFAULT_LOCAL_STORE_DIR),
            bucket=_get("bucket", STORAGE_BUCKET),
            table=_get("table", RECORDS_TABLE),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreSettings":
        env = os.environ if environ is None else environ
        return cls.from_mapping(
            {
                "backend": env.get("CONDOLENCE_STORE"),
                "url": env.get("SUPABASE_URL"),
                "anon_key": env.get("SUPABASE_ANON_KEY"),
                "local_dir": env.get("CONDOLENCE_LOCAL_DIR"),
            }
        )

    @classmethod
    def from_secrets(
        cls, secrets: Optional[Mapping[str, Any]], environ: Optional[Mapping[str, str]] = None
    ) -> "StoreSettings":
        """
        Settings from Streamlit secrets, falling back to environment variables.

        Recognised sections: [store] (backend, local_dir, bucket, table) and
        [supabase] (url, anon_key). Values set in secrets win.
        """
        env = cls.from_env(environ)
        merged: Dict[str, Any] = {}
        for section in ("store", "supabase"):
            values = (secrets or {}).get(section) or {}
            merged.update({k: v for k, v in dict(values).items() if v is not None and str(v).strip()})
        return cls.from_mapping(
            {
                "backend": merged.get("backend") or env.backend,
                "url": merged.get("url") or env.supabase_url,
                "anon_key": merged.get("anon_key") or env.supabase_anon_key,
                "local_dir": merged.get("local_dir") or env.local_dir,
                "bucket": merged.get("bucket") or env.bucket,
                "table": merged.get("table") or env.table,
            }
        )

    def missing(self) -> List[str]:
        """Names of required settings that are unset for the chosen backend."""
        if self.backend != "supabase":
            return []
        return [
            name
            for name, value in (("SUPABASE_URL", self.supabase_url), ("SUPABASE_ANON_KEY", self.supabase_anon_key))
            if not value
        ]

    def describe(self) -> str:
        """Loggable summary; never includes the key."""
        if self.backend == "local":
            return f"local store at {self.local_dir}"
        if self.backend == "supabase":
            target = self.supabase_url or "<no url>"
            key = "set" if self.supabase_anon_key else "missing"
            return f"supabase {target} (bucket {self.bucket}, table {self.table}, anon key {key})"
        return f"unknown backend {self.backend!r}"


@dataclass
class ConnectionReport:
    """Outcome of check_connection(): one entry per check, in order."""

    checks: List[Dict[str, Any]] = field(default_factory=list)

    def add(self, name: str, status: str, details: str = "") -> None:
        self.checks.append({"name": name, "status": status, "details": details})

    @property
    def ok(self) -> bool:
        return bool(self.checks) and all(c["status"] in ("success", "warning") for c in self.checks)


def record_matches(record: StoredRecord, term: str) -> bool:
    """Case-insensitive substring match over name, message and place."""
    needle = (term or "").strip().casefold()
    if not needle:
        return True
    return any(needle in str(getattr(record, col) or "").casefold() for col in SEARCH_COLUMNS)


class RecordStore:
    """Object + row storage for condolence cards."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self.clock = clock or time.time

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _put_object(self, name: str, data: bytes, content_type: str) -> str:
        raise NotImplementedError

    def upload_original(self, photo_bytes: bytes, label: str, filename: Optional[str] = None) -> str:
        """Store the uploaded photo under original/; same name overwrites. Returns its URL."""
        if not photo_bytes:
            raise StorageError("Failed to upload image: no image data")
        name = storage_object_name(ORIGINAL_FOLDER, label, file_extension(filename), self._now_ms())
        content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        return self._put_object(name, photo_bytes, content_type)

    def upload_rendered(self, png_bytes: bytes, label: str) -> str:
        """Store the rendered card under condolence/; same name overwrites. Returns its URL."""
        if not png_bytes:
            raise StorageError("Failed to upload condolence image: no image data")
        name = storage_object_name(CONDOLENCE_FOLDER, label, "png", self._now_ms())
        return self._put_object(name, png_bytes, "image/png")

    def insert_record(self, form: FormInput, original_url: str, rendered_url: str) -> StoredRecord:
        raise NotImplementedError

    def list_public_records(self) -> List[StoredRecord]:
        raise NotImplementedError

    def search(self, term: str) -> List[StoredRecord]:
        raise NotImplementedError

    def delete_objects(self, urls: Sequence[str]) -> None:
        raise NotImplementedError

    def check_connection(self) -> ConnectionReport:
        raise NotImplementedError

    @staticmethod
    def _record_row(form: FormInput, original_url: str, rendered_url: str) -> Dict[str, Any]:
        if not (form.full_name or "").strip():
            raise DatabaseError("Failed to save record: full_name is required")
        return {
            **form.to_row(),
            "original_photo_url": original_url,
            "condolence_image_url": rendered_url,
            "is_public": True,
        }


def _error_message(resp) -> str:
    """Best-effort backend message from an error response."""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("message", "error_description", "error", "msg"):
            if data.get(key):
                return str(data[key])
    snippet = (resp.text or "")[:500]
    return snippet or f"HTTP {resp.status_code}"


def _ilike_value(term: str) -> str:
    """Quoted PostgREST ilike pattern for a literal substring."""
    literal = term.replace("*", "")
    for ch in ("\\", "%", "_"):
        literal = literal.replace(ch, "\\" + ch)
    literal = literal.replace("\\", "\\\\").replace('"', '\\"')
    return f'"*{literal}*"'


class SupabaseRecordStore(RecordStore):
    """
    Supabase-backed store:
      objects -> Storage bucket (public URLs)
      rows    -> PostgREST table
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        *,
        bucket: str = STORAGE_BUCKET,
        table: str = RECORDS_TABLE,
        session: Any = None,
        timeout_s: int = 30,
        max_attempts: int = 2,
        clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__(clock)
        url = (url or "").strip().rstrip("/")
        anon_key = (anon_key or "").strip()
        if not url or not anon_key:
            raise MissingConfigError("Supabase requires url and anon_key (SUPABASE_URL, SUPABASE_ANON_KEY).")
        self.url = url
        self.anon_key = anon_key
        self.bucket = bucket
        self.table = table
        self.timeout_s = timeout_s
        self.max_attempts = max_attempts
        self._session = session

    def _http(self):
        if self._session is None:
            import requests

            self._session = requests.Session()
        return self._session

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
            "Accept": "application/json",
            "User-Agent": "condolence-card/1.0",
            **(extra or {}),
        }

    def _request(
        self,
        method: str,
        path: str,
        *,
        error_cls: type,
        prefix: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        data: Optional[bytes] = None,
        json_body: Any = None,
    ):
        import requests

        endpoint = f"{self.url}{path}"
        attempts = max(1, int(self.max_attempts))
        last_exc: Optional[Exception] = None
        resp = None
        for attempt in range(attempts):
            try:
                resp = self._http().request(
                    method,
                    endpoint,
                    params=params,
                    headers=self._headers(headers),
                    data=data,
                    json=json_body,
                    timeout=(10, max(10, int(self.timeout_s))),
                )
            except requests.RequestException as e:
                last_exc = e
                resp = None
                _log(f"{method} {path} failed (attempt {attempt + 1}/{attempts}): {e}")
                if attempt + 1 < attempts:
                    time.sleep(min(6.0, 0.6 * (2**attempt) + random.random() * 0.25))
                continue
            # Retry transient errors with backoff
            if resp.status_code in RETRY_STATUSES and attempt + 1 < attempts:
                _log(f"{method} {path} returned {resp.status_code}, retrying")
                time.sleep(min(6.0, 0.6 * (2**attempt) + random.random() * 0.25))
                continue
            break

        if resp is None:
            raise ConnectivityError(f"{prefix}: could not reach {self.url} ({last_exc})") from last_exc
        if resp.status_code in GATEWAY_STATUSES:
            _log(f"{method} {path} -> {resp.status_code} after {attempts} attempt(s)")
            raise ConnectivityError(
                f"{prefix}: {self.url} unavailable (HTTP {resp.status_code})", status_code=resp.status_code
            )
        if resp.status_code >= 400:
            message = _error_message(resp)
            _log(f"{method} {path} -> {resp.status_code}: {message}")
            raise error_cls(f"{prefix}: {message}", status_code=resp.status_code)
        return resp

    def _json(self, resp, prefix: str) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise DatabaseError(f"{prefix}: response was not valid JSON", status_code=resp.status_code) from e

    def _object_path(self, name: str) -> str:
        return f"{self.bucket}/{quote(name)}"

    def public_url(self, name: str) -> str:
        return f"{self.url}/storage/v1/object/public/{self._object_path(name)}"

    def _put_object(self, name: str, data: bytes, content_type: str) -> str:
        _log(f"Uploading to bucket {self.bucket}: {name}")
        self._request(
            "POST",
            f"/storage/v1/object/{self._object_path(name)}",
            error_cls=StorageError,
            prefix="Storage error",
            headers={
                "Content-Type": content_type,
                "cache-control": f"max-age={STORAGE_CACHE_CONTROL}",
                "x-upsert": "true",
            },
            data=data,
        )
        url = self.public_url(name)
        _log(f"Uploaded: {url}")
        return url

    def delete_objects(self, urls: Sequence[str]) -> None:
        prefix = f"{self.url}/storage/v1/object/public/{self.bucket}/"
        names = [unquote(u[len(prefix):]) for u in urls if u and u.startswith(prefix)]
        if not names:
            return
        _log(f"Deleting {len(names)} object(s) from {self.bucket}")
        self._request(
            "DELETE",
            f"/storage/v1/object/{self.bucket}",
            error_cls=StorageError,
            prefix="Storage error",
            json_body={"prefixes": names},
        )

    def insert_record(self, form: FormInput, original_url: str, rendered_url: str) -> StoredRecord:
        row = self._record_row(form, original_url, rendered_url)
        resp = self._request(
            "POST",
            f"/rest/v1/{self.table}",
            error_cls=DatabaseError,
            prefix="Failed to save record",
            headers={"Content-Type": "application/json", "Prefer": "return=representation"},
            json_body=[row],
        )
        data = self._json(resp, "Failed to save record")
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            raise DatabaseError("Failed to save record: insert returned no row", status_code=resp.status_code)
        try:
            record = StoredRecord.from_row(data)
        except ValueError as e:
            raise DatabaseError(f"Failed to save record: {e}") from e
        _log(f"Death record saved to database: {record.id}")
        return record

    def _select(self, extra_params: Optional[Dict[str, str]], prefix: str) -> List[StoredRecord]:
        params = {"select": "*", "is_public": "eq.true", "order": "created_at.desc"}
        params.update(extra_params or {})
        resp = self._request("GET", f"/rest/v1/{self.table}", error_cls=DatabaseError, prefix=prefix, params=params)
        data = self._json(resp, prefix)
        if not isinstance(data, list):
            raise DatabaseError(f"{prefix}: unexpected response type {type(data).__name__}")
        try:
            return [StoredRecord.from_row(r) for r in data]
        except (TypeError, ValueError) as e:
            raise DatabaseError(f"{prefix}: {e}") from e

    def list_public_records(self) -> List[StoredRecord]:
        records = self._select(None, "Failed to fetch records")
        _log(f"Loaded {len(records)} records from database")
        return records

    def search(self, term: str) -> List[StoredRecord]:
        term = (term or "").strip()
        if not term.replace("*", ""):
            return self.list_public_records()
        pattern = _ilike_value(term)
        clause = ",".join(f"{col}.ilike.{pattern}" for col in SEARCH_COLUMNS)
        return self._select({"or": f"({clause})"}, "Failed to search records")

    def check_connection(self) -> ConnectionReport:
        report = ConnectionReport()
        try:
            resp = self._request(
                "GET",
                f"/rest/v1/{self.table}",
                error_cls=DatabaseError,
                prefix="Connection failed",
                params={"select": "*", "limit": "5"},
            )
            report.add("Database connection", "success", "Database connected successfully")
            rows = self._json(resp, "Read failed")
            report.add("Read data", "success", f"Found {len(rows) if isinstance(rows, list) else 0} records")
        except PersistenceError as e:
            _log(f"connection test failed: {e}")
            report.add("Database connection", "failed", e.message)
            return report

        try:
            resp = self._request("GET", "/storage/v1/bucket", error_cls=StorageError, prefix="Storage failed")
            buckets = self._json(resp, "Storage failed")
            names = {b.get("name") or b.get("id") for b in buckets if isinstance(b, dict)} if isinstance(buckets, list) else set()
            if self.bucket in names:
                report.add("Storage access", "success", "Storage bucket accessible")
            else:
                report.add("Storage access", "warning", "Bucket not found, but storage is accessible")
        except PersistenceError as e:
            _log(f"storage test failed: {e}")
            report.add("Storage access", "failed", e.message)
        return report


class LocalRecordStore(RecordStore):
    """
    Directory-backed store: objects under root/original and root/condolence
    (file:// URLs), rows in root/records.json.
    """

    def __init__(self, root_dir: str, clock: Optional[Callable[[], float]] = None):
        super().__init__(clock)
        self.root = Path(root_dir).expanduser().resolve()
        self.records_path = self.root / "records.json"

    def _inside_root(self, path: Path) -> Optional[Path]:
        resolved = path.resolve()
        try:
            resolved.relative_to(self.root)
        except ValueError:
            return None
        return resolved

    def _put_object(self, name: str, data: bytes, content_type: str) -> str:
        path = self._inside_root(self.root / name)
        if path is None:
            raise StorageError(f"Storage error: object name {name!r} points outside {self.root}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            _log(f"write failed for {path}: {e}")
            raise StorageError(f"Storage error: {e}") from e
        _log(f"Stored {name} ({len(data)} bytes)")
        return path.as_uri()

    def _path_for_url(self, url: str) -> Optional[Path]:
        parsed = urlparse(url or "")
        if parsed.scheme != "file":
            return None
        return self._inside_root(Path(unquote(parsed.path)))

    def delete_objects(self, urls: Sequence[str]) -> None:
        for url in urls:
            path = self._path_for_url(url)
            if path is None:
                continue
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageError(f"Storage error: {e}") from e

    def _load_rows(self) -> List[Dict[str, Any]]:
        if not self.records_path.exists():
            return []
        try:
            rows = json.loads(self.records_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise DatabaseError(f"Failed to fetch records: {e}") from e
        if not isinstance(rows, list):
            raise DatabaseError(f"Failed to fetch records: {self.records_path} does not hold a list")
        return rows

    def _save_rows(self, rows: List[Dict[str, Any]]) -> None:
        tmp = self.records_path.with_suffix(".json.tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(rows, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp, self.records_path)
        except OSError as e:
            raise DatabaseError(f"Failed to save record: {e}") from e

    def insert_record(self, form: FormInput, original_url: str, rendered_url: str) -> StoredRecord:
        now = datetime.fromtimestamp(self.clock(), tz=timezone.utc).isoformat()
        row = {
            "id": str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
            **self._record_row(form, original_url, rendered_url),
        }
        rows = self._load_rows()
        rows.append(row)
        self._save_rows(rows)
        _log(f"Death record saved locally: {row['id']}")
        return StoredRecord.from_row(row)

    def _query(self, term: Optional[str]) -> List[StoredRecord]:
        import pandas as pd

        rows = self._load_rows()
        if not rows:
            return []
        df = pd.DataFrame(rows)
        for col in ("is_public", "created_at") + SEARCH_COLUMNS:
            if col not in df.columns:
                df[col] = None
        df["_pos"] = range(len(df))
        df = df[df["is_public"].fillna(True).astype(bool)]
        term = (term or "").strip()
        if term:
            mask = pd.Series(False, index=df.index)
            for col in SEARCH_COLUMNS:
                mask |= df[col].astype("string").str.contains(term, case=False, regex=False, na=False)
            df = df[mask]
        df = df.sort_values(["created_at", "_pos"], ascending=False)
        # Map back to the raw rows so pandas dtypes (NaN ages etc.) never leak out
        return [StoredRecord.from_row(rows[i]) for i in df["_pos"].tolist()]

    def list_public_records(self) -> List[StoredRecord]:
        records = self._query(None)
        _log(f"Loaded {len(records)} records from {self.records_path}")
        return records

    def search(self, term: str) -> List[StoredRecord]:
        return self._query(term)

    def check_connection(self) -> ConnectionReport:
        report = ConnectionReport()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            report.add("Database connection", "success", f"Using local store at {self.root}")
        except OSError as e:
            report.add("Database connection", "failed", str(e))
            return report
        try:
            report.add("Read data", "success", f"Found {len(self._load_rows())} records")
        except DatabaseError as e:
            report.add("Read data", "failed", e.message)
        writable = os.access(self.root, os.W_OK)
        report.add("Storage access", "success" if writable else "failed", "Directory writable" if writable else "Directory not writable")
        return report


def make_record_store(settings: StoreSettings, **kwargs: Any) -> RecordStore:
    """Pick the store implementation named by settings.backend ('supabase' or 'local')."""
    if settings.backend == "supabase":
        missing = settings.missing()
        if missing:
            raise MissingConfigError(f"Missing Supabase environment variables ({', '.join(missing)}).")
        return SupabaseRecordStore(
            settings.supabase_url,
            settings.supabase_anon_key,
            bucket=settings.bucket,
            table=settings.table,
            **kwargs,
        )
    if settings.backend == "local":
        return LocalRecordStore(settings.local_dir, **kwargs)
    raise ValueError(f"Unknown record store backend: {settings.backend!r} (expected 'supabase' or 'local')")


def _rollback_uploads(store: RecordStore, urls: List[str]) -> None:
    try:
        store.delete_objects(urls)
        _log(f"Removed {len(urls)} uploaded object(s) after failure")
    except PersistenceError as e:
        _log(f"Cleanup after failed save also failed, orphaned objects: {urls} ({e})")


def create_complete_record(
    store: RecordStore,
    form: FormInput,
    photo_bytes: bytes,
    png_bytes: bytes,
    photo_filename: Optional[str] = None,
) -> StoredRecord:
    """
    Upload the original photo, upload the rendered card, then insert the row.
    On failure the uploads are removed and the PersistenceError propagates.
    """
    if not (form.full_name or "").strip():
        raise DatabaseError("Failed to save record: full_name is required")

    _log("Starting complete record creation...")
    uploaded: List[str] = []
    try:
        original_url = store.upload_original(photo_bytes, form.full_name, filename=photo_filename)
        uploaded.append(original_url)
        rendered_url = store.upload_rendered(png_bytes, form.full_name)
        uploaded.append(rendered_url)
        record = store.insert_record(form, original_url, rendered_url)
    except PersistenceError as e:
        _log(f"Failed to create complete record: {e}")
        if uploaded:
            _rollback_uploads(store, uploaded)
        raise
    _log("Complete record creation successful")
    return record


class GalleryResult(NamedTuple):
    records: List[StoredRecord]
    from_cache: bool


class GalleryCache:
    """Last successfully loaded gallery, kept as JSON for offline display."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    def load(self) -> List[StoredRecord]:
        if not self.path.exists():
            return []
        try:
            rows = json.loads(self.path.read_text(encoding="utf-8"))
            return [StoredRecord.from_row(r) for r in rows]
        except (OSError, ValueError, TypeError) as e:
            _log(f"Error parsing gallery cache {self.path}: {e}")
            return []

    def save(self, records: Sequence[StoredRecord]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps([r.to_row() for r in records], ensure_ascii=False, default=str),
                encoding="utf-8",
            )
        except OSError as e:
            _log(f"Could not write gallery cache {self.path}: {e}")

    def prepend(self, record: StoredRecord) -> None:
        records = [r for r in self.load() if r.id != record.id]
        self.save([record] + records)


def load_gallery(store: RecordStore, cache: Optional[GalleryCache] = None, term: str = "") -> GalleryResult:
    """
    Public records (optionally filtered by `term`) from the store.
    If the store is unreachable and a cache exists, the cached list is returned.
    """
    term = (term or "").strip()
    try:
        records = store.search(term) if term else store.list_public_records()
    except ConnectivityError as e:
        if cache is None:
            raise
        _log(f"Store unreachable, using cached gallery: {e}")
        return GalleryResult([r for r in cache.load() if record_matches(r, term)], True)
    if cache is not None and not term:
        cache.save(records)
    return GalleryResult(records, False)


def records_dataframe(records: Sequence[StoredRecord]) -> Any:
    """Tabular view of records for display: Name, Born, Died, Age, Place, Created."""
    import pandas as pd

    columns = ["Name", "Born", "Died", "Age", "Place", "Created", "Card"]
    rows = [
        {
            "Name": r.full_name,
            "Born": r.date_of_birth or "",
            "Died": r.date_of_death or "",
            "Age": "" if r.age is None else r.age,
            "Place": r.place_of_death or "",
            "Created": r.created_at,
            "Card": r.condolence_image_url or "",
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=columns)
