"""Collaborators the core talks to: record repositories and blob stores."""
import json
import logging
import os
import re
from typing import Any, Dict, Optional, Tuple

import requests

from quotedoc.errors import BlobStoreError, QuoteDataError

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonRepository:
    """One JSON document per record: ``<root>/<collection>/<id>.json``.

    Reads go through a small cache keyed by file mtime, so edits on disk are
    picked up without a restart.
    """

    def __init__(self, root: str, collection: str):
        self.root = root
        self.collection = collection
        self._cache: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    def _path(self, record_id: str) -> str:
        return os.path.join(self.root, self.collection, f"{record_id}.json")

    def get(self, record_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not record_id or not _SAFE_ID.match(record_id) or record_id.startswith("."):
            return None
        path = self._path(record_id)
        if not os.path.isfile(path):
            return None
        mtime = os.path.getmtime(path)
        cached = self._cache.get(record_id)
        if cached and cached[0] == mtime:
            return cached[1]
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as e:
                raise QuoteDataError(f"{self.collection} record '{record_id}' is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise QuoteDataError(f"{self.collection} record '{record_id}' is not a JSON object")
        data.setdefault("id", record_id)
        self._cache[record_id] = (mtime, data)
        return data


class LocalBlobStore:
    """Writes artifacts under a directory served at ``public_base_url``. Overwrites on upsert."""

    def __init__(self, directory: str, public_base_url: str):
        self.directory = directory
        self.public_base_url = public_base_url.rstrip("/")

    def upload(self, data: bytes, filename: str, content_type: str) -> str:
        path = os.path.join(self.directory, filename)
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise BlobStoreError(f"Could not write {filename}: {e}")
        logger.info("Stored %s (%s, %d bytes)", filename, content_type, len(data))
        return f"{self.public_base_url}/{filename}"


class StorageApiBlobStore:
    """Object storage over its REST API (bucket + bearer key), upsert enabled."""

    def __init__(self, base_url: str, api_key: str, bucket: str = "quotations",
                 timeout: float = 30.0, session: Optional[requests.Session] = None):
        if not base_url:
            raise ValueError("StorageApiBlobStore needs a base_url")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self.timeout = timeout
        self.session = session or requests.Session()

    def public_url(self, filename: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{filename}"

    def upload(self, data: bytes, filename: str, content_type: str) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "apikey": self.api_key,
            "Content-Type": content_type,
            "x-upsert": "true",
        }
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{filename}"
        try:
            r = self.session.post(url, data=data, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise BlobStoreError(f"Upload of {filename} failed: {e}")
        if not 200 <= r.status_code < 300:
            try:
                body = r.json()
            except ValueError:
                body = {"raw": r.text}
            logger.warning("Storage upload status %s body %s", r.status_code, body)
            raise BlobStoreError(f"Upload of {filename} failed with HTTP {r.status_code}")
        return self.public_url(filename)
