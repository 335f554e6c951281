"""Record stores: local JSON files, the remote Data API, and the fallback that combines them."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

import requests

from .schema import PENDING_KEY, REMOTE_COLLECTIONS

logger = logging.getLogger(__name__)


class RemoteStoreError(Exception):
    """Raised when the remote data API cannot be reached or rejects a call."""
    pass


class StoreWriteError(Exception):
    """Raised when a write reached neither the local copy nor the remote store."""
    pass


@dataclass
class Mutation:
    """A single-record change, mirrored to the remote store after a local write."""
    verb: str  # insertOne, updateOne, deleteOne
    record_id: str
    document: dict | None = None


@dataclass
class WriteResult:
    local_saved: bool = True
    remote_synced: bool = False
    warning: str | None = None


class RecordStore:
    """Base store mapping string keys to JSON values.

    Collections are lists of records; ``save`` always replaces the whole list.
    """

    def read(self, key: str):
        raise NotImplementedError

    def write(self, key: str, value) -> None:
        raise NotImplementedError

    def load(self, key: str) -> list[dict]:
        data = self.read(key)
        return list(data) if isinstance(data, list) else []

    def save(self, key: str, records: list[dict], mutation: Mutation | None = None) -> WriteResult:
        self.write(key, records)
        return WriteResult()


class MemoryStore(RecordStore):
    """In-process store. Values are copied through JSON so callers never share state."""

    def __init__(self, initial: dict | None = None):
        self._data = {}
        for key, value in (initial or {}).items():
            self.write(key, value)

    def read(self, key: str):
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def write(self, key: str, value) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = json.dumps(value)


class LocalStore(RecordStore):
    """One JSON file per key inside ``directory``."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str):
        path = self._path(key)
        if not path.exists():
            return None
        text = path.read_text(encoding="utf-8")
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            # Keep the damaged file for inspection; the next write starts a fresh one
            damaged = path.with_name(f"{path.name}.corrupt")
            os.replace(path, damaged)
            logger.error("Local copy of %s is unreadable (%s), moved to %s", key, e, damaged.name)
            return None

    def write(self, key: str, value) -> None:
        path = self._path(key)
        if value is None:
            path.unlink(missing_ok=True)
            return

        self.directory.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file then rename, so readers never see half a file
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class RemoteStore:
    """Client for a MongoDB-style Data API (``POST {url}/action/{verb}``)."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        data_source: str,
        database: str,
        timeout: float = 10.0,
        collections: dict[str, str] | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.data_source = data_source
        self.database = database
        self.timeout = timeout
        self.collections = collections or REMOTE_COLLECTIONS

    def collection_for(self, key: str) -> str:
        return self.collections.get(key, key)

    def find(self, key: str, filter: dict | None = None) -> list[dict]:
        """Return all documents of the collection behind ``key`` matching ``filter``."""
        response = self._post("find", key, filter=filter or {})
        try:
            data = response.json()
        except ValueError:
            raise RemoteStoreError("Data API returned a non-JSON response")

        if not isinstance(data, dict) or not isinstance(data.get("documents"), list):
            raise RemoteStoreError("Unexpected data API response format")

        return [
            {field: value for field, value in doc.items() if field != "_id"}
            for doc in data["documents"]
        ]

    def insert_one(self, key: str, document: dict) -> None:
        self._post("insertOne", key, document=document)

    def update_one(self, key: str, record_id: str, document: dict) -> None:
        self._post(
            "updateOne", key,
            filter={"id": record_id},
            update={"$set": document},
            upsert=True,
        )

    def delete_one(self, key: str, record_id: str) -> None:
        self._post("deleteOne", key, filter={"id": record_id})

    def apply(self, key: str, mutation: Mutation) -> None:
        """Send a single-record mutation to the remote collection."""
        if mutation.verb == "insertOne":
            self.insert_one(key, mutation.document or {})
        elif mutation.verb == "updateOne":
            self.update_one(key, mutation.record_id, mutation.document or {})
        elif mutation.verb == "deleteOne":
            self.delete_one(key, mutation.record_id)
        else:
            raise ValueError(f"Unsupported mutation verb: {mutation.verb}")

    def _post(self, verb: str, key: str, **payload) -> requests.Response:
        collection = self.collection_for(key)
        body = {
            "dataSource": self.data_source,
            "database": self.database,
            "collection": collection,
            **payload,
        }
        headers = {"Content-Type": "application/json", "api-key": self.api_key}

        try:
            response = requests.post(
                f"{self.api_url}/action/{verb}",
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise RemoteStoreError(f"{verb} on {collection} timed out")
        except requests.exceptions.RequestException as e:
            raise RemoteStoreError(f"Failed to connect to data API: {e}")

        if not 200 <= response.status_code < 300:
            raise RemoteStoreError(f"Data API error on {verb}: {response.status_code}")

        return response


class FallbackStore(RecordStore):
    """Remote-first store that keeps a local copy of every collection.

    Reads try the remote store and mirror the result locally, falling back to the
    local copy on failure. Writes go to the local copy first and are then
    mirrored to the remote store; a remote failure becomes a warning on the
    returned ``WriteResult`` and the mutation is queued locally. Queued
    mutations are replayed, in order, before the next remote read or write of
    the same collection, so the remote never overwrites a local-only write.
    """

    def __init__(self, local: RecordStore, remote: RemoteStore | None = None):
        self.local = local
        self.remote = remote

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None

    # Single-object values (the session pointer) never leave this terminal
    def read(self, key: str):
        return self.local.read(key)

    def write(self, key: str, value) -> None:
        self.local.write(key, value)

    def pending(self, key: str | None = None) -> list[dict]:
        """Queued remote mutations, optionally only those for ``key``."""
        data = self.local.read(PENDING_KEY)
        entries = data if isinstance(data, list) else []
        return [e for e in entries if key is None or e.get("key") == key]

    def load(self, key: str) -> list[dict]:
        if self.remote is not None:
            try:
                self._replay_pending(key)
                documents = self.remote.find(key)
            except RemoteStoreError as e:
                logger.warning("Remote read of %s failed, using local copy: %s", key, e)
            else:
                self._mirror(key, documents)
                return documents

        return self.local.load(key)

    def save(self, key: str, records: list[dict], mutation: Mutation | None = None) -> WriteResult:
        local_error = None
        try:
            self.local.save(key, records)
        except OSError as e:
            local_error = e
            logger.error("Local write of %s failed: %s", key, e)

        if self.remote is None or mutation is None:
            if local_error is not None:
                raise StoreWriteError(f"Could not save {key}: {local_error}") from local_error
            return WriteResult()

        try:
            self._replay_pending(key)
            self.remote.apply(key, mutation)
        except RemoteStoreError as e:
            logger.warning("Remote %s on %s failed: %s", mutation.verb, key, e)
            if local_error is not None:
                raise StoreWriteError(
                    f"Could not save {key} locally ({local_error}) or remotely ({e})"
                ) from e
            self._queue(key, mutation)
            return WriteResult(
                remote_synced=False,
                warning=(
                    "Saved on this terminal only, it will be sent to the shared "
                    f"database once it is reachable ({e})"
                ),
            )

        if local_error is not None:
            return WriteResult(
                local_saved=False,
                remote_synced=True,
                warning=f"Saved to the shared database but not on this terminal ({local_error})",
            )
        return WriteResult(remote_synced=True)

    def _queue(self, key: str, mutation: Mutation) -> None:
        entries = self.pending()
        entries.append({
            "key": key,
            "verb": mutation.verb,
            "recordId": mutation.record_id,
            "document": mutation.document,
        })
        self._set_pending(entries)

    def _replay_pending(self, key: str) -> None:
        """Send queued mutations for ``key`` to the remote, oldest first.

        Raises:
            RemoteStoreError: at the first mutation the remote rejects; it and
                everything after it stay queued.
        """
        entries = self.pending()
        queued = [e for e in entries if e.get("key") == key]
        if not queued:
            return

        remaining = list(entries)
        try:
            for entry in queued:
                self.remote.apply(key, Mutation(entry["verb"], entry["recordId"], entry.get("document")))
                remaining.remove(entry)
        finally:
            self._set_pending(remaining)
        logger.info("Replayed %d queued write(s) for %s", len(queued), key)

    def _set_pending(self, entries: list[dict]) -> None:
        try:
            self.local.write(PENDING_KEY, entries or None)
        except OSError as e:
            logger.error("Could not update the queue of unsynced writes: %s", e)

    def _mirror(self, key: str, documents: list[dict]) -> None:
        try:
            self.local.save(key, documents)
        except OSError as e:
            logger.warning("Could not refresh local copy of %s: %s", key, e)
