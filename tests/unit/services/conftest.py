"""
Fixtures for service tests.

In-memory stores that follow the same conditional-update rules as the
SQLite stores, so services can be tested without a database.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import pytest

from catmatch.core.entities import (
    AuditLogEntry,
    CatalogEntry,
    Category,
    LineItem,
    MatchCandidate,
    MatchStatus,
    Subcategory,
    Upload,
    UploadStatus,
    can_transition,
)
from catmatch.core.exceptions import FileStorageError
from catmatch.core.interfaces import (
    IAuditLogStore,
    ICatalogStore,
    IFileStore,
    IMatchStore,
    IUploadStore,
)
from catmatch.core.services import CatalogIndex


class InMemoryCatalogStore(ICatalogStore):
    def __init__(
        self,
        entries: list[CatalogEntry] | None = None,
        categories: list[Category] | None = None,
        subcategories: list[Subcategory] | None = None,
    ):
        self.entries = {e.id: e for e in entries or []}
        self.categories = {c.id: c for c in categories or []}
        self.subcategories = {s.id: s for s in subcategories or []}

    async def get_entry(self, entry_id):
        return self.entries.get(entry_id)

    async def get_by_code(self, code):
        return next((e for e in self.entries.values() if e.code == code), None)

    async def search_by_name(self, query, category_id=None, limit=50):
        needle = query.casefold()
        found = [
            e
            for e in self.entries.values()
            if e.active
            and needle in e.name.casefold()
            and (category_id is None or e.category_id == category_id)
        ]
        def bucket(name: str) -> int:
            name = name.casefold()
            if name == needle:
                return 0
            if name.startswith(needle):
                return 1
            return 2 if f" {needle}" in name else 3

        return sorted(found, key=lambda e: (bucket(e.name), e.name, e.id))[:limit]

    async def list_active_entries(self):
        return sorted((e for e in self.entries.values() if e.active), key=lambda e: (e.name, e.id))

    async def list_categories(self):
        return sorted(self.categories.values(), key=lambda c: (c.name, c.id))

    async def list_subcategories(self, category_id=None):
        subs = [
            s
            for s in self.subcategories.values()
            if category_id is None or s.category_id == category_id
        ]
        return sorted(subs, key=lambda s: (s.name, s.id))

    async def save_category(self, category):
        self.categories[category.id] = category
        return category

    async def save_subcategory(self, subcategory):
        self.subcategories[subcategory.id] = subcategory
        return subcategory

    async def save_entry(self, entry):
        self.entries[entry.id] = entry
        return entry


class InMemoryUploadStore(IUploadStore):
    def __init__(self):
        self.uploads: dict[str, Upload] = {}
        self.items: dict[str, list[LineItem]] = {}

    def put(self, upload: Upload) -> Upload:
        self.uploads[upload.id] = upload
        return upload

    def _update(self, upload_id: str, **fields) -> Upload:
        fields.setdefault("updated_at", datetime.now(UTC))
        upload = self.uploads[upload_id].model_copy(update=fields)
        self.uploads[upload_id] = upload
        return upload

    async def create_upload(self, upload):
        return self.put(upload)

    async def get_upload(self, upload_id):
        return self.uploads.get(upload_id)

    async def list_uploads_by_owner(self, owner_id):
        found = [u for u in self.uploads.values() if u.owner_id == owner_id]
        return sorted(found, key=lambda u: (u.created_at, u.id), reverse=True)

    async def list_uploads_by_status(self, status):
        found = [u for u in self.uploads.values() if u.status == status]
        return sorted(found, key=lambda u: (u.created_at, u.id))

    async def begin_processing(self, upload_id, items):
        upload = self.uploads.get(upload_id)
        if upload is None or upload.status != UploadStatus.CREATED:
            return None
        self.items[upload_id] = [
            item.model_copy(update={"id": item.id or f"{upload_id}-li-{item.row_number}"})
            for item in items
        ]
        return self._update(
            upload_id,
            status=UploadStatus.PROCESSING,
            total_items=len(items),
            processed_items=0,
            error_message=None,
        )

    async def get_line_items(self, upload_id):
        return sorted(self.items.get(upload_id, []), key=lambda i: i.row_number)

    async def increment_processed(self, upload_id):
        upload = self.uploads.get(upload_id)
        if upload is None:
            return None
        if upload.status == UploadStatus.PROCESSING and (
            upload.total_items is None or upload.processed_items < upload.total_items
        ):
            upload = self._update(upload_id, processed_items=upload.processed_items + 1)
        return upload

    async def sync_processed_items(self, upload_id, count):
        upload = self.uploads.get(upload_id)
        if upload is None:
            return None
        if upload.status == UploadStatus.PROCESSING:
            ceiling = upload.total_items if upload.total_items is not None else count
            upload = self._update(
                upload_id, processed_items=min(max(upload.processed_items, count), ceiling)
            )
        return upload

    async def transition_status(self, upload_id, from_statuses, to_status, error_message=None):
        upload = self.uploads.get(upload_id)
        sources = {s for s in from_statuses if can_transition(s, to_status)}
        if upload is None or upload.status not in sources:
            return False
        self._update(
            upload_id,
            status=to_status,
            error_message=error_message if error_message is not None else upload.error_message,
        )
        return True

    async def complete_upload(self, upload_id):
        upload = self.uploads.get(upload_id)
        if (
            upload is None
            or upload.status != UploadStatus.PROCESSING
            or upload.processed_items != (upload.total_items or 0)
        ):
            return False
        self._update(upload_id, status=UploadStatus.COMPLETED, completed_at=datetime.now(UTC))
        return True

    async def count_uploads_since(self, owner_id, since):
        return sum(
            1 for u in self.uploads.values() if u.owner_id == owner_id and u.created_at >= since
        )

    async def sum_processed_items(self, owner_id):
        return sum(u.processed_items for u in self.uploads.values() if u.owner_id == owner_id)


class InMemoryMatchStore(IMatchStore):
    def __init__(self, upload_store: InMemoryUploadStore):
        self._uploads = upload_store
        self.candidates: dict[str, MatchCandidate] = {}
        self._next_id = 0

    def put(self, candidate: MatchCandidate) -> MatchCandidate:
        if candidate.id is None:
            self._next_id += 1
            candidate = candidate.model_copy(update={"id": f"m-{self._next_id}"})
        self.candidates[candidate.id] = candidate
        return candidate

    async def create_candidate(self, candidate):
        for existing in self.candidates.values():
            if (
                existing.upload_id == candidate.upload_id
                and existing.row_number == candidate.row_number
            ):
                return existing
        return self.put(candidate)

    async def get_candidate(self, match_id):
        return self.candidates.get(match_id)

    async def list_candidates(self, upload_id):
        found = [c for c in self.candidates.values() if c.upload_id == upload_id]
        return sorted(found, key=lambda c: c.row_number)

    async def list_candidate_rows(self, upload_id):
        return {c.row_number for c in self.candidates.values() if c.upload_id == upload_id}

    async def update_review(self, candidate, expected_status):
        stored = self.candidates.get(candidate.id)
        if stored is None or stored.status != expected_status:
            return False
        self.candidates[candidate.id] = candidate
        return True

    async def count_by_status_for_owner(self, owner_id):
        counts: dict[MatchStatus, int] = {}
        for c in self.candidates.values():
            upload = self._uploads.uploads.get(c.upload_id)
            if upload is not None and upload.owner_id == owner_id:
                counts[c.status] = counts.get(c.status, 0) + 1
        return counts


class InMemoryAuditLogStore(IAuditLogStore):
    def __init__(self):
        self.entries: list[AuditLogEntry] = []

    async def append(self, entry):
        self.entries.append(entry)
        return entry

    async def list_entries(self, actor_id, limit=100):
        return [e for e in reversed(self.entries) if e.actor_id == actor_id][:limit]


class InMemoryFileStore(IFileStore):
    def __init__(self):
        self.files: dict[str, bytes] = {}

    async def save(self, stored_filename, content):
        self.files[stored_filename] = content

    async def read(self, stored_filename):
        try:
            return self.files[stored_filename]
        except KeyError as e:
            raise FileStorageError(stored_filename, "file is missing") from e

    async def delete(self, stored_filename):
        return self.files.pop(stored_filename, None) is not None


@dataclass
class Stores:
    """All in-memory stores of one test."""

    catalog: InMemoryCatalogStore
    uploads: InMemoryUploadStore
    matches: InMemoryMatchStore
    audit: InMemoryAuditLogStore
    files: InMemoryFileStore

    @property
    def catalog_index(self) -> CatalogIndex:
        return CatalogIndex(self.catalog)

    def add_upload(
        self,
        upload_id: str = "up-1",
        owner_id: str = "alice",
        content: bytes = b"",
        mime_type: str = "text/csv",
        **fields,
    ) -> Upload:
        stored = f"{upload_id}.csv"
        self.files.files[stored] = content
        return self.uploads.put(
            Upload(
                id=upload_id,
                owner_id=owner_id,
                original_filename="materials.csv",
                stored_filename=stored,
                file_size=len(content),
                mime_type=mime_type,
                **fields,
            )
        )


@pytest.fixture
def stores(sample_entries, sample_category, sample_subcategory) -> Stores:
    uploads = InMemoryUploadStore()
    return Stores(
        catalog=InMemoryCatalogStore(sample_entries, [sample_category], [sample_subcategory]),
        uploads=uploads,
        matches=InMemoryMatchStore(uploads),
        audit=InMemoryAuditLogStore(),
        files=InMemoryFileStore(),
    )
