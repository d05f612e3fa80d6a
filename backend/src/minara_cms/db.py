"""Async PostgreSQL operations using asyncpg.

Direct parameterized SQL, one statement per operation. Statements are built
by pure functions from the resource configuration so they can be tested
without a database; ``ContentStore`` executes them against a pool.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import asyncpg

from minara_cms.config import settings
from minara_cms.errors import StorageError, ValidationError
from minara_cms.models import Blob, CountSummary, Gallery, GalleryImage, Upload
from minara_cms.resource_config import ResourceConfig, to_column, to_field
from minara_cms.utils.logging import get_logger

log = get_logger()


# --- Statement builders ---

def build_list_query(
    resource: ResourceConfig,
    filters: dict[str, Any] | None = None,
    include_deleted: bool = False,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[str, list[Any]]:
    columns = resource.select_columns()
    where: list[str] = []
    args: list[Any] = []

    if resource.soft_delete:
        if include_deleted:
            columns.append("is_deleted")
        else:
            where.append("is_deleted = false")

    for field, value in (filters or {}).items():
        args.append(value)
        where.append(f"{to_column(field)} = ${len(args)}")

    sql = f"SELECT {', '.join(columns)} FROM {resource.table}"
    if where:
        sql += f" WHERE {' AND '.join(where)}"
    sql += " ORDER BY created_on DESC, id DESC"
    if limit is not None:
        args.append(limit)
        sql += f" LIMIT ${len(args)}"
        args.append(offset)
        sql += f" OFFSET ${len(args)}"
    return sql, args


def build_get_query(resource: ResourceConfig, record_id: int) -> tuple[str, list[Any]]:
    sql = f"SELECT {', '.join(resource.select_columns())} FROM {resource.table} WHERE id = $1"
    if resource.soft_delete:
        sql += " AND is_deleted = false"
    return sql + " LIMIT 1", [record_id]


def _blob_assignments(
    resource: ResourceConfig, uploads: dict[str, Upload],
) -> list[tuple[str, Any]]:
    pairs: list[tuple[str, Any]] = []
    for field, upload in uploads.items():
        blob = resource.blobs[field]
        pairs.append((to_column(field), upload.data))
        if blob.name_field:
            pairs.append((to_column(blob.name_field), upload.filename))
    return pairs


def build_insert(
    resource: ResourceConfig,
    values: dict[str, Any],
    uploads: dict[str, Upload] | None = None,
) -> tuple[str, list[Any]]:
    pairs = [(to_column(f), v) for f, v in values.items()]
    pairs.extend(_blob_assignments(resource, uploads or {}))
    columns = [c for c, _ in pairs]
    placeholders = [f"${i}" for i in range(1, len(pairs) + 1)]
    columns.extend(["created_on", "modified_on"])
    placeholders.extend(["NOW()", "NOW()"])
    sql = (
        f"INSERT INTO {resource.table} ({', '.join(columns)}) "
        f"VALUES ({', '.join(placeholders)}) RETURNING id"
    )
    return sql, [v for _, v in pairs]


def build_update(
    resource: ResourceConfig,
    record_id: int,
    values: dict[str, Any],
    uploads: dict[str, Upload] | None = None,
    clear_blobs: list[str] | None = None,
) -> tuple[str, list[Any]]:
    """Partial UPDATE touching only the supplied fields.

    Raises ValidationError when nothing would change.
    """
    pairs = [(to_column(f), v) for f, v in values.items()]
    pairs.extend(_blob_assignments(resource, uploads or {}))
    if not pairs and not clear_blobs:
        raise ValidationError("No fields provided for update.")

    assignments = [f"{column} = ${i}" for i, (column, _) in enumerate(pairs, start=1)]
    for field in clear_blobs or []:
        if uploads and field in uploads:
            continue
        assignments.append(f"{to_column(field)} = NULL")
    assignments.append("modified_on = NOW()")

    args = [v for _, v in pairs]
    args.append(record_id)
    sql = f"UPDATE {resource.table} SET {', '.join(assignments)} WHERE id = ${len(args)}"
    if resource.soft_delete:
        sql += " AND is_deleted = false"
    return sql, args


def build_delete(resource: ResourceConfig, record_id: int) -> tuple[str, list[Any]]:
    """Soft delete by flag; resources without the flag are removed."""
    if resource.soft_delete:
        return (
            f"UPDATE {resource.table} SET is_deleted = true, modified_on = NOW() "
            "WHERE id = $1 AND is_deleted = false",
            [record_id],
        )
    return f"DELETE FROM {resource.table} WHERE id = $1", [record_id]


def build_blob_query(resource: ResourceConfig, record_id: int, field: str) -> tuple[str, list[Any]]:
    blob = resource.blobs[field]
    columns = [to_column(field)]
    if blob.name_field:
        columns.append(to_column(blob.name_field))
    sql = f"SELECT {', '.join(columns)} FROM {resource.table} WHERE id = $1"
    if resource.soft_delete:
        sql += " AND is_deleted = false"
    return sql + " LIMIT 1", [record_id]


def affected_rows(status: str) -> int:
    """Row count from an asyncpg command status such as 'UPDATE 1'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


def row_to_fields(row: Any) -> dict[str, Any]:
    return {to_field(k): v for k, v in dict(row).items()}


# --- Store ---

class ContentStore:
    """Storage handle owning the asyncpg pool.

    Created once at startup with ``connect()`` and closed at shutdown.
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @classmethod
    async def connect(
        cls,
        database_url: str | None = None,
        min_size: int = 2,
        max_size: int = 10,
    ) -> ContentStore:
        url = database_url or settings.database_url
        pool = await asyncpg.create_pool(url, min_size=min_size, max_size=max_size)
        return cls(pool)

    async def close(self) -> None:
        await self.pool.close()

    async def ping(self) -> bool:
        return await self.pool.fetchval("SELECT 1") == 1

    async def execute_script(self, sql: str) -> None:
        await self.pool.execute(sql)

    # --- Generic resources ---

    async def list_records(
        self,
        resource: ResourceConfig,
        filters: dict[str, Any] | None = None,
        include_deleted: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        sql, args = build_list_query(resource, filters, include_deleted, limit, offset)
        rows = await self.pool.fetch(sql, *args)
        return [row_to_fields(r) for r in rows]

    async def get_record(self, resource: ResourceConfig, record_id: int) -> dict[str, Any] | None:
        sql, args = build_get_query(resource, record_id)
        row = await self.pool.fetchrow(sql, *args)
        return row_to_fields(row) if row else None

    async def insert_record(
        self,
        resource: ResourceConfig,
        values: dict[str, Any],
        uploads: dict[str, Upload] | None = None,
    ) -> int:
        sql, args = build_insert(resource, values, uploads)
        record_id = await self.pool.fetchval(sql, *args)
        if record_id is None:
            raise StorageError(f"Insert into {resource.table} returned no id")
        log.info(f"Inserted {resource.singular} #{record_id}")
        return record_id

    async def update_record(
        self,
        resource: ResourceConfig,
        record_id: int,
        values: dict[str, Any],
        uploads: dict[str, Upload] | None = None,
        clear_blobs: list[str] | None = None,
    ) -> int:
        sql, args = build_update(resource, record_id, values, uploads, clear_blobs)
        return affected_rows(await self.pool.execute(sql, *args))

    async def delete_record(self, resource: ResourceConfig, record_id: int) -> int:
        sql, args = build_delete(resource, record_id)
        return affected_rows(await self.pool.execute(sql, *args))

    async def set_published(self, resource: ResourceConfig, record_id: int, published: bool) -> int:
        return await self.update_record(resource, record_id, {"isPublished": published})

    async def update_slug(self, resource: ResourceConfig, record_id: int, slug: str) -> None:
        await self.pool.execute(
            f"UPDATE {resource.table} SET slug = $1 WHERE id = $2", slug, record_id,
        )

    async def get_blob(self, resource: ResourceConfig, record_id: int, field: str) -> Blob | None:
        sql, args = build_blob_query(resource, record_id, field)
        row = await self.pool.fetchrow(sql, *args)
        if not row or row[to_column(field)] is None:
            return None
        blob = resource.blobs[field]
        filename = row[to_column(blob.name_field)] if blob.name_field else None
        return Blob(data=bytes(row[to_column(field)]), content_type=blob.content_type, filename=filename)

    async def count_summary(self) -> CountSummary:
        row = await self.pool.fetchrow(
            """
            SELECT
                (SELECT COUNT(*) FROM writers WHERE is_deleted = false) AS writer_count,
                (SELECT COUNT(*) FROM translators) AS translator_count,
                (SELECT COUNT(*) FROM books WHERE is_deleted = false) AS book_count,
                (SELECT COUNT(*) FROM articles WHERE is_deleted = false) AS article_count,
                (SELECT COUNT(*) FROM questions WHERE is_deleted = false) AS question_count,
                (SELECT COUNT(*) FROM feedback WHERE is_deleted = false) AS feedback_count
            """
        )
        return CountSummary(**dict(row)) if row else CountSummary()

    # --- Galleries (one parent row, many image rows) ---

    async def insert_gallery(
        self,
        title: str,
        description: str | None,
        event_date: date,
        slug: str,
        images: list[Upload],
    ) -> int:
        """Insert the gallery row, then one row per image.

        Not wrapped in a transaction: a failure part-way leaves the parent
        with the images inserted so far.
        """
        gallery_id = await self.pool.fetchval(
            """
            INSERT INTO galleries (title, description, event_date, slug, created_on, modified_on)
            VALUES ($1, $2, $3, $4, NOW(), NOW())
            RETURNING id
            """,
            title, description, event_date, slug,
        )
        for image in images:
            await self._insert_gallery_image(gallery_id, image)
        log.info(f"Inserted gallery #{gallery_id} with {len(images)} images")
        return gallery_id

    async def _insert_gallery_image(self, gallery_id: int, image: Upload) -> None:
        await self.pool.execute(
            """
            INSERT INTO gallery_images (gallery_id, image, image_name, image_type, created_on)
            VALUES ($1, $2, $3, $4, NOW())
            """,
            gallery_id, image.data, image.filename, image.content_type,
        )

    async def list_galleries(self, limit: int = 10, offset: int = 0) -> list[dict[str, Any]]:
        rows = await self.pool.fetch(
            """
            SELECT g.id, g.title, g.description, g.event_date, g.slug, g.created_on,
                   (SELECT MIN(i.id) FROM gallery_images i WHERE i.gallery_id = g.id) AS cover_image_id,
                   (SELECT COUNT(*) FROM gallery_images i WHERE i.gallery_id = g.id) AS image_count
            FROM galleries g
            WHERE g.is_deleted = false
            ORDER BY g.created_on DESC, g.id DESC
            LIMIT $1 OFFSET $2
            """,
            limit, offset,
        )
        return [row_to_fields(r) for r in rows]

    async def search_galleries(self, title: str | None = None, event_date: date | None = None) -> list[dict[str, Any]]:
        where = ["is_deleted = false"]
        args: list[Any] = []
        if title:
            args.append(f"%{title}%")
            where.append(f"title ILIKE ${len(args)}")
        if event_date:
            args.append(event_date)
            where.append(f"event_date = ${len(args)}")
        rows = await self.pool.fetch(
            "SELECT id, title, description, event_date, slug, created_on FROM galleries "
            f"WHERE {' AND '.join(where)} ORDER BY created_on DESC",
            *args,
        )
        return [row_to_fields(r) for r in rows]

    async def get_gallery(self, gallery_id: int) -> Gallery | None:
        row = await self.pool.fetchrow(
            """
            SELECT id, title, description, event_date, slug, created_on
            FROM galleries WHERE id = $1 AND is_deleted = false
            """,
            gallery_id,
        )
        if not row:
            return None
        images = await self.pool.fetch(
            "SELECT id, image_name, image_type FROM gallery_images WHERE gallery_id = $1 ORDER BY id",
            gallery_id,
        )
        return Gallery(**dict(row), images=[GalleryImage(**dict(i)) for i in images])

    async def get_gallery_image(self, image_id: int) -> Blob | None:
        row = await self.pool.fetchrow(
            """
            SELECT i.image, i.image_name, i.image_type
            FROM gallery_images i JOIN galleries g ON g.id = i.gallery_id
            WHERE i.id = $1 AND g.is_deleted = false
            LIMIT 1
            """,
            image_id,
        )
        if not row or row["image"] is None:
            return None
        return Blob(
            data=bytes(row["image"]),
            content_type=row["image_type"] or "application/octet-stream",
            filename=row["image_name"],
        )

    async def update_gallery(self, gallery_id: int, values: dict[str, Any], images: list[Upload]) -> int:
        """Update metadata and append any new images."""
        if not values and not images:
            raise ValidationError("No fields provided for update.")
        if values:
            pairs = list(values.items())
            assignments = [f"{to_column(f)} = ${i}" for i, (f, _) in enumerate(pairs, start=1)]
            assignments.append("modified_on = NOW()")
            args = [v for _, v in pairs] + [gallery_id]
            affected = affected_rows(await self.pool.execute(
                f"UPDATE galleries SET {', '.join(assignments)} "
                f"WHERE id = ${len(args)} AND is_deleted = false",
                *args,
            ))
        else:
            exists = await self.pool.fetchval(
                "SELECT 1 FROM galleries WHERE id = $1 AND is_deleted = false", gallery_id,
            )
            affected = 1 if exists else 0
        if affected:
            for image in images:
                await self._insert_gallery_image(gallery_id, image)
        return affected

    async def delete_gallery(self, gallery_id: int) -> int:
        return affected_rows(await self.pool.execute(
            "UPDATE galleries SET is_deleted = true, modified_on = NOW() WHERE id = $1 AND is_deleted = false",
            gallery_id,
        ))

    async def delete_gallery_image(self, image_id: int) -> int:
        return affected_rows(await self.pool.execute("DELETE FROM gallery_images WHERE id = $1", image_id))
