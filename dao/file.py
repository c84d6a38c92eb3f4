import logging
import os
import uuid
from contextlib import suppress
from typing import Optional
from flask import current_app
from werkzeug.utils import secure_filename
from configs import db
from dao import audit as audit_dao
from dao.base import atomic, commit
from db.models.file import RelatedType, UploadedFile
from db.models.user import User
from utils import excel
from utils.errors import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def extension_of(filename: str) -> str:
    _, ext = os.path.splitext(filename or "")
    return ext.lower().lstrip(".")


def _store(storage, subdir: str, allowed) -> dict:
    """Writes an uploaded ``FileStorage`` under UPLOAD_FOLDER/<subdir>."""
    if storage is None or not storage.filename:
        raise ValidationError("No file was uploaded.")
    ext = extension_of(storage.filename)
    if ext not in allowed:
        raise ValidationError(f"Allowed file types: {', '.join(allowed)}.")

    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], subdir)
    os.makedirs(folder, exist_ok=True)
    base = secure_filename(os.path.splitext(storage.filename)[0]) or "file"
    stored_name = f"{base}-{uuid.uuid4().hex[:12]}.{ext}"
    path = os.path.join(folder, stored_name)
    storage.save(path)
    return {
        "filename": stored_name,
        "original_name": storage.filename,
        "file_path": path,
        "file_size": os.path.getsize(path),
        "mime_type": storage.mimetype,
    }


def _remove_from_disk(path: str):
    # a file already gone from disk is not an error
    with suppress(FileNotFoundError):
        os.remove(path)


def get_file(file_id: int) -> Optional[UploadedFile]:
    return db.session.get(UploadedFile, file_id)


def import_excel(storage, user: User):
    """Stores the workbook, parses it and records the upload.

    The stored file is removed again when nothing usable was found.
    """
    meta = _store(storage, "excel", ("xlsx",))
    try:
        items, summary = excel.parse_items(meta["file_path"])
        if not items:
            raise ValidationError("No valid rows were found in the spreadsheet.")
        with atomic():
            record = UploadedFile(
                uploaded_by=user.id,
                related_type=RelatedType.EXCEL_IMPORT,
                description=f"Excel import - {len(items)} items",
                **meta,
            )
            db.session.add(record)
            db.session.flush()
            audit_dao.record(
                "excel_imported",
                user_id=user.id,
                table_name="files",
                record_id=record.id,
                new_values={"filename": meta["original_name"], "items_count": len(items)},
            )
    except Exception:
        _remove_from_disk(meta["file_path"])
        raise
    logger.info("Excel import %s: %d items", record.id, len(items))
    return record, items, summary


def save_attachment(storage, user: User, form) -> UploadedFile:
    related_type = None
    if form.get("related_type"):
        try:
            related_type = RelatedType(form["related_type"].strip().lower())
        except ValueError:
            allowed = ", ".join(t.value for t in RelatedType)
            raise ValidationError(errors={"related_type": f"related_type must be one of: {allowed}."})
    related_id = None
    if form.get("related_id"):
        try:
            related_id = int(form["related_id"])
        except ValueError:
            raise ValidationError(errors={"related_id": "related_id must be an integer."})

    meta = _store(storage, "files", current_app.config["ALLOWED_FILE_TYPES"])
    try:
        with atomic():
            record = UploadedFile(
                uploaded_by=user.id,
                related_type=related_type,
                related_id=related_id,
                description=(form.get("description") or "").strip() or None,
                **meta,
            )
            db.session.add(record)
            db.session.flush()
            audit_dao.record(
                "file_uploaded",
                user_id=user.id,
                table_name="files",
                record_id=record.id,
                new_values={
                    "filename": meta["original_name"],
                    "related_type": related_type.value if related_type else None,
                    "related_id": related_id,
                },
            )
    except Exception:
        _remove_from_disk(meta["file_path"])
        raise
    return record


def list_files(user: User, page: int, limit: int, related_type=None, uploaded_by=None):
    q = UploadedFile.query
    if not user.is_admin:
        q = q.filter(UploadedFile.uploaded_by == user.id)
    elif uploaded_by:
        q = q.filter(UploadedFile.uploaded_by == uploaded_by)
    if related_type:
        try:
            q = q.filter(UploadedFile.related_type == RelatedType(related_type.strip().lower()))
        except ValueError:
            raise ValidationError(errors={"related_type": "Unknown related_type."})
    return q.order_by(UploadedFile.created_at.desc(), UploadedFile.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )


def delete_file(file_id: int, user: User):
    f = get_file(file_id)
    if f is None:
        raise NotFoundError("File not found.")
    if not user.is_admin and f.uploaded_by != user.id:
        raise AuthorizationError("You cannot delete this file.")

    old = {"filename": f.original_name, "file_path": f.file_path}
    _remove_from_disk(f.file_path)

    # conditional delete: a concurrent delete leaves nothing to remove
    deleted = UploadedFile.query.filter_by(id=file_id).delete(synchronize_session=False)
    if not deleted:
        db.session.rollback()
        raise NotFoundError("File not found.")
    db.session.expunge(f)
    audit_dao.record(
        "file_deleted",
        user_id=user.id,
        table_name="files",
        record_id=file_id,
        old_values=old,
    )
    commit()
    logger.info("File %s deleted by user %s", file_id, user.id)
