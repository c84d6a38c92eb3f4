from configs import db
from utils.dates import utcnow, isoformat
import enum


class RelatedType(enum.Enum):
    REQUEST = "request"
    QUOTATION = "quotation"
    SUPPLIER = "supplier"
    EXCEL_IMPORT = "excel_import"


class UploadedFile(db.Model):
    __tablename__ = "files"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    filename = db.Column(db.String(255), nullable=False)  # stored name
    original_name = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)
    file_size = db.Column(db.Integer, nullable=False)
    mime_type = db.Column(db.String(100))
    uploaded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    related_type = db.Column(db.Enum(RelatedType))
    related_id = db.Column(db.Integer)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    uploader = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "filename": self.filename,
            "original_name": self.original_name,
            "file_path": self.file_path,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "uploaded_by": self.uploaded_by,
            "uploaded_by_name": self.uploader.username if self.uploader else None,
            "related_type": self.related_type.value if self.related_type else None,
            "related_id": self.related_id,
            "description": self.description,
            "created_at": isoformat(self.created_at),
        }
