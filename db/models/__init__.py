from .user import User
from .supplier import Supplier
from .category import Category

from .request import Request, RequestItem, RequestSupplier
from .quotation import Quotation, QuotationItem

from .notification import Notification
from .audit_log import AuditLog
from .file import UploadedFile
from .setting import Setting

__all__ = [n for n in dir() if n[:1].isupper()]
