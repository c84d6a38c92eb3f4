# admin/setup.py
from flask import redirect, url_for
from flask_login import current_user, logout_user
from flask_admin import Admin, AdminIndexView, expose
from flask_admin.contrib.sqla import ModelView
from configs import db
from db.models.user import UserRole
from utils.errors import AuthenticationError, AuthorizationError


def _is_admin():
    return current_user.is_authenticated and current_user.has_role(UserRole.ADMIN)


def _deny():
    # the back office shares the admin session of /api/auth/login
    if not current_user.is_authenticated:
        raise AuthenticationError("Login required.")
    raise AuthorizationError("admin role required.")


class RfqAdminIndex(AdminIndexView):
    @expose("/")
    def index(self):
        if not _is_admin():
            _deny()
        return super().index()

    @expose("/logout")
    def admin_logout(self):
        if current_user.is_authenticated:
            logout_user()
        return redirect(url_for("admin.index"))

    def is_accessible(self):
        return _is_admin()

    def inaccessible_callback(self, name, **kwargs):
        _deny()


class SecureModelView(ModelView):
    can_view_details = True
    can_export = True

    def is_accessible(self):
        return _is_admin()

    def inaccessible_callback(self, name, **kwargs):
        _deny()


class ReadOnlyView(SecureModelView):
    can_create = False
    can_edit = False
    can_delete = False


class UserView(SecureModelView):
    column_exclude_list = ["password_hash", "password_reset_token"]
    column_details_exclude_list = ["password_hash", "password_reset_token"]
    column_searchable_list = ["username", "email"]
    column_filters = ["role", "is_active"]
    form_excluded_columns = ["password_hash", "password_reset_token", "supplier"]
    can_create = False


class SupplierView(SecureModelView):
    column_searchable_list = ["company_name", "contact_person", "tax_number"]
    column_filters = ["is_approved", "city"]
    column_list = [
        "id",
        "company_name",
        "contact_person",
        "city",
        "rating",
        "total_quotations",
        "successful_quotations",
        "is_approved",
    ]
    # counters move only through the quotation workflow
    form_excluded_columns = ["user", "total_quotations", "successful_quotations"]


class RequestView(ReadOnlyView):
    column_searchable_list = ["request_no", "title"]
    column_filters = ["status", "priority", "created_at"]
    column_list = ["id", "request_no", "title", "status", "priority", "deadline", "created_at"]


class QuotationView(ReadOnlyView):
    column_searchable_list = ["quotation_no"]
    column_filters = ["status", "submission_date", "supplier_id"]
    column_list = [
        "id",
        "quotation_no",
        "request",
        "supplier",
        "total_amount",
        "currency",
        "status",
        "submission_date",
    ]


class AuditLogView(ReadOnlyView):
    column_filters = ["action", "table_name", "created_at"]
    column_default_sort = ("created_at", True)


def init_admin(app):
    admin = Admin(
        app,
        name="RFQ Back Office",
        index_view=RfqAdminIndex(url="/manage"),
        url="/manage",
    )
    from db.models.audit_log import AuditLog
    from db.models.category import Category
    from db.models.file import UploadedFile
    from db.models.notification import Notification
    from db.models.quotation import Quotation, QuotationItem
    from db.models.request import Request, RequestItem, RequestSupplier
    from db.models.setting import Setting
    from db.models.supplier import Supplier
    from db.models.user import User

    admin.add_view(UserView(User, db.session, category="System", endpoint="admin_user", name="Users"))
    admin.add_view(
        SecureModelView(Setting, db.session, category="System", endpoint="admin_setting", name="Settings")
    )
    admin.add_view(
        AuditLogView(AuditLog, db.session, category="System", endpoint="admin_audit", name="Audit Log")
    )
    admin.add_view(
        SecureModelView(
            Category, db.session, category="Master Data", endpoint="admin_category", name="Categories"
        )
    )
    admin.add_view(
        SupplierView(Supplier, db.session, category="Master Data", endpoint="admin_supplier", name="Suppliers")
    )
    admin.add_view(
        RequestView(Request, db.session, category="Requests", endpoint="admin_request", name="Requests")
    )
    admin.add_view(
        ReadOnlyView(
            RequestItem, db.session, category="Requests", endpoint="admin_request_item", name="Request Items"
        )
    )
    admin.add_view(
        ReadOnlyView(
            RequestSupplier, db.session, category="Requests", endpoint="admin_invitation", name="Invitations"
        )
    )
    admin.add_view(
        QuotationView(Quotation, db.session, category="Quotations", endpoint="admin_quotation", name="Quotations")
    )
    admin.add_view(
        ReadOnlyView(
            QuotationItem,
            db.session,
            category="Quotations",
            endpoint="admin_quotation_item",
            name="Quotation Items",
        )
    )
    admin.add_view(
        ReadOnlyView(
            Notification, db.session, category="System", endpoint="admin_notification", name="Notifications"
        )
    )
    admin.add_view(
        ReadOnlyView(UploadedFile, db.session, category="System", endpoint="admin_file", name="Files")
    )
    return admin
