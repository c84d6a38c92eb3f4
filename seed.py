# seed.py
import os
from configs import db
from dao.user import hash_password
from db.models.category import Category
from db.models.setting import Setting, SettingType
from db.models.supplier import Supplier
from db.models.user import User, UserRole
from utils.dates import utcnow
from app import app  # Flask app


# -------- Admin --------
def seed_admin():
    username = os.getenv("ADMIN_USERNAME", "admin")
    email = os.getenv("ADMIN_EMAIL", "admin@rfq.local")
    password = os.getenv("ADMIN_PASSWORD", "Admin123")

    admin = User.query.filter((User.username == username) | (User.email == email)).first()
    if admin:
        print(f"• Admin '{admin.username}' already exists")
        return admin
    admin = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=UserRole.ADMIN,
        is_active=True,
        email_verified=True,
    )
    db.session.add(admin)
    db.session.commit()
    print(f"✓ Admin '{username}' created")
    return admin


# -------- Categories --------
CATEGORIES = [
    ("Metal", "Sheets, profiles, pipes"),
    ("Electrical", "Cables, switches, panels"),
    ("Chemicals", "Paints, solvents, adhesives"),
    ("Fasteners", "Screws, bolts, nuts"),
    ("Welding", "Electrodes, wire, gas"),
    ("Lubricants", "Oils and greases"),
    ("Office", "Office supplies"),
    ("Genel", "General purpose"),
]


def seed_categories():
    for name, description in CATEGORIES:
        c = Category.query.filter_by(name=name).first()
        if not c:
            db.session.add(Category(name=name, description=description, is_active=True))
        else:
            c.description = description
    db.session.commit()
    print("✓ Categories seeded/updated")


# -------- Settings --------
SETTINGS = [
    ("company_name", "RFQ Portal", "Company name shown in emails and reports", SettingType.STRING),
    ("default_currency", "TRY", "Currency used when a quotation omits one", SettingType.STRING),
    ("default_validity_days", "30", "Quotation validity when omitted", SettingType.NUMBER),
    ("email_notifications", "true", "Send workflow emails", SettingType.BOOLEAN),
]


def seed_settings():
    for key, value, description, type_ in SETTINGS:
        if not Setting.query.filter_by(key=key).first():
            db.session.add(Setting(key=key, value=value, description=description, type=type_))
    db.session.commit()
    print("✓ Settings seeded")


# -------- Sample suppliers --------
SAMPLE_SUPPLIERS = [
    ("anadolu_metal", "info@anadolumetal.example", "Anadolu Metal Ltd.", "Ayse Demir", "Istanbul", "Metal,Fasteners"),
    ("ege_kimya", "sales@egekimya.example", "Ege Kimya A.S.", "Mehmet Kaya", "Izmir", "Chemicals"),
    ("baskent_elektrik", "teklif@baskent.example", "Baskent Elektrik", "Zeynep Arslan", "Ankara", "Electrical"),
]


def seed_sample_suppliers(password="Supplier123"):
    for username, email, company, contact, city, categories in SAMPLE_SUPPLIERS:
        if User.query.filter_by(username=username).first():
            continue
        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.SUPPLIER,
            is_active=True,
        )
        db.session.add(user)
        db.session.flush()
        db.session.add(
            Supplier(
                user_id=user.id,
                company_name=company,
                contact_person=contact,
                city=city,
                categories=categories,
                is_approved=True,
                approval_date=utcnow(),
            )
        )
    db.session.commit()
    print("✓ Sample suppliers seeded")


if __name__ == "__main__":
    with app.app_context():
        db.create_all()
        seed_admin()
        seed_categories()
        seed_settings()
        if os.getenv("SEED_SAMPLE_DATA", "").lower() in ("1", "true", "yes"):
            seed_sample_suppliers()
