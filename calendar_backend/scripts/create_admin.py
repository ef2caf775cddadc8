"""
Bootstrap a fresh database:
1. Create tables
2. Seed the academic_settings keys that are missing
3. Create (or promote) a super admin

Usage: python scripts/create_admin.py <username> <password> [full name]
"""
import sys

from calendar_app.core.database import SessionLocal, engine
from calendar_app.core.security import hash_password
from calendar_app.models.admin import AdminUser
from calendar_app.models.base import Base
from calendar_app.schemas.settings import SettingsUpdateRequest
from calendar_app.services.calendar_settings import default_settings, get_setting_rows, update_settings

if len(sys.argv) < 3:
    print(__doc__)
    sys.exit(1)

username, password = sys.argv[1], sys.argv[2]
full_name = sys.argv[3] if len(sys.argv) > 3 else None

Base.metadata.create_all(bind=engine)
db = SessionLocal()

admin = db.query(AdminUser).filter(AdminUser.username == username).first()
if admin is None:
    admin = AdminUser(username=username, full_name=full_name)
    db.add(admin)
    print(f"Creating super admin {username!r}")
else:
    print(f"Updating existing admin {username!r}")
admin.hashed_password = hash_password(password)
admin.is_super_admin = True
admin.is_active = True
db.commit()
db.refresh(admin)

present = get_setting_rows(db)
defaults = default_settings()
missing = {
    "academic_calendar_enabled": defaults.enabled,
    "holiday_buffer_hours": defaults.buffer_hours,
    "current_academic_year": defaults.current_academic_year,
}
missing = {key: value for key, value in missing.items() if key not in present}
if missing:
    update_settings(db, SettingsUpdateRequest(**missing), admin.id)
    print(f"Seeded settings: {sorted(missing)}")
else:
    print("Settings already present")

db.close()
print("Done.")
