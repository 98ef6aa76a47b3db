"""
Create tables, seed checklist templates and add a staff user who can sign in to /admin.

Run from project root:
  python scripts/seed_staff_user.py admin@claimsiq.ai --role admin --password 'Password123!'

Without --password the user signs in with a magic link only.
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from intake_portal.database import Base, SessionLocal, engine
from intake_portal import models  # noqa: F401
from intake_portal.errors import AppError
from intake_portal.models.user import StaffRole
from intake_portal.seed import seed_checklist_templates
from intake_portal.services.auth import create_staff_user


def main():
    parser = argparse.ArgumentParser(description="Create a staff user")
    parser.add_argument("email")
    parser.add_argument("--role", choices=[r.value for r in StaffRole], default=StaffRole.admin.value)
    parser.add_argument("--first-name", default=None)
    parser.add_argument("--last-name", default=None)
    parser.add_argument("--password", default=None)
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_checklist_templates(db)
        staff = create_staff_user(
            db,
            args.email,
            first_name=args.first_name,
            last_name=args.last_name,
            role=StaffRole(args.role),
            password=args.password,
        )
        db.commit()
        print(f"Created {staff.role.value} staff user: {staff.email}")
    except AppError as e:
        db.rollback()
        print(f"Not created: {e.message}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
