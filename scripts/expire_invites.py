"""
Mark pending invites past their expiry as expired.
Run from project root: python scripts/expire_invites.py
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from intake_portal.database import SessionLocal
from intake_portal.services.invites import expire_old_invites


def main():
    db = SessionLocal()
    try:
        expired = expire_old_invites(db)
        db.commit()
        print(f"Expired {expired} pending invite(s).")
    finally:
        db.close()


if __name__ == "__main__":
    main()
