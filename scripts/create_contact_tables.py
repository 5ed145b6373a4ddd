# scripts/create_contact_tables.py

"""
Script to create the contacts table and verify its indexes.

Note: app.py already calls db.create_all() outside of testing. This script
is useful for manual database setup or for checking an existing database.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.exc import SQLAlchemyError  # noqa: E402

from app import app  # noqa: E402
from flask_app.models import Contact, db  # noqa: E402

EXPECTED_INDEXES = (
    "idx_contacts_email_active",
    "idx_contacts_phone_active",
)


def create_contact_tables():
    """Create the contacts table and report which expected indexes exist"""
    with app.app_context():
        print(f"Creating contact tables on {db.engine.url.render_as_string(hide_password=True)}...")

        try:
            db.create_all()
            inspector = db.inspect(db.engine)
            tables = inspector.get_table_names()
            index_names = {index["name"] for index in inspector.get_indexes(Contact.__tablename__)}
        except SQLAlchemyError as e:
            print(f"✗ Error creating contact tables: {str(e)}")
            return False

        if Contact.__tablename__ not in tables:
            print(f"✗ {Contact.__tablename__} (missing)")
            return False
        print(f"✓ {Contact.__tablename__}")

        print("\nVerifying indexes:")
        for name in EXPECTED_INDEXES:
            if name in index_names:
                print(f"  ✓ {name}")
            else:
                print(f"  ✗ {name} (missing)")

        print("\nContact tables setup complete!")

    return True


if __name__ == "__main__":
    sys.exit(0 if create_contact_tables() else 1)
