# scripts/setup/init_db.py
"""
Initialize the SQL storage backend — creates all tables and seeds zones.
Run once before first launch with STORAGE_BACKEND=sql.
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from sqlalchemy import inspect, text

from app.config import settings
from app.database import create_tables, make_engine
from app.services.seed import seed_zones
from app.services.sql_storage import SqlStorage


def main():
    print("🗄️  Library Occupancy DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    engine = make_engine(settings.DATABASE_URL)

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        sys.exit(1)

    # Create all tables
    print("\n📋 Creating tables...")
    create_tables(engine)
    tables = sorted(inspect(engine).get_table_names())
    print(f"✅ Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    storage = SqlStorage(engine, total_capacity=settings.TOTAL_CAPACITY)
    if seed_zones(storage):
        print("\n🗺️  Seeded default library zones")
    else:
        print("\n🗺️  Zones already present")

    print("\n🎉 Database ready! Start the backend with:")
    print("   STORAGE_BACKEND=sql uvicorn app.main:app --host 0.0.0.0 --port 5000")


if __name__ == "__main__":
    main()
