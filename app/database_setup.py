#!/usr/bin/env python3
"""
Database Setup Module
Creates the responses table on DATABASE_URL (local or self-hosted Postgres)
"""

try:
    from .config import get_settings
    from .database import Base, build_engine, init_db

    settings = get_settings()
    engine = build_engine(settings.database_url)

    print(f"📋 Creating tables on {engine.url!r}...")
    init_db(engine)
    print("✅ Database setup complete!")

    for table in sorted(Base.metadata.tables.keys()):
        print(f"  - {table}")

except ImportError as e:
    print(f"❌ Import error: {e}")
    print("💡 Try running: python -m app.database_setup")
    raise
except Exception as e:
    print(f"❌ Database setup failed: {e}")
    raise
