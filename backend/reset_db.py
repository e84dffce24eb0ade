"""Reset database to clean state."""
from sqlalchemy import text

from src.lib.db import engine

TABLES = (
    "provider_applications",
    "bookings",
    "provider_services",
    "provider_profiles",
    "users",
    "alembic_version",
)

ENUM_TYPES = (
    "provider_availability",
    "application_status",
    "booking_status",
    "service_name",
    "user_role",
)


if __name__ == "__main__":
    print("Resetting database...")

    with engine.connect() as conn:
        for table in TABLES:
            conn.execute(text(f"DROP TABLE IF EXISTS {table} CASCADE"))
        if engine.dialect.name == "postgresql":
            for enum_type in ENUM_TYPES:
                conn.execute(text(f"DROP TYPE IF EXISTS {enum_type} CASCADE"))
        conn.commit()

    print("Database reset complete! Run `alembic upgrade head` to recreate the schema.")
