"""
Registry Initialization Script
Creates the console registry tables and registers every .conf file found in
the conf directory that is not registered yet.
"""
import sys
import os
from sqlalchemy import text

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pgconsole.config import settings
from pgconsole.core.errors import GatewayError
from pgconsole.database import Base, app_engine, get_app_db_context
from pgconsole.models import ConnectionOrigin, ConnectionTarget
from pgconsole.services import registry


def init_database():
    """Create registry tables."""
    print("Checking registry database connection...")
    try:
        with app_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✓ Registry database reachable")
    except Exception as e:
        print(f"⚠️  Registry database not reachable: {str(e)}")
        return False

    Base.metadata.create_all(bind=app_engine)
    print("✓ Tables created")
    return True


def register_conf_files():
    """Register targets described by .conf files in CONF_DIR."""
    if not os.path.isdir(settings.CONF_DIR):
        print(f"ℹ️  No conf directory at {settings.CONF_DIR}")
        return

    with get_app_db_context() as db:
        for filename in sorted(os.listdir(settings.CONF_DIR)):
            if not filename.endswith(".conf"):
                continue
            try:
                parsed = registry.conf_to_target(registry.load_conf(filename), filename)
                credentials = parsed["credentials"]

                exists = db.query(ConnectionTarget).filter(
                    ConnectionTarget.host == credentials.host,
                    ConnectionTarget.port == credentials.port,
                    ConnectionTarget.database == credentials.database,
                ).first()
                if exists:
                    print(f"✓ {filename}: already registered")
                    continue

                registry.verify_target(credentials, parsed["create_on_server"])
                origin = (
                    ConnectionOrigin.CREATED_ON_SERVER
                    if parsed["create_on_server"] else ConnectionOrigin.REGISTERED
                )
                registry.save_target(db, parsed["name"], credentials, origin)
                print(f"✓ {filename}: registered")
            except GatewayError as e:
                print(f"❌ {filename}: {e.message}")


if __name__ == "__main__":
    if init_database():
        register_conf_files()
        print("\n✅ Registry initialization complete!")
