#!/usr/bin/env python3
"""Reset database and clear stored verification codes, files and audit logs."""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# Check if MongoDB is enabled
ENABLE_MONGODB = os.getenv("ENABLE_MONGODB", "false").lower() == "true"

if not ENABLE_MONGODB:
    print("❌ MongoDB is not enabled. Set ENABLE_MONGODB=true in .env")
    sys.exit(1)

from pymongo.errors import PyMongoError

from panchayat_api.database import close_mongo_connection, get_database


def reset_all_collections(include_logs: bool = False):
    """Drop the key-value collection (and optionally the audit log)."""
    db = get_database()

    collections_to_drop = ["kv_store"]
    if include_logs:
        collections_to_drop.append("logs")

    print("🗑️  Clearing collections...")
    for collection_name in collections_to_drop:
        try:
            db[collection_name].drop()
            print(f"   ✓ Dropped {collection_name}")
        except PyMongoError as e:
            print(f"   ⚠️  Could not drop {collection_name}: {e}")

    print("\n✅ Database reset complete!")


if __name__ == "__main__":
    reset_all_collections(include_logs="--logs" in sys.argv[1:])
    close_mongo_connection()
