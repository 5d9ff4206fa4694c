# backend/check_store.py
"""Connectivity check: ping Mongo and print catalog collection sizes."""
from urllib.parse import urlsplit

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from carefind.core.config import settings
from carefind.db.base import BRANCH_SERVICES, BRANCHES, PACKAGE_COMPONENTS, PROVIDERS, SERVICES


def redact(uri: str) -> str:
    p = urlsplit(uri)
    if "@" in p.netloc and ":" in p.netloc.split("@")[0]:
        user_host = p.netloc.split("@")
        user = user_host[0].split(":")[0]
        return uri.replace(user_host[0], f"{user}:***")
    return uri


def main() -> int:
    if not settings.MONGO_URI:
        print("MONGO_URI is empty; the API will serve the in-memory catalog.")
        return 1
    print("MONGO_URI =", redact(settings.MONGO_URI))
    try:
        client = MongoClient(settings.MONGO_URI, serverSelectionTimeoutMS=3000, connectTimeoutMS=3000)
        print("Ping:", client.admin.command("ping"))
        db = client[settings.MONGO_DB]
        for name in (SERVICES, PROVIDERS, BRANCHES, BRANCH_SERVICES, PACKAGE_COMPONENTS):
            print(f"{name}: {db[name].count_documents({})}")
        print("OK: Connected to Mongo.")
        return 0
    except PyMongoError as e:
        print("ERROR:", repr(e))
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
