from __future__ import annotations

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from core.settings import get_settings


def create_client(mongo_url: str | None = None) -> AsyncMongoClient:
    url = mongo_url or get_settings().mongo_url
    return AsyncMongoClient(url, serverSelectionTimeoutMS=2000)


def get_database(client: AsyncMongoClient, db_name: str | None = None) -> AsyncDatabase:
    return client[db_name or get_settings().db_name]
