"""
Storage for collections and the admin config.

Uses MongoDB when DATABASE_URL is set; otherwise data lives in process memory
and is lost on restart. Collections are saved whole (last write wins).
"""
import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pymongo import MongoClient

from schemas import AccessCodeConfig, AdminConfig, Collection, LookbookItem, Product

load_dotenv()

logger = logging.getLogger("seeding")

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "seeding")

db = MongoClient(DATABASE_URL)[DATABASE_NAME] if DATABASE_URL else None

ADMIN_CONFIG_ID = "admin"


def sample_collections() -> List[Collection]:
    return [
        Collection(
            id="25fw-id",
            name="25FW Collection",
            logo_url="https://picsum.photos/seed/brand/400/100",
            access_codes=[
                AccessCodeConfig(code="VIP25", limit=3),
                AccessCodeConfig(code="FRIENDS", limit=1),
            ],
            description_title="25FW: THE NEW ERA",
            description_body=(
                "Exploring the boundaries of minimal architecture through wearable art. "
                "Our Fall/Winter 2025 collection focuses on structured silhouettes and sustainable materials."
            ),
            lookbook=[
                LookbookItem(id=f"lb{i + 1}", url=f"https://picsum.photos/seed/look{i + 1}/800/1200", order=i)
                for i in range(4)
            ],
            products=[
                Product(
                    id="p1",
                    name="Structured Wool Coat",
                    price=450000,
                    options=["1", "2"],
                    summary="A signature piece with architectural shoulders.",
                    images=["https://picsum.photos/seed/p1/600/900"],
                ),
                Product(
                    id="p2",
                    name="Silk Blend Trousers",
                    price=280000,
                    options=["S", "M", "L"],
                    summary="Flowy and elegant for every occasion.",
                    images=["https://picsum.photos/seed/p2/600/900"],
                ),
            ],
        )
    ]


class Store:
    def __init__(self, database=None):
        self.db = database
        self._collections: Dict[str, dict] = {}
        self._admin: Optional[dict] = None

    # Collections

    def list_collections(self) -> List[Collection]:
        if self.db is None:
            docs = list(self._collections.values())
        else:
            docs = list(self.db["collection"].find({}).sort([("created_at", 1), ("_id", 1)]))
        return [self._to_collection(d) for d in docs]

    def get_collection(self, collection_id: str) -> Optional[Collection]:
        if self.db is None:
            doc = self._collections.get(collection_id)
        else:
            doc = self.db["collection"].find_one({"_id": collection_id})
        return self._to_collection(doc) if doc else None

    def save_collection(self, collection: Collection) -> Collection:
        data = collection.model_dump(mode="json")
        data.pop("id")
        if self.db is None:
            existing = self._collections.get(collection.id)
            data["created_at"] = existing["created_at"] if existing else datetime.now(timezone.utc)
            data["_id"] = collection.id
            self._collections[collection.id] = data
        else:
            data["updated_at"] = datetime.now(timezone.utc)
            self.db["collection"].update_one(
                {"_id": collection.id},
                {"$set": data, "$setOnInsert": {"created_at": datetime.now(timezone.utc)}},
                upsert=True,
            )
        return collection

    def delete_collection(self, collection_id: str) -> bool:
        if self.db is None:
            return self._collections.pop(collection_id, None) is not None
        res = self.db["collection"].delete_one({"_id": collection_id})
        return res.deleted_count > 0

    # Admin config

    def get_admin_config(self) -> AdminConfig:
        if self.db is None:
            doc = self._admin
        else:
            doc = self.db["adminconfig"].find_one({"_id": ADMIN_CONFIG_ID})
        if not doc:
            return AdminConfig()
        return AdminConfig(password=doc["password"], recovery_phrase=doc["recovery_phrase"])

    def save_admin_config(self, config: AdminConfig) -> AdminConfig:
        data = config.model_dump()
        if self.db is None:
            self._admin = data
        else:
            self.db["adminconfig"].update_one({"_id": ADMIN_CONFIG_ID}, {"$set": data}, upsert=True)
        return config

    def seed(self) -> None:
        """First run: default admin config and the sample collection."""
        if self.db is None:
            empty = self._admin is None
        else:
            empty = self.db["adminconfig"].find_one({"_id": ADMIN_CONFIG_ID}) is None
        if not empty:
            return
        self.save_admin_config(AdminConfig())
        for col in sample_collections():
            self.save_collection(col)
        logger.info("Seeded default admin config and sample collection")

    def ping(self) -> List[str]:
        if self.db is None:
            return []
        return self.db.list_collection_names()

    @staticmethod
    def _to_collection(doc: dict) -> Collection:
        data = {k: v for k, v in doc.items() if k not in ("_id", "created_at", "updated_at")}
        return Collection(id=doc["_id"], **data)


store = Store(db)


def get_store() -> Store:
    return store
