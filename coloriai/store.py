import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import certifi
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection

from .config import Settings

logger = logging.getLogger("coloriai.store")

# Reports written before soft deletes existed have no isDeleted field.
NOT_DELETED = {"$or": [{"isDeleted": False}, {"isDeleted": {"$exists": False}}]}


def connect(settings: Settings) -> MongoClient:
    if settings.mongo_tls:
        return MongoClient(settings.mongo_uri, tls=True, tlsCAFile=certifi.where())
    return MongoClient(settings.mongo_uri)


def _object_id(report_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(report_id)
    except (InvalidId, TypeError):
        return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportStore:
    def __init__(self, collection: Collection):
        self.col = collection

    @classmethod
    def from_client(cls, client: MongoClient, db_name: str) -> "ReportStore":
        return cls(client[db_name]["reports"])

    def ensure_indexes(self) -> None:
        self.col.create_index([("userId", 1), ("createdAt", DESCENDING)])

    def create(
        self,
        user_id: str,
        result: Dict[str, Any],
        outfit_image: Optional[str],
        user_name: Optional[str] = None,
        raw_result: Optional[str] = None,
        age: Optional[str] = None,
        style: Optional[str] = None,
    ) -> Dict[str, Any]:
        doc = {
            "userId": user_id,
            "userName": user_name,
            "result": result,
            "outfitImage": outfit_image,
            "rawResult": raw_result,
            "age": age,
            "style": style,
            "isDeleted": False,
            "createdAt": _utcnow(),
        }
        inserted = self.col.insert_one(doc)
        doc["_id"] = inserted.inserted_id
        logger.info("Saved report %s for user %s", inserted.inserted_id, user_id)
        return doc

    def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        oid = _object_id(report_id)
        if oid is None:
            return None
        return self.col.find_one({"_id": oid})

    def list_for_user(self, user_id: str, include_deleted: bool = False) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"userId": user_id}
        if not include_deleted:
            query.update(NOT_DELETED)
        reports = list(self.col.find(query).sort("createdAt", DESCENDING))
        if include_deleted:
            return reports
        return [r for r in reports if r.get("isDeleted") is not True]

    def list_all(self, include_deleted: bool = True) -> List[Dict[str, Any]]:
        query = {} if include_deleted else dict(NOT_DELETED)
        return list(self.col.find(query).sort("createdAt", DESCENDING))

    def summaries(self) -> List[Dict[str, Any]]:
        """One row per user with their latest season type, newest users first."""
        rows: Dict[str, Dict[str, Any]] = {}
        for doc in self.list_all(include_deleted=True):
            uid = doc.get("userId")
            row = rows.get(uid)
            if row is None:
                rows[uid] = {
                    "userId": uid,
                    "userName": doc.get("userName") or "",
                    "colorResult": (doc.get("result") or {}).get("seasonType") or "",
                    "timestamp": _iso(doc.get("createdAt")),
                    "reportCount": 1,
                }
            else:
                row["reportCount"] += 1
                if not row["userName"] and doc.get("userName"):
                    row["userName"] = doc["userName"]
        return list(rows.values())

    def soft_delete(self, report_id: str) -> bool:
        oid = _object_id(report_id)
        if oid is None:
            return False
        res = self.col.update_one(
            {"_id": oid},
            {"$set": {"isDeleted": True, "deletedAt": _utcnow()}},
        )
        return res.matched_count > 0

    def delete(self, report_id: str) -> bool:
        oid = _object_id(report_id)
        if oid is None:
            return False
        return self.col.delete_one({"_id": oid}).deleted_count > 0

    def ping(self) -> bool:
        self.col.database.client.admin.command("ping")
        return True


def _iso(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in doc.items():
        if isinstance(v, ObjectId):
            out[k] = str(v)
        else:
            out[k] = _iso(v)
    return out
