"""
Domain services.

Each service wraps one collection and raises the exceptions in ``errors`` on
failure; the HTTP layer turns those into status codes. Services receive the
database handle explicitly so tests can hand them an in-memory one.
"""

import logging
import secrets
from datetime import timedelta
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Type

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import EQUIPMENT, INVITATION_CODES, MAINTENANCE, PARTS, USERS, utcnow
from errors import (
    DuplicateUser,
    InvalidCredentials,
    InvalidInvitation,
    InvalidUpdate,
    MissingFields,
    NotFound,
    ValidationError,
)
from schemas import (
    PROFILE_FIELDS,
    Document,
    Equipment,
    InvitationCode,
    LoginRequest,
    Maintenance,
    Part,
    ProfileUpdate,
    RegisterRequest,
    Role,
    User,
    UserPublic,
)
from security import burn_password_check, create_access_token, get_password_hash, verify_password
from settings import INVITATION_CODE_TTL_DAYS
from storage import save_upload
from validation import check_required, dump, ensure_object, present_fields, to_aliases, validate, validate_new

logger = logging.getLogger(__name__)

SERVER_FIELDS = ("_id", "id", "createdAt", "updatedAt")


def part_query(search: Optional[str] = None) -> Dict[str, Any]:
    if search and search.strip():
        return {"$text": {"$search": search.strip()}}
    return {}


def to_object_id(value: Any) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def needs_reorder(part: Dict[str, Any]) -> bool:
    return part["quantity"] <= part["minimumQuantity"]


class ResourceService:
    collection_name: str
    schema: Type[Document]
    label: str
    attachment_kinds: tuple = ()

    def __init__(self, db):
        self.db = db
        self.collection = db[self.collection_name]

    # storage <-> wire conversion hooks

    def to_storage(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        return doc

    def from_storage(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        return doc

    def check_references(self, payload: Dict[str, Any]) -> None:
        pass

    def serialize(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        data = self.from_storage(dict(doc))
        data["id"] = str(data.pop("_id"))
        return data

    def _not_found(self) -> NotFound:
        return NotFound(f"{self.label} not found")

    def _find(self, record_id: str) -> Dict[str, Any]:
        oid = to_object_id(record_id)
        doc = self.collection.find_one({"_id": oid}) if oid is not None else None
        if doc is None:
            raise self._not_found()
        return doc

    def list(self) -> List[Dict[str, Any]]:
        return [self.serialize(doc) for doc in self.collection.find({})]

    def get(self, record_id: str) -> Dict[str, Any]:
        return self.serialize(self._find(record_id))

    def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        check_required(self.schema, payload)
        self.check_references(to_aliases(self.schema, payload))
        record = validate(self.schema, payload)
        doc = self.to_storage(dump(record))
        doc["createdAt"] = doc["updatedAt"] = utcnow()
        doc["_id"] = self.collection.insert_one(doc).inserted_id
        logger.info("%s created: %s", self.label, doc["_id"])
        return self.serialize(doc)

    def update(self, record_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        payload = ensure_object(payload)
        existing = self._find(record_id)
        # attachment lists change only through attach()
        ignored = SERVER_FIELDS + self.attachment_kinds
        patch = {k: v for k, v in to_aliases(self.schema, payload).items() if k not in ignored}
        merged = {k: v for k, v in self.from_storage(dict(existing)).items() if k not in ignored}
        merged.update(patch)
        record = validate(self.schema, merged)
        if self._reference_changed(existing, record):
            self.check_references(dump(record))
        sent = set(present_fields(self.schema, patch))
        changes = {k: v for k, v in self.to_storage(dump(record)).items() if k in sent}
        changes["updatedAt"] = utcnow()
        updated = self.collection.find_one_and_update(
            {"_id": existing["_id"]},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise self._not_found()
        logger.info("%s updated: %s", self.label, existing["_id"])
        return self.serialize(updated)

    def _reference_changed(self, existing: Dict[str, Any], record: Document) -> bool:
        return False

    def delete(self, record_id: str) -> Dict[str, str]:
        oid = to_object_id(record_id)
        deleted = self.collection.find_one_and_delete({"_id": oid}) if oid is not None else None
        if deleted is None:
            raise self._not_found()
        logger.info("%s deleted: %s", self.label, oid)
        return {"message": f"{self.label} deleted successfully"}

    def attach(self, record_id: str, kind: str, filename: Optional[str], fileobj: BinaryIO) -> Dict[str, Any]:
        """Store an uploaded file and append it to the record's ``kind`` list."""
        if kind not in self.attachment_kinds:
            raise ValidationError([f"{self.label} does not accept {kind}"])
        existing = self._find(record_id)
        attachment = save_upload(fileobj, filename, kind)
        updated = self.collection.find_one_and_update(
            {"_id": existing["_id"]},
            {"$push": {kind: attachment}, "$set": {"updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise self._not_found()
        logger.info("%s %s: %s added %s", self.label, existing["_id"], kind, attachment["path"])
        return {"message": f"{kind[:-1].capitalize()} added successfully", kind[:-1]: attachment}


class EquipmentService(ResourceService):
    collection_name = EQUIPMENT
    schema = Equipment
    label = "Equipment"
    attachment_kinds = ("documents", "images")


class PartService(ResourceService):
    collection_name = PARTS
    schema = Part
    label = "Part"
    attachment_kinds = ("images",)

    def serialize(self, doc):
        data = super().serialize(doc)
        data["needsReorder"] = needs_reorder(data)
        return data

    def list(self, search: Optional[str] = None, low_stock: bool = False):
        parts = [self.serialize(doc) for doc in self.collection.find(part_query(search))]
        if low_stock:
            parts = [p for p in parts if p["needsReorder"]]
        return parts


EQUIPMENT_SUMMARY = {"name": 1, "model": 1, "manufacturer": 1}


class MaintenanceService(ResourceService):
    """Maintenance records; reads resolve the referenced equipment inline."""

    collection_name = MAINTENANCE
    schema = Maintenance
    label = "Maintenance record"
    attachment_kinds = ("documents",)

    def to_storage(self, doc):
        doc["equipmentId"] = ObjectId(doc["equipmentId"])
        return doc

    def from_storage(self, doc):
        if isinstance(doc.get("equipmentId"), ObjectId):
            doc["equipmentId"] = str(doc["equipmentId"])
        return doc

    def check_references(self, payload):
        oid = to_object_id(payload.get("equipmentId"))
        if oid is None or self.db[EQUIPMENT].find_one({"_id": oid}, {"_id": 1}) is None:
            raise NotFound("Equipment not found")

    def _reference_changed(self, existing, record):
        return str(existing.get("equipmentId")) != record.equipment_id

    def _equipment_summaries(self, ids: Iterable[ObjectId]) -> Dict[ObjectId, Dict[str, Any]]:
        found = self.db[EQUIPMENT].find({"_id": {"$in": list(set(ids))}}, EQUIPMENT_SUMMARY)
        return {
            doc["_id"]: {
                "id": str(doc["_id"]),
                "name": doc.get("name"),
                "model": doc.get("model"),
                "manufacturer": doc.get("manufacturer"),
            }
            for doc in found
        }

    def _with_equipment(self, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        summaries = self._equipment_summaries(d["equipmentId"] for d in docs)
        records = []
        for doc in docs:
            # None when the equipment has been deleted since
            equipment = summaries.get(doc["equipmentId"])
            data = super().serialize(doc)
            data["equipment"] = equipment
            records.append(data)
        return records

    def serialize(self, doc):
        return self._with_equipment([doc])[0]

    def list(self, equipment_id: Optional[str] = None):
        query = {}
        if equipment_id is not None:
            oid = to_object_id(equipment_id)
            if oid is None:
                return []
            query["equipmentId"] = oid
        return self._with_equipment(list(self.collection.find(query)))


def public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    return dump(UserPublic.model_validate({**doc, "id": str(doc["_id"])}))


class AuthService:
    def __init__(self, db):
        self.users = db[USERS]
        self.codes = db[INVITATION_CODES]

    def _session(self, user: Dict[str, Any]) -> Dict[str, Any]:
        token = create_access_token({"sub": str(user["_id"])})
        return {"token": token, "user": public_user(user)}

    def _claim_code(self, code: str) -> Optional[Dict[str, Any]]:
        # check-and-mark in one conditional write so a code is consumed once
        cutoff = utcnow() - timedelta(days=INVITATION_CODE_TTL_DAYS)
        return self.codes.find_one_and_update(
            {"code": code, "isUsed": False, "createdAt": {"$gte": cutoff}},
            {"$set": {"isUsed": True}},
            return_document=ReturnDocument.AFTER,
        )

    def _release_code(self, claimed: Dict[str, Any]) -> None:
        self.codes.update_one({"_id": claimed["_id"]}, {"$set": {"isUsed": False, "usedBy": None}})

    def register(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        request = validate_new(RegisterRequest, payload)
        claimed = self._claim_code(request.invitation_code)
        if claimed is None:
            raise InvalidInvitation()

        email = request.email.lower()
        try:
            if self.users.find_one({"email": email}) is not None:
                raise DuplicateUser()
            now = utcnow()
            user = User(email=email, name=request.name, password=get_password_hash(request.password), role=Role.USER)
            doc = dump(user, exclude_none=True)
            doc["createdAt"] = doc["updatedAt"] = now
            doc["_id"] = self.users.insert_one(doc).inserted_id
        except (DuplicateUser, DuplicateKeyError):
            self._release_code(claimed)
            raise DuplicateUser() from None
        except Exception:
            # no user behind the claim, so the code stays usable
            self._release_code(claimed)
            raise

        self.codes.update_one({"_id": claimed["_id"]}, {"$set": {"usedBy": str(doc["_id"])}})
        logger.info("User registered: %s", doc["_id"])
        return self._session(doc)

    def login(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        request = validate_new(LoginRequest, payload)
        identifier = request.email or request.username
        if not identifier:
            raise MissingFields(["email"])
        user = self.users.find_one({"$or": [{"email": identifier.lower()}, {"username": identifier}]})
        if user is None:
            burn_password_check()
            raise InvalidCredentials()
        if not verify_password(request.password, user.get("password", "")):
            raise InvalidCredentials()
        return self._session(user)

    def generate_invitation_code(self, admin: Dict[str, Any]) -> Dict[str, str]:
        code = InvitationCode(code=secrets.token_urlsafe(16), created_by=str(admin["_id"]))
        self.codes.insert_one(dump(code))
        logger.info("Invitation code issued by %s", admin["_id"])
        return {"code": code.code}

    def get_profile(self, user: Dict[str, Any]) -> Dict[str, Any]:
        return public_user(user)

    def update_profile(self, user: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
        payload = ensure_object(payload)
        rejected = [key for key in payload if key not in PROFILE_FIELDS]
        if rejected:
            raise InvalidUpdate(errors=rejected)

        changes = dump(validate(ProfileUpdate, payload), exclude_unset=True)
        if "email" in changes:
            changes["email"] = changes["email"].lower()
            taken = self.users.find_one({"email": changes["email"], "_id": {"$ne": user["_id"]}})
            if taken is not None:
                raise DuplicateUser("Email already registered")
        if "password" in changes:
            changes["password"] = get_password_hash(changes["password"])
        changes["updatedAt"] = utcnow()

        updated = self.users.find_one_and_update(
            {"_id": user["_id"]},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise NotFound("User not found")
        logger.info("Profile updated: %s", user["_id"])
        return {"message": "Profile updated successfully", "user": public_user(updated)}
