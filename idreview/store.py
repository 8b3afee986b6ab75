# idreview/store.py
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

from pymongo import MongoClient

from idreview.models import Operator, VerificationRequest, VerificationStatus

logger = logging.getLogger(__name__)

VERIFICATION_FILES = (
    "document_front.jpg", "document_front.png",
    "document_back.jpg", "document_back.png",
    "selfie.jpg", "selfie.png",
)


class VerificationNotFound(LookupError):
    pass


def _sort_key(request):
    # Newest first, undated records last; naive timestamps are taken as UTC
    created = request.created_at
    if created is None:
        return float("inf")
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return -created.timestamp()


def pending_first(requests):
    done = (VerificationStatus.APPROVED, VerificationStatus.REJECTED)
    return sorted((r for r in requests if r.status not in done), key=_sort_key)


class VerificationStore(ABC):
    @abstractmethod
    def all(self) -> List[VerificationRequest]:
        ...

    @abstractmethod
    def get(self, request_id) -> VerificationRequest:
        """Raises VerificationNotFound."""

    @abstractmethod
    def delete(self, request_id):
        ...

    @abstractmethod
    def mark_user_verified(self, user_id, operator: Operator, at: datetime):
        ...

    def list_pending(self) -> List[VerificationRequest]:
        return pending_first(self.all())


class InMemoryVerificationStore(VerificationStore):
    def __init__(self, requests=()):
        self.requests: Dict[str, VerificationRequest] = {r.id: r for r in requests}
        self.users: Dict[str, dict] = {}

    def add(self, request):
        self.requests[request.id] = request

    def all(self):
        return list(self.requests.values())

    def get(self, request_id):
        try:
            return self.requests[request_id]
        except KeyError:
            raise VerificationNotFound(request_id) from None

    def delete(self, request_id):
        self.requests.pop(request_id, None)

    def mark_user_verified(self, user_id, operator, at):
        self.users.setdefault(user_id, {}).update({
            "UserVerificated": True,
            "verifiedAt": at,
            "verifiedBy": operator.uid,
            "verificationMethod": "document_review",
        })


class MongoVerificationStore(VerificationStore):
    """Requests live in `verifications` keyed by user id, profiles in `users`."""

    def __init__(self, uri, db_name="mate", client=None):
        self.client = client or MongoClient(uri)
        db = self.client[db_name]
        self.verifications_col = db["verifications"]
        self.users_col = db["users"]

    @staticmethod
    def _from_doc(doc):
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return VerificationRequest.model_validate(data)

    def all(self):
        return [self._from_doc(doc) for doc in self.verifications_col.find({})]

    def get(self, request_id):
        doc = self.verifications_col.find_one({"_id": request_id})
        if doc is None:
            raise VerificationNotFound(request_id)
        return self._from_doc(doc)

    def delete(self, request_id):
        self.verifications_col.delete_one({"_id": request_id})

    def mark_user_verified(self, user_id, operator, at):
        self.users_col.update_one(
            {"_id": user_id},
            {"$set": {
                "UserVerificated": True,
                "verifiedAt": at,
                "verifiedBy": operator.uid,
                "verificationMethod": "document_review",
            }},
        )


class DocumentFiles:
    """Uploaded document and selfie images under <root>/verifications/<id>/."""

    def __init__(self, root="uploads"):
        self.root = Path(root)

    def folder(self, request_id):
        return self.root / "verifications" / request_id

    def cleanup(self, request_id):
        """
        Deletes the known upload files; returns the names actually removed.
        Never raises: a file that cannot be removed is logged and skipped.
        """
        removed = []
        folder = self.folder(request_id)
        for name in VERIFICATION_FILES:
            try:
                (folder / name).unlink()
                removed.append(name)
            except FileNotFoundError:
                logger.debug("File %s not found for %s - skipping", name, request_id)
            except OSError as e:
                logger.warning("Could not delete %s for %s: %s", name, request_id, e)
        try:
            if folder.is_dir() and not any(folder.iterdir()):
                folder.rmdir()
        except OSError as e:
            logger.warning("Could not remove upload folder for %s: %s", request_id, e)
        return removed
