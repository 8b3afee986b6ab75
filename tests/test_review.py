import pytest

from idreview import review
from idreview.models import AuditAction, MatchResult, Operator, VerificationStatus
from idreview.store import DocumentFiles, InMemoryVerificationStore, VerificationNotFound

OPERATOR = Operator(uid="admin-1", email="admin@example.com")


@pytest.fixture
def files(tmp_path):
    files = DocumentFiles(tmp_path)
    folder = files.folder("user-anna")
    folder.mkdir(parents=True)
    (folder / "document_front.jpg").write_bytes(b"x")
    (folder / "selfie.jpg").write_bytes(b"x")
    return files


def test_approve_flags_user_and_removes_request(anna_request, files):
    store = InMemoryVerificationStore([anna_request])
    entries = []
    match = MatchResult(name_matched=True, last_name_matched=True, date_matched=False, score=2)

    entry = review.approve(store, files, anna_request.id, OPERATOR, match=match, audit=entries.append)

    assert store.users[anna_request.id]["UserVerificated"] is True
    assert store.users[anna_request.id]["verifiedBy"] == "admin-1"
    with pytest.raises(VerificationNotFound):
        store.get(anna_request.id)
    assert not files.folder(anna_request.id).exists()

    assert entries == [entry]
    assert entry.action == AuditAction.VERIFICATION_APPROVED
    assert entry.admin_uid == "admin-1"
    assert entry.admin_email == "admin@example.com"
    assert entry.target_id == anna_request.id
    assert entry.target_type == "verification"
    assert entry.metadata == {"userName": "Anna Verdi", "ocrScore": 2}


def test_reject_removes_request_without_flagging_user(anna_request, files):
    store = InMemoryVerificationStore([anna_request])
    entries = []

    entry = review.reject(store, files, anna_request.id, OPERATOR, reason="blurry photo", audit=entries.append)

    assert store.users == {}
    assert store.all() == []
    assert not files.folder(anna_request.id).exists()
    assert entry.action == AuditAction.VERIFICATION_REJECTED
    assert entry.reason == "blurry photo"
    assert entry.metadata["ocrScore"] == 0


def test_decision_works_without_uploaded_files(anna_request, tmp_path):
    store = InMemoryVerificationStore([anna_request])
    review.reject(store, DocumentFiles(tmp_path / "empty"), anna_request.id, OPERATOR, audit=lambda entry: None)
    assert store.all() == []


def test_reviewed_request_cannot_be_decided_again(anna_request, files):
    reviewed = anna_request.model_copy(update={"status": VerificationStatus.APPROVED})
    store = InMemoryVerificationStore([reviewed])

    with pytest.raises(review.InvalidTransition):
        review.reject(store, files, reviewed.id, OPERATOR, audit=lambda entry: None)
    assert store.get(reviewed.id) is reviewed


def test_unknown_request(files):
    with pytest.raises(VerificationNotFound):
        review.approve(InMemoryVerificationStore(), files, "ghost", OPERATOR)


def test_default_audit_sink_logs(anna_request, files, caplog):
    store = InMemoryVerificationStore([anna_request])
    with caplog.at_level("INFO", logger="idreview.review"):
        review.approve(store, files, anna_request.id, OPERATOR)

    assert "VERIFICATION_APPROVED by admin-1 on user-anna" in caplog.text
    record = next(r for r in caplog.records if r.name == "idreview.review")
    assert record.audit["adminUid"] == "admin-1"
    assert record.audit["metadata"]["userName"] == "Anna Verdi"


def test_approve_is_audited_even_when_upload_cleanup_fails(anna_request, files):
    (files.folder(anna_request.id) / "document_back.jpg").mkdir()
    store = InMemoryVerificationStore([anna_request])
    entries = []

    entry = review.approve(store, files, anna_request.id, OPERATOR, audit=entries.append)

    assert entries == [entry]
    assert entry.action == AuditAction.VERIFICATION_APPROVED
    assert store.users[anna_request.id]["UserVerificated"] is True
    assert store.all() == []
