# idreview/session.py
import logging
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel

from idreview.extractor import DEFAULT_LANGUAGE_HINTS, ExtractionFailed
from idreview.models import MatchResult, VerificationRequest
from idreview.verifier import BADGE_LABELS, Verifier, badge_for

logger = logging.getLogger(__name__)

NO_DOCUMENT_IMAGE = "No document image available"


class AnalysisStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class SessionState(BaseModel):
    """
    What the operator sees for one review. match stays None until an
    analysis completes, so "not analyzed" and "zero matches" differ.
    """

    request_id: str
    status: AnalysisStatus = AnalysisStatus.IDLE
    sequence: int = 0
    recognized_text: Optional[str] = None
    match: Optional[MatchResult] = None
    badge: Optional[str] = None
    badge_label: Optional[str] = None
    error: Optional[str] = None


class ReviewSession:
    """
    One operator review of one verification request.

    Every analyze() call takes a new sequence number; a result only lands
    if its number is still the latest when the OCR call returns.
    """

    def __init__(self, request: VerificationRequest, extractor, verifier=None,
                 language_hints=DEFAULT_LANGUAGE_HINTS):
        self.request = request
        self.extractor = extractor
        self.verifier = verifier or Verifier()
        self.language_hints = tuple(language_hints)
        self._latest = 0
        self.state = SessionState(request_id=request.id)

    @property
    def latest_sequence(self):
        return self._latest

    async def analyze(self) -> SessionState:
        self._latest += 1
        sequence = self._latest
        self.state = SessionState(request_id=self.request.id, status=AnalysisStatus.RUNNING, sequence=sequence)

        image_url = self.request.document_image_url()
        if not image_url:
            return self._fail(sequence, NO_DOCUMENT_IMAGE)

        try:
            text = await self.extractor.recognize_text(image_url, self.language_hints)
        except ExtractionFailed as e:
            if sequence != self._latest:
                logger.debug("Dropping stale failure #%d for %s", sequence, self.request.id)
                return self.state
            logger.warning("OCR failed for %s: %s", self.request.id, e)
            return self._fail(sequence, str(e))
        except Exception as e:
            if sequence != self._latest:
                logger.debug("Dropping stale failure #%d for %s", sequence, self.request.id)
                return self.state
            logger.exception("Unexpected OCR error for %s", self.request.id)
            return self._fail(sequence, f"OCR analysis error: {e}")

        if sequence != self._latest:
            logger.debug("Dropping stale result #%d for %s (latest #%d)", sequence, self.request.id, self._latest)
            return self.state

        match = self.verifier.match(text, self.request)
        badge = badge_for(match.score)
        self.state = SessionState(
            request_id=self.request.id,
            status=AnalysisStatus.DONE,
            sequence=sequence,
            recognized_text=text,
            match=match,
            badge=badge,
            badge_label=BADGE_LABELS[badge],
        )
        logger.info("Analysis #%d for %s scored %d/3", sequence, self.request.id, match.score)
        return self.state

    def _fail(self, sequence, message):
        self.state = SessionState(
            request_id=self.request.id,
            status=AnalysisStatus.FAILED,
            sequence=sequence,
            error=message,
        )
        return self.state

    @property
    def match(self) -> Optional[MatchResult]:
        return self.state.match

    def close(self):
        # Pending OCR calls resolve against a newer sequence and get dropped
        self._latest += 1
        self.state = SessionState(request_id=self.request.id, sequence=self._latest)


class SessionRegistry:
    """Keeps one independent ReviewSession per request id."""

    def __init__(self, extractor, verifier=None, language_hints=DEFAULT_LANGUAGE_HINTS):
        self.extractor = extractor
        self.verifier = verifier or Verifier()
        self.language_hints = tuple(language_hints)
        self._sessions: Dict[str, ReviewSession] = {}

    def open(self, request: VerificationRequest) -> ReviewSession:
        session = self._sessions.get(request.id)
        if session is None:
            session = ReviewSession(request, self.extractor, self.verifier, self.language_hints)
            self._sessions[request.id] = session
        else:
            session.request = request
        return session

    def get(self, request_id) -> Optional[ReviewSession]:
        return self._sessions.get(request_id)

    def close(self, request_id):
        session = self._sessions.pop(request_id, None)
        if session is not None:
            session.close()
