# idreview/app.py
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from idreview import review
from idreview.config import load_settings
from idreview.models import MatchResult, MatchTextRequest, ReviewDecision, VerificationRequest
from idreview.session import SessionRegistry, SessionState
from idreview.store import DocumentFiles, InMemoryVerificationStore, MongoVerificationStore, VerificationNotFound
from idreview.verifier import Verifier

logger = logging.getLogger(__name__)


def build_extractor(settings):
    # Imported here so the models are only loaded when OCR is first needed
    from idreview.extractor import OCRExtractor
    from idreview.ocr_engine import OCREngine

    logger.info("Initializing OCR engine (%s)", settings["OCR_RECOGNIZER"])
    engine = OCREngine(recognizer=settings["OCR_RECOGNIZER"], gpu=settings["OCR_GPU"])
    return OCRExtractor(engine, timeout=settings["FETCH_TIMEOUT"])


def build_store(settings):
    if settings["MONGO_URI"]:
        return MongoVerificationStore(settings["MONGO_URI"], settings["MONGO_DB"])
    logger.warning("IDREVIEW_MONGO_URI not set, using an in-memory verification store")
    return InMemoryVerificationStore()


def create_app(settings=None, store=None, files=None, extractor=None, audit=None):
    settings = settings or load_settings()
    logging.basicConfig(level=settings["LOG_LEVEL"], format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = FastAPI(title="idreview")

    # Enable CORS for the admin frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store if store is not None else build_store(settings)
    app.state.files = files or DocumentFiles(settings["UPLOAD_ROOT"])
    app.state.extractor = extractor
    app.state.sessions = None
    app.state.audit = audit or review.log_audit
    app.state.verifier = Verifier()

    def get_sessions(request: Request) -> SessionRegistry:
        state = request.app.state
        if state.sessions is None:
            if state.extractor is None:
                state.extractor = build_extractor(state.settings)
            state.sessions = SessionRegistry(state.extractor, state.verifier, state.settings["OCR_LANGUAGES"])
        return state.sessions

    def load_request(request: Request, request_id) -> VerificationRequest:
        try:
            return request.app.state.store.get(request_id)
        except VerificationNotFound:
            raise HTTPException(status_code=404, detail=f"Verification {request_id} not found") from None

    # --- ENDPOINTS ---

    @app.get("/")
    def home():
        return {"message": "Verification review API is running", "status": "Online"}

    @app.get("/verifications", response_model=list[VerificationRequest])
    def list_verifications(request: Request):
        return request.app.state.store.list_pending()

    @app.get("/verifications/{request_id}", response_model=VerificationRequest)
    def get_verification(request: Request, request_id: str):
        return load_request(request, request_id)

    @app.post("/verifications/{request_id}/analyze", response_model=SessionState)
    async def analyze(request: Request, request_id: str):
        """
        Runs OCR on the document and matches it against the profile.
        Re-running supersedes any analysis still in flight.
        """
        verification = load_request(request, request_id)
        session = get_sessions(request).open(verification)
        return await session.analyze()

    @app.get("/verifications/{request_id}/analysis", response_model=SessionState)
    def get_analysis(request: Request, request_id: str):
        session = get_sessions(request).get(request_id)
        if session is None:
            return SessionState(request_id=request_id)
        return session.state

    @app.delete("/verifications/{request_id}/analysis", status_code=204)
    def close_analysis(request: Request, request_id: str):
        get_sessions(request).close(request_id)

    def decide(request, request_id, decision, action):
        state = request.app.state
        session = state.sessions.get(request_id) if state.sessions is not None else None
        match = session.match if session is not None else None
        try:
            entry = action(
                state.store, state.files, request_id, decision.operator,
                match=match, reason=decision.reason, audit=state.audit,
            )
        except VerificationNotFound:
            raise HTTPException(status_code=404, detail=f"Verification {request_id} not found") from None
        except review.InvalidTransition as e:
            raise HTTPException(status_code=409, detail=str(e)) from None
        if state.sessions is not None:
            state.sessions.close(request_id)
        return entry.model_dump(mode="json", by_alias=True)

    @app.post("/verifications/{request_id}/approve")
    def approve(request: Request, request_id: str, decision: ReviewDecision):
        return decide(request, request_id, decision, review.approve)

    @app.post("/verifications/{request_id}/reject")
    def reject(request: Request, request_id: str, decision: ReviewDecision):
        return decide(request, request_id, decision, review.reject)

    @app.post("/match", response_model=MatchResult)
    def match_text(request: Request, data: MatchTextRequest):
        """Matches already recognized text against the given profile fields."""
        ground_truth = VerificationRequest(
            id="adhoc",
            first_name=data.first_name,
            last_name=data.last_name,
            birth_date=data.birth_date,
        )
        return request.app.state.verifier.match(data.recognized_text, ground_truth)

    return app


app = create_app()
