"""
NewsProof — FastAPI Backend
"""

import asyncio
import logging
import os
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from algorand import LedgerClient
from errors import (
    ContentUnreadable,
    InvalidInput,
    InvalidState,
    LedgerNotConfigured,
    LedgerUnavailable,
    NotConnected,
    NotFound,
    SubmissionFailed,
    VerificationError,
)
from hashing import compute_fingerprint
from registry import check_content, list_verifications, lookup_verification, summarize
from submission import submit_content
from wallet import WalletSession

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

MAX_CONTENT_BYTES = 100 * 1024 * 1024  # 100 MB upload limit

# Most specific first
ERROR_STATUS = [
    (InvalidInput, 400),
    (ContentUnreadable, 400),
    (NotConnected, 401),
    (NotFound, 404),
    (InvalidState, 409),
    (SubmissionFailed, 502),
    (LedgerUnavailable, 502),
    (LedgerNotConfigured, 503),
]

app = FastAPI(title="NewsProof API", version="1.0.0", docs_url="/docs", redoc_url="/redoc")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc)},
        headers={"Access-Control-Allow-Origin": "*"},
    )


def http_error(exc: VerificationError) -> HTTPException:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


# ─────────────────────────────────────────────────────────────────────────────
# Dependencies
# ─────────────────────────────────────────────────────────────────────────────


def get_wallet_session() -> WalletSession:
    """Signing identity for this request, connected from SIGNER_MNEMONIC."""
    try:
        return WalletSession.from_environment()
    except InvalidInput as e:
        logger.error(f"SIGNER_MNEMONIC is invalid: {e}")
        return WalletSession.disconnected()


def get_ledger() -> LedgerClient:
    try:
        return LedgerClient.from_environment()
    except LedgerNotConfigured as e:
        raise http_error(e)


# ─────────────────────────────────────────────────────────────────────────────
# Content helpers
# ─────────────────────────────────────────────────────────────────────────────


async def fetch_content_from_url(url: str) -> tuple[bytes, str]:
    """Download content from a URL; returns (bytes, content type)."""
    async with httpx.AsyncClient(timeout=60.0, follow_redirects=True) as client:
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise HTTPException(
                status_code=400,
                detail=f"Failed to fetch content (HTTP {e.response.status_code}): {url}",
            )
        except httpx.HTTPError as e:
            raise HTTPException(status_code=400, detail=f"Failed to fetch content: {e}")
    content_type = response.headers.get("content-type", "").split(";")[0].strip()
    return response.content, content_type


async def read_content(
    content: Optional[UploadFile],
    content_url: Optional[str],
) -> tuple[bytes, str, str]:
    """Resolve the uploaded file or URL to (bytes, content type, source name)."""
    if content is not None and content.filename:
        data = await content.read()
        logger.info(f"Received upload: {content.filename} ({len(data)} bytes)")
        source = content.filename
        content_type = content.content_type or ""
    elif content_url:
        data, content_type = await fetch_content_from_url(content_url)
        logger.info(f"Fetched {len(data)} bytes from URL")
        source = content_url
    else:
        raise HTTPException(status_code=400, detail="Provide a content file or content_url")

    if not data:
        raise HTTPException(status_code=400, detail="Content is empty")
    if len(data) > MAX_CONTENT_BYTES:
        raise HTTPException(status_code=413, detail="Content exceeds the 100 MB limit")
    return data, content_type, source


# ─────────────────────────────────────────────────────────────────────────────
# Endpoints
# ─────────────────────────────────────────────────────────────────────────────


@app.get("/")
async def root():
    return {"service": "NewsProof API", "status": "healthy", "version": "1.0.0"}


@app.get("/health")
async def health():
    app_id = os.getenv("NEWS_REGISTRY_APP_ID", "0")
    return {
        "status": "healthy",
        "app_id_configured": app_id != "0",
        "app_id": app_id,
        "wallet_configured": bool(os.getenv("SIGNER_MNEMONIC")),
        "algod_server": os.getenv("ALGORAND_ALGOD_SERVER", "https://testnet-api.algonode.cloud"),
    }


# ── Fingerprint only (no ledger) ─────────────────────────────────────────────

@app.post("/api/fingerprint")
async def fingerprint(
    content: Optional[UploadFile] = File(None),
    content_url: Optional[str] = Form(None),
):
    data, content_type, source = await read_content(content, content_url)
    return {
        "fingerprint": compute_fingerprint(data).hex,
        "size": len(data),
        "content_type": content_type,
        "source": source,
    }


# ── Submit a verification ────────────────────────────────────────────────────

@app.post("/api/verifications")
async def create_verification(
    title: str = Form(""),
    location: Optional[str] = Form(None),
    content_type: Optional[str] = Form(None),
    content: Optional[UploadFile] = File(None),
    content_url: Optional[str] = Form(None),
    session: WalletSession = Depends(get_wallet_session),
):
    """
    Register content on the ledger and wait for confirmation.

    The wallet and the title are checked before the content is read or any
    ledger call is made.
    """
    if not session.is_connected:
        raise http_error(NotConnected("Wallet not connected"))
    if not title.strip():
        raise http_error(InvalidInput("A title is required to verify content"))

    ledger = get_ledger()
    data, detected_type, _ = await read_content(content, content_url)

    try:
        record = await asyncio.get_event_loop().run_in_executor(
            None,
            submit_content,
            session,
            ledger,
            data,
            title,
            content_type or detected_type,
            location,
        )
    except VerificationError as e:
        raise http_error(e)

    return {
        "success": True,
        **record.to_dict(),
        "app_id": ledger.app_id,
        "message": "Content permanently verified on the Algorand blockchain",
    }


# ── Registry view ────────────────────────────────────────────────────────────

@app.get("/api/verifications")
async def get_verifications():
    """Every registered verification, oldest first."""
    ledger = get_ledger()
    try:
        entries = await asyncio.get_event_loop().run_in_executor(
            None, list_verifications, ledger
        )
    except VerificationError as e:
        raise http_error(e)
    return {
        "verifications": [entry.to_dict() for entry in entries],
        "count": len(entries),
        "app_id": ledger.app_id,
    }


@app.get("/api/stats")
async def get_stats():
    """Registry totals and verification rate for the dashboard."""
    ledger = get_ledger()
    try:
        entries = await asyncio.get_event_loop().run_in_executor(
            None, list_verifications, ledger
        )
    except VerificationError as e:
        raise http_error(e)
    return {**summarize(entries).to_dict(), "app_id": ledger.app_id}


@app.get("/api/verifications/{verification_id}")
async def get_verification(verification_id: int):
    ledger = get_ledger()
    try:
        entry = await asyncio.get_event_loop().run_in_executor(
            None, lookup_verification, ledger, verification_id
        )
    except VerificationError as e:
        raise http_error(e)
    return {**entry.to_dict(), "app_id": ledger.app_id}


@app.post("/api/verifications/{verification_id}/check")
async def check_verification(
    verification_id: int,
    content: Optional[UploadFile] = File(None),
    content_url: Optional[str] = Form(None),
):
    """Re-hash the supplied content and compare it with the on-chain fingerprint."""
    ledger = get_ledger()
    data, _, _ = await read_content(content, content_url)
    try:
        entry = await asyncio.get_event_loop().run_in_executor(
            None, lookup_verification, ledger, verification_id
        )
    except VerificationError as e:
        raise http_error(e)
    result = check_content(entry, data)
    return {**result.to_dict(), "entry": entry.to_dict()}


@app.post("/api/verifications/{verification_id}/revoke")
async def revoke_verification(
    verification_id: int,
    session: WalletSession = Depends(get_wallet_session),
):
    if not session.is_connected:
        raise http_error(NotConnected("Wallet not connected"))
    ledger = get_ledger()

    try:
        entry = await asyncio.get_event_loop().run_in_executor(
            None, lookup_verification, ledger, verification_id, session.address
        )
    except VerificationError as e:
        raise http_error(e)
    if entry.creator_address != session.address:
        raise HTTPException(status_code=403, detail="Only the creator can revoke a verification")

    try:
        tx_id = await asyncio.get_event_loop().run_in_executor(
            None, ledger.revoke, session, verification_id
        )
    except Exception as e:
        logger.error(f"Revocation failed: id={verification_id}: {e}", exc_info=True)
        raise http_error(SubmissionFailed(f"Revocation failed: {e}"))

    return {
        "success": True,
        "verification_id": verification_id,
        "tx_id": tx_id,
        "message": "Verification revoked on the Algorand blockchain",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
