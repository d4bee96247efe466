"""FastAPI application exposing claim aggregation and provenance lookups"""

from contextlib import asynccontextmanager
from typing import Any, List, Optional

from fastapi import FastAPI, HTTPException
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from pdtf_claims.core.config import configure_logging, settings
from pdtf_claims.core.models import ClaimIssue
from pdtf_claims.pipeline.claim_source import ClaimSourceError, JsonFileClaimSource
from pdtf_claims.pipeline.transaction_pipeline import TransactionPipeline
from pdtf_claims.provenance.claims_map import build_claims_map
from pdtf_claims.provenance.resolver import contributing_claims
from pdtf_claims.state.aggregator import aggregate_state
from pdtf_claims.validation.schema_checker import SchemaConformanceChecker


# Global state
pipeline: Optional[TransactionPipeline] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan (startup/shutdown)"""
    global pipeline

    configure_logging()
    checker = None
    if settings.SCHEMA_PATH:
        checker = SchemaConformanceChecker.from_file(settings.SCHEMA_PATH)
    pipeline = TransactionPipeline(JsonFileClaimSource(settings.CLAIMS_DIR), checker=checker)

    yield

    pipeline = None


app = FastAPI(
    title="PDTF Claims Engine",
    description="Aggregates PDTF claims into transaction state with per-field provenance",
    version="0.1.0",
    lifespan=lifespan,
)


# Request/Response models
class ClaimsRequest(BaseModel):
    """Claims to aggregate, with an optional seed document"""
    model_config = ConfigDict(populate_by_name=True)

    claims: List[dict[str, Any]]
    initial_state: Optional[dict[str, Any]] = Field(default=None, alias="initialState")


class ContributingClaimsRequest(BaseModel):
    """Claims plus the display path (and shown value) to explain"""
    model_config = ConfigDict(populate_by_name=True)

    claims: List[dict[str, Any]]
    path: str
    value: Any = None
    initial_state: Optional[dict[str, Any]] = Field(default=None, alias="initialState")


class StateResponse(BaseModel):
    state: dict[str, Any]
    issues: List[ClaimIssue]


class TransactionStateResponse(BaseModel):
    transaction_id: str
    state: dict[str, Any]
    issues: List[ClaimIssue]
    validation_errors: int
    validation_warnings: int


# Endpoints
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "PDTF Claims Engine",
        "version": "0.1.0",
        "status": "running",
    }


@app.post("/state", response_model=StateResponse)
async def post_state(request: ClaimsRequest):
    """Aggregate the given claims into the current-state document"""
    result = aggregate_state(request.claims, request.initial_state)
    return StateResponse(state=result.state, issues=result.issues)


@app.post("/claims-map")
async def post_claims_map(request: ClaimsRequest):
    """Build the provenance index for the given claims (leaves list claim ids)"""
    claims_map, issues = build_claims_map(request.claims, request.initial_state)
    return {
        "claimsMap": claims_map.to_dict(),
        "issues": [issue.model_dump(mode="json") for issue in issues],
    }


@app.post("/contributing-claims")
async def post_contributing_claims(request: ContributingClaimsRequest):
    """
    Claims that contributed to the value shown at a path.

    Returned oldest first, in wire format.
    """
    claims_map, _ = build_claims_map(request.claims, request.initial_state)
    found = contributing_claims(claims_map, request.path, request.value)
    return [claim.to_wire() for claim in found]


@app.get("/transactions/{transaction_id}/state", response_model=TransactionStateResponse)
async def get_transaction_state(transaction_id: str):
    """Aggregated state of a stored transaction"""
    view = await _load(transaction_id)
    return TransactionStateResponse(
        transaction_id=view.transaction_id,
        state=view.state,
        issues=view.issues,
        validation_errors=len(view.validation.errors) if view.validation else 0,
        validation_warnings=len(view.validation.warnings) if view.validation else 0,
    )


@app.get("/transactions/{transaction_id}/claims-map")
async def get_transaction_claims_map(transaction_id: str):
    """Provenance index of a stored transaction"""
    view = await _load(transaction_id)
    return {"transactionId": view.transaction_id, "claimsMap": view.claims_map.to_dict()}


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    if not pipeline:
        raise HTTPException(status_code=503, detail="System not ready")

    return {"status": "healthy"}


async def _load(transaction_id: str):
    if not pipeline:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    try:
        return await pipeline.load(transaction_id)
    except ClaimSourceError as exc:
        logger.warning("Transaction lookup failed: {error}", error=str(exc))
        raise HTTPException(status_code=404, detail=exc.reason)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
