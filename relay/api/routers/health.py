from fastapi import APIRouter
from relay.core import config

router = APIRouter(tags=["meta"])

@router.get("/health")
def health():
    # liveness only; "configured" says whether upstream credentials are present
    return {"status": "ok", "configured": not config.missing_settings()}
