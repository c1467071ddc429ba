"""
Ingest routes: trigger one external PM batch over HTTP.
"""
from typing import Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from pipeline.handler import ingest_external_pm

router = APIRouter()


def get_ingest_runner() -> Callable[[], dict]:
    """Dependency hook so the batch runner can be swapped out."""
    return ingest_external_pm


@router.api_route("/external-pm", methods=["GET", "POST"])
def trigger_external_pm(runner: Callable[[], dict] = Depends(get_ingest_runner)):
    """Run one batch; the HTTP status mirrors the batch statusCode."""
    reply = runner()
    return JSONResponse(status_code=reply["statusCode"], content=reply["body"])
