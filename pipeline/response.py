"""
Reply assembly for one ingestion invocation.

Shape:
    {"statusCode": 200 | 500,
     "body": {"data": {"responseData": [...]},
              "meta": {"timeTaken": "0.812s", "message": "SUCCESS: 3",
                       "errorList": [...]}}}
"""

from typing import Any, Dict, List

from pipeline.ingestion.models import BatchOutcome, IngestionSuccess
from pipeline.storage.repository import as_utc


def format_elapsed(seconds: float) -> str:
    return f"{seconds:.3f}s"


def serialize_success(success: IngestionSuccess) -> Dict[str, Any]:
    row = success.row
    return {
        "stationName":   success.target.external_name,
        "pm10Value":     row.pm10,
        "pm25Value":     row.pm25,
        "dataTime":      as_utc(row.recorded_at).isoformat(),
        "requestedTime": as_utc(row.updated_at).isoformat(),
    }


def _reply(status_code: int, data: List[Dict[str, Any]], elapsed: float,
           message: str, errors: List[str]) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "body": {
            "data": {"responseData": data},
            "meta": {
                "timeTaken": format_elapsed(elapsed),
                "message": message,
                "errorList": errors,
            },
        },
    }


def build_success_response(outcome: BatchOutcome) -> Dict[str, Any]:
    """200 reply; per-target failures are listed but do not change the status."""
    data = [serialize_success(s) for s in outcome.successes]
    return _reply(200, data, outcome.elapsed, f"SUCCESS: {len(data)}", list(outcome.errors))


def build_failure_response(error: Exception, elapsed: float) -> Dict[str, Any]:
    """500 reply for a batch that never reached the fan-out stage."""
    return _reply(500, [], elapsed, f"FAILED: {error}", [str(error)])
