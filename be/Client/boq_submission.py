"""
BOQ Submission

Turns the form state into a ``POST /boqs`` payload and submits it. The
follow-up ``POST /notify/new-boq`` is best-effort: its failure is logged and
does not affect the result. Any failure of the main post surfaces as a
SubmissionError carrying a generic message; the cause is logged.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

import httpx

from Client.selection_builder import CascadingSelection, SelectionBuilder

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """Raised when a BOQ could not be submitted."""

    def __init__(self, message: str = "BOQ submission failed", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def build_boq_payload(
    cascade: CascadingSelection,
    selections: SelectionBuilder,
    remarks: Optional[str] = None,
    survey_date: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Build ``{"data": {...}}`` for POST /boqs.

    Only rows with a chosen product are included.

    Raises:
        SelectionError: if a chosen row has an invalid count
    """
    data: Dict[str, Any] = dict(cascade.as_relations())
    data.update(selections.to_selections())
    if remarks:
        data["remarks"] = remarks
    if survey_date:
        data["survey_date"] = survey_date.isoformat()
    return {"data": data}


def submit_boq(client: httpx.Client, payload: Dict[str, Any], token: Optional[str] = None) -> Dict[str, Any]:
    """Create the BOQ and announce it; returns the created BOQ."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}

    try:
        response = client.post("/boqs", json=payload, headers=headers)
        response.raise_for_status()
        boq = response.json()["data"]
    except httpx.HTTPStatusError as e:
        logger.error(f"BOQ submission rejected ({e.response.status_code}): {e.response.text}")
        raise SubmissionError(status_code=e.response.status_code)
    except (httpx.HTTPError, ValueError, KeyError) as e:
        logger.error(f"BOQ submission failed: {e}")
        raise SubmissionError()

    try:
        notify = client.post("/notify/new-boq", json={"boqId": boq["documentId"]}, headers=headers)
        notify.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"New-BOQ notification for {boq['documentId']} failed: {e}")

    logger.info(f"BOQ {boq['documentId']} submitted")
    return boq
