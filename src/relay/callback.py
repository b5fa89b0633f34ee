"""Completion hook — delivers the transcript once the outbound stream has closed."""

from typing import Any

import httpx

from src.config.settings import get_settings
from src.logging.audit import get_audit_logger
from src.relay.models import FinalResponse


def is_webhook(callback: Any) -> bool:
    return isinstance(callback, str) and callback.startswith(("http://", "https://"))


async def deliver_transcript(callback: Any, transcript: FinalResponse) -> None:
    """Hand the transcript to the requested callback.

    A URL callback receives the transcript as a JSON POST; any other truthy
    value records it in the audit log. Failures are logged, never raised:
    the caller's stream is already closed by the time this runs.
    """
    logger = get_audit_logger()
    payload = transcript.model_dump(mode="json", by_alias=True)

    if not is_webhook(callback):
        logger.info("Transcript ready", extra={"audit_data": {"transcript": payload}})
        return

    try:
        async with httpx.AsyncClient(timeout=get_settings().callback_timeout) as client:
            response = await client.post(callback, json=payload)
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(
            "Transcript delivery failed",
            extra={"audit_data": {"callback": callback, "error": str(e)}},
        )
        return

    logger.info(
        "Transcript delivered",
        extra={"audit_data": {"callback": callback, "callback_status": response.status_code}},
    )
