"""Dispatcher — routes one validated request to its provider and relays the stream.

Lifecycle per request: Dispatched -> Streaming -> Closed. Validation
(Idle -> Validating) happens before a Dispatcher exists; a request that
fails it never reaches a provider.
"""

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable

from fastapi import HTTPException

from src.config.settings import get_settings
from src.logging.audit import StreamTimer, get_audit_logger
from src.providers.registry import get_provider
from src.relay.models import FinalResponse, RelayRequest, RelayState
from src.relay.request import build_messages

CompletionHook = Callable[[FinalResponse], Awaitable[None]]

ERROR_MARKER = "\n\nError: "


def error_marker(detail: str) -> str:
    """Terminal write for a stream that failed after dispatch."""
    return f"{ERROR_MARKER}{detail}"


class Dispatcher:
    """Relays one request's provider stream as plain text fragments."""

    def __init__(self, request: RelayRequest, on_complete: CompletionHook | None = None):
        self.request = request
        self.provider = get_provider(request.service)
        self.model = self.provider.resolve_model(request.deployment)
        self.transcript = FinalResponse(
            history=build_messages(request.system_prompt, request.history, request.query_prompt),
            user_message=request.query_prompt,
            service=request.service,
            deployment=self.model,
        )
        self.state = RelayState.DISPATCHED
        self.fragment_count = 0
        self._on_complete = on_complete
        self._completed = False

    async def stream(self) -> AsyncGenerator[str, None]:
        """Yield text fragments in provider order, then close.

        A provider failure ends the stream with a single error marker
        instead of raising, so the caller can always tell a failed stream
        from a short one.
        """
        if self.state != RelayState.DISPATCHED:
            raise RuntimeError("Dispatcher stream can only be consumed once")
        self.state = RelayState.STREAMING

        logger = get_audit_logger()
        timeout = get_settings().idle_timeout
        chunks = self.provider.stream_chat(self.transcript.history, self.model, self.request.params)

        try:
            with StreamTimer() as timer:
                try:
                    while True:
                        try:
                            async with asyncio.timeout(timeout):
                                chunk = await chunks.__anext__()
                        except StopAsyncIteration:
                            break

                        if chunk.text_delta:
                            timer.mark_first_fragment()
                            self.transcript.assistant_response += chunk.text_delta
                            self.fragment_count += 1
                            yield chunk.text_delta
                        if chunk.is_done:
                            break
                except HTTPException as e:
                    self.transcript.error = str(e.detail)
                    logger.warning(
                        "Provider error",
                        extra={"audit_data": self._audit_data(upstream_status=e.status_code)},
                    )
                except TimeoutError:
                    self.transcript.error = "Provider stream timed out"
                    logger.warning("Provider stream timed out", extra={"audit_data": self._audit_data()})
                except Exception:
                    self.transcript.error = "Provider stream failed"
                    logger.exception("Provider stream failed", extra={"audit_data": self._audit_data()})

            if self.transcript.error:
                yield error_marker(self.transcript.error)
            else:
                logger.info(
                    "Stream completed",
                    extra={"audit_data": self._audit_data(
                        latency_ms=timer.elapsed_ms,
                        first_fragment_ms=timer.first_fragment_ms,
                    )},
                )
        finally:
            await chunks.aclose()
            self.state = RelayState.CLOSED

    async def complete(self) -> None:
        """Run the completion hook, at most once, with the transcript."""
        if self._completed or self._on_complete is None:
            return
        self._completed = True
        await self._on_complete(self.transcript)

    def _audit_data(self, **extra) -> dict:
        return {
            "service": self.request.service.value,
            "deployment": self.model,
            "fragments": self.fragment_count,
            "characters": len(self.transcript.assistant_response),
            "error": self.transcript.error,
            **extra,
        }
