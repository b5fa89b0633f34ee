"""LLM Stream Relay — FastAPI application entry point.

Accepts one chat request, routes it to Azure OpenAI or Bedrock, and streams
the model's text back as plain text. The end of the body is the only
completion signal.
"""

from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask

from src.logging.audit import bind_request_id, get_audit_logger, setup_logging
from src.providers.registry import close_all_providers
from src.relay.callback import deliver_transcript
from src.relay.dispatcher import Dispatcher
from src.relay.request import RequestError, parse_request

VERSION = "0.2.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    get_audit_logger().info("Relay started")
    yield
    await close_all_providers()
    get_audit_logger().info("Relay stopped")


app = FastAPI(
    title="LLM Stream Relay",
    description="Streams chat completions from Azure OpenAI or Bedrock as plain text",
    version=VERSION,
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.post("/")
@app.post("/v1/relay")
async def relay(request: Request):
    """Streaming relay endpoint.

    Pipeline: Validate -> Dispatch -> Stream -> Close -> Completion hook
    """
    logger = get_audit_logger()
    rid = bind_request_id()
    headers = {"X-Request-Id": rid, "Cache-Control": "no-cache"}

    body = await request.body()
    try:
        relay_request = parse_request(body)
        on_complete = partial(deliver_transcript, relay_request.callback) if relay_request.callback else None
        dispatcher = Dispatcher(relay_request, on_complete=on_complete)
    except RequestError as e:
        logger.warning(
            "Request rejected",
            extra={"audit_data": {
                "client_ip": request.client.host if request.client else "unknown",
                "reason": e.message,
            }},
        )
        return PlainTextResponse(f"Error: {e.message}", status_code=400, headers=headers)

    return StreamingResponse(
        dispatcher.stream(),
        media_type="text/plain; charset=utf-8",
        headers=headers,
        background=BackgroundTask(dispatcher.complete),
    )
