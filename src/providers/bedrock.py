"""AWS Bedrock ConverseStream provider — translates relay messages to Bedrock."""

import asyncio
from collections.abc import AsyncGenerator

from fastapi import HTTPException

from src.config.settings import get_settings
from src.providers.base import LLMProvider, StreamChunk
from src.providers.params import normalize_params
from src.relay.models import Message, Service

# Exception events ConverseStream can emit in place of data events
_STREAM_ERROR_EVENTS = {
    "internalServerException": "InternalServerException",
    "modelStreamErrorException": "ModelStreamErrorException",
    "validationException": "ValidationException",
    "throttlingException": "ThrottlingException",
    "serviceUnavailableException": "ServiceUnavailableException",
}


class BedrockProvider(LLMProvider):
    """Sends requests to AWS Bedrock via the ConverseStream API."""

    service = Service.BEDROCK

    def __init__(self):
        self._client = None

    @property
    def default_model(self) -> str:
        return get_settings().bedrock_default_model_id

    def _get_client(self):
        """Lazy-init boto3 client (avoids import when not needed)."""
        if self._client is None:
            import boto3

            settings = get_settings()
            self._client = boto3.client(
                "bedrock-runtime", region_name=settings.aws_region
            )
        return self._client

    @staticmethod
    def _translate_request(messages: list[Message], model_id: str, params: dict) -> dict:
        """Translate relay messages and params to ConverseStream kwargs."""
        kwargs = {"modelId": model_id}

        # Separate system messages from conversation messages
        system_msgs = []
        converse_msgs = []
        for msg in messages:
            if msg.role == "system":
                system_msgs.append({"text": msg.content})
            elif converse_msgs and converse_msgs[-1]["role"] == msg.role:
                # Converse requires alternating roles; fold repeats into one turn
                converse_msgs[-1]["content"].append({"text": msg.content})
            else:
                converse_msgs.append({
                    "role": msg.role,
                    "content": [{"text": msg.content}],
                })

        if system_msgs:
            kwargs["system"] = system_msgs
        kwargs["messages"] = converse_msgs

        # Map inference params (only include if present)
        options = normalize_params(params)
        inference_config = {}
        if "temperature" in options:
            inference_config["temperature"] = options["temperature"]
        max_tokens = options.get("max_tokens", options.get("max_completion_tokens"))
        if max_tokens is not None:
            inference_config["maxTokens"] = max_tokens
        if "top_p" in options:
            inference_config["topP"] = options["top_p"]
        if "stop" in options:
            stop = options["stop"]
            inference_config["stopSequences"] = [stop] if isinstance(stop, str) else stop

        if inference_config:
            kwargs["inferenceConfig"] = inference_config
        if "top_k" in options:
            kwargs["additionalModelRequestFields"] = {"top_k": options["top_k"]}

        return kwargs

    def _call_converse_stream(self, **kwargs) -> dict:
        """Synchronous ConverseStream API call (run via asyncio.to_thread)."""
        return self._get_client().converse_stream(**kwargs)

    def _handle_bedrock_error(self, e: Exception):
        """Map boto3 exceptions to HTTPExceptions."""
        if isinstance(getattr(e, "response", None), dict):
            error_code = e.response.get("Error", {}).get("Code", "")
        else:
            error_code = type(e).__name__
        self._raise_for_code(error_code, str(e))

    @staticmethod
    def _raise_for_code(error_code: str, message: str):
        if error_code == "ThrottlingException":
            raise HTTPException(status_code=429, detail="Bedrock rate limit exceeded")
        elif error_code == "ValidationException":
            raise HTTPException(status_code=400, detail=f"Bedrock validation error: {message}")
        elif error_code in ("ModelNotReadyException", "ServiceUnavailableException"):
            raise HTTPException(status_code=503, detail="Bedrock model not ready")
        elif error_code == "AccessDeniedException":
            raise HTTPException(status_code=403, detail="Bedrock access denied -- check IAM permissions")
        else:
            raise HTTPException(status_code=502, detail=f"Bedrock error: {message}")

    async def stream_chat(
        self, messages: list[Message], model: str, params: dict
    ) -> AsyncGenerator[StreamChunk, None]:
        kwargs = self._translate_request(messages, model, params)

        try:
            response = await asyncio.to_thread(self._call_converse_stream, **kwargs)
        except HTTPException:
            raise
        except Exception as e:
            self._handle_bedrock_error(e)

        # The EventStream is a blocking iterator; pull each event on a worker thread
        events = iter(response.get("stream", []))
        while True:
            try:
                event = await asyncio.to_thread(next, events, None)
            except Exception as e:
                self._handle_bedrock_error(e)
            if event is None:
                return

            for key, code in _STREAM_ERROR_EVENTS.items():
                if key in event:
                    self._raise_for_code(code, event[key].get("message", code))

            if "contentBlockDelta" in event:
                delta_text = event["contentBlockDelta"].get("delta", {}).get("text", "")
                yield StreamChunk(text_delta=delta_text)

            elif "messageStop" in event:
                yield StreamChunk(text_delta="", is_done=True)
                return

    async def close(self) -> None:
        # boto3 clients don't need explicit cleanup
        self._client = None
