"""Gemini CLI backend (`gemini -p ... -o json`)."""

import json

from src.backends.base import BackendAdapter, EnvelopeError


class GeminiAdapter(BackendAdapter):
    """Single JSON object: ``session_id`` and the reply in ``response``."""

    name = "gemini"

    def encode_request(self, prompt: str, model: str, session: str | None) -> list[str]:
        args = [self.command, "-p", prompt, "-o", "json", "-m", model]
        if session:
            args += ["--resume", session]
        return args

    def decode_response(self, stdout: str) -> tuple[str | None, str]:
        try:
            envelope = json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise EnvelopeError(f"invalid JSON envelope: {exc}") from exc
        if not isinstance(envelope, dict):
            raise EnvelopeError("envelope is not a JSON object")

        if envelope.get("error"):
            raise EnvelopeError(f"error envelope: {envelope['error']}")

        text = envelope.get("response")
        if not isinstance(text, str) or not text:
            raise EnvelopeError("missing 'response' field")
        return envelope.get("session_id") or None, text
