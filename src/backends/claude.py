"""Claude Code CLI backend (`claude -p ... --output-format json`)."""

import json

from src.backends.base import BackendAdapter, EnvelopeError


class ClaudeAdapter(BackendAdapter):
    """Single JSON object: ``session_id`` and the reply in ``result``."""

    name = "claude"

    def encode_request(self, prompt: str, model: str, session: str | None) -> list[str]:
        args = [self.command, "-p", prompt, "--model", model, "--output-format", "json"]
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

        if envelope.get("is_error"):
            raise EnvelopeError(f"error envelope: {envelope.get('result', '')}")

        text = envelope.get("result")
        if not isinstance(text, str) or not text:
            raise EnvelopeError("missing 'result' field")
        return envelope.get("session_id") or None, text
