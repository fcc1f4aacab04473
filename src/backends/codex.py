"""Codex CLI backend (`codex exec ... --json`), a stream of JSON event lines."""

import json
import logging

from src.backends.base import BackendAdapter, EnvelopeError

logger = logging.getLogger(__name__)


class CodexAdapter(BackendAdapter):
    """Session from ``thread.started``; reply from the last completed ``agent_message``."""

    name = "codex"

    def encode_request(self, prompt: str, model: str, session: str | None) -> list[str]:
        if session:
            return [self.command, "exec", "resume", session, "-m", model, prompt, "--json"]
        return [self.command, "exec", "-m", model, prompt, "--json"]

    def decode_response(self, stdout: str) -> tuple[str | None, str]:
        session: str | None = None
        text: str | None = None
        parsed_events = 0

        for line in stdout.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("Skipping non-JSON codex output line: %.80s", line)
                continue
            if not isinstance(event, dict):
                continue
            parsed_events += 1

            event_type = event.get("type")
            if event_type == "thread.started" and session is None:
                session = event.get("thread_id") or None
            elif event_type == "item.completed":
                item = event.get("item") or {}
                if item.get("type") == "agent_message" and isinstance(item.get("text"), str):
                    text = item["text"]

        if parsed_events == 0:
            raise EnvelopeError("no JSON events in codex output")
        if not text:
            raise EnvelopeError("no completed agent_message event")
        return session, text
