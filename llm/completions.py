# llm/completions.py
# Streaming client for an OpenAI-compatible chat completions endpoint.

import codecs
import json
import logging
import os

import requests

log = logging.getLogger(__name__)

API_BASE = os.environ.get("OPENAI_API_BASE", "https://api.openai.com/v1").rstrip("/")
DEFAULT_MODEL = os.environ.get("OPENAI_MODEL", "gpt-3.5-turbo")
DEFAULT_TIMEOUT = float(os.environ.get("OPENAI_TIMEOUT", "30"))

DATA_PREFIX = "data: "
DONE = "[DONE]"


class CompletionError(Exception):
    """The completion endpoint refused or could not be asked."""


def parse_stream_line(line):
    """
    Return the text fragment carried by one stream line, or None.
    Blank lines and the [DONE] sentinel carry nothing; anything else must be JSON.
    """
    if line.startswith(DATA_PREFIX):
        line = line[len(DATA_PREFIX):]
    line = line.strip()
    if not line or line == DONE:
        return None
    record = json.loads(line)
    if not isinstance(record, dict):
        raise ValueError(f"unexpected stream record: {line[:80]}")
    choices = record.get("choices") or [{}]
    if not isinstance(choices, list) or not isinstance(choices[0], dict):
        raise ValueError(f"unexpected choices in stream record: {line[:80]}")
    delta = choices[0].get("delta") or {}
    if not isinstance(delta, dict):
        raise ValueError(f"unexpected delta in stream record: {line[:80]}")
    content = delta.get("content")
    if content is not None and not isinstance(content, str):
        raise ValueError(f"non-text content in stream record: {line[:80]}")
    return content or None


def iter_stream_lines(chunks):
    """Decode raw byte chunks and yield complete lines; a trailing partial line is held back."""
    decoder = codecs.getincrementaldecoder("utf-8")()
    pending = ""
    for chunk in chunks:
        if not chunk:
            continue
        pending += decoder.decode(chunk)
        *lines, pending = pending.split("\n")
        for line in lines:
            yield line
    pending += decoder.decode(b"", final=True)
    if pending:
        yield pending


def iter_deltas(chunks):
    for line in iter_stream_lines(chunks):
        fragment = parse_stream_line(line)
        if fragment:
            yield fragment


class CompletionClient:
    def __init__(self, api_key=None, model=None, api_base=None, timeout=None):
        self.api_key = api_key if api_key is not None else os.environ.get("OPENAI_API_KEY", "")
        self.model = model or DEFAULT_MODEL
        self.url = (api_base or API_BASE).rstrip("/") + "/chat/completions"
        self.timeout = timeout or DEFAULT_TIMEOUT

    def stream(self, messages):
        """POST messages with stream=true and yield text fragments as they arrive."""
        if not self.api_key:
            raise CompletionError("OPENAI_API_KEY is not set")
        resp = requests.post(
            self.url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            json={"model": self.model, "messages": messages, "stream": True},
            stream=True,
            timeout=self.timeout,
        )
        try:
            if not resp.ok:
                raise CompletionError(resp.reason or f"HTTP {resp.status_code}")
            log.debug("streaming %s reply", self.model)
            yield from iter_deltas(resp.iter_content(chunk_size=None))
        finally:
            resp.close()
