# llm/assistant.py
# The Ride Assistant: a scripted chat transcript in front of the completion API.

import logging
import threading

import requests

from llm.completions import CompletionClient, CompletionError

log = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an airport wheelchair assistance specialist. Your role is to help passengers "
    "use automated wheelchairs and navigate the airport efficiently. You should provide clear, "
    "concise information about:\n"
    "- How to operate the automated wheelchair\n"
    "- Navigation within the airport\n"
    "- Safety guidelines\n"
    "- Location of facilities\n"
    "- General airport assistance\n"
    "Always maintain a helpful, professional tone and prioritize user safety and comfort."
)

GREETING = (
    "Hello! I am your automated wheelchair assistant. I can help you with navigating the "
    "airport and using the wheelchair. How can I assist you today?"
)

APOLOGY = "I apologize, but I encountered an error. Please try again."


class RideAssistant:
    def __init__(self, client=None):
        self.client = client or CompletionClient()
        self.messages = [{"role": "assistant", "content": GREETING}]
        self.loading = False
        self._lock = threading.Lock()

    def claim(self):
        """Mark a turn as in flight; False when one already is."""
        with self._lock:
            if self.loading:
                return False
            self.loading = True
            return True

    def release(self):
        with self._lock:
            self.loading = False

    def _render(self, text, replace):
        msg = {"role": "assistant", "content": text}
        if replace:
            self.messages[-1] = msg
        else:
            self.messages.append(msg)
        return len(self.messages) - 1, msg

    def stream_reply(self, text):
        """
        Send one user turn and yield (index, message) each time the reply grows.

        The first fragment appends the assistant message; later fragments replace it
        with the running text. On any failure a single apology is appended instead.
        """
        if not text or not text.strip():
            return
        user_message = {"role": "user", "content": text}
        outgoing = [{"role": "system", "content": SYSTEM_PROMPT}]
        outgoing += [{"role": m["role"], "content": m["content"]} for m in self.messages]
        outgoing.append(user_message)

        self.messages.append(user_message)
        self.loading = True
        running = ""
        try:
            for fragment in self.client.stream(outgoing):
                rendered = bool(running)
                running += fragment
                yield self._render(running, replace=rendered)
        except (CompletionError, requests.RequestException, ValueError) as exc:
            log.error("Error sending message: %s", exc, exc_info=True)
            yield self._render(APOLOGY, replace=False)
        finally:
            self.loading = False

    def send(self, text):
        """Run a whole turn; returns the last rendered assistant message (or None for blank input)."""
        last = None
        for _, msg in self.stream_reply(text):
            last = msg
        return last
