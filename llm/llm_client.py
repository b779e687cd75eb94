import logging
import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from llm.assistant import RideAssistant


def ask(q, out=sys.stdout):
    """Print the assistant's reply to q as it streams in; returns the final text."""
    assistant = RideAssistant()
    shown = ""
    for _, msg in assistant.stream_reply(q):
        text = msg["content"]
        if text.startswith(shown):
            out.write(text[len(shown):])
        else:
            out.write("\n" + text)
        out.flush()
        shown = text
    out.write("\n")
    return shown


if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "WARNING"), format="[%(name)s] %(message)s")
    q = " ".join(sys.argv[1:]) or "how do I operate the wheelchair?"
    ask(q)
