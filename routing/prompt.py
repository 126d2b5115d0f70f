from typing import Any


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Only text parts are classified; images, tool results etc. are skipped here
        # but still forwarded untouched.
        return "\n".join(
            str(part.get("text", ""))
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        )
    return ""


def extract_prompt(body: Any) -> str:
    """
    Text of the last user-authored message in a Messages API body.

    Malformed payloads (no ``messages`` list, no user turn) degrade to an empty
    string so classification can still run.
    """
    if not isinstance(body, dict):
        return ""
    messages = body.get("messages")
    if not isinstance(messages, list):
        return ""

    for msg in reversed(messages):
        if isinstance(msg, dict) and msg.get("role") == "user":
            return _content_text(msg.get("content"))
    return ""
