"""
Wire payload builders for mocked vendor responses.

WHAT: SSE and JSONL bodies for respx routes
WHY: Streaming and batch tests need realistic response bodies
HOW: json.dumps per event or entry, framed the way each vendor frames them
"""

import json


def sse_body(*events, done: bool = False) -> str:
    """OpenAI-style SSE body: one data line per event, optional [DONE]."""
    lines = [f"data: {json.dumps(event)}\n\n" for event in events]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines)


def anthropic_sse_body(*events) -> str:
    """Anthropic-style SSE body: an event line before every data line."""
    return "".join(
        f"event: {event['type']}\ndata: {json.dumps(event)}\n\n" for event in events
    )


def jsonl_body(*entries) -> str:
    return "\n".join(json.dumps(entry) for entry in entries) + "\n"


def chat_completion(content: str, prompt_tokens: int = 10, completion_tokens: int = 5) -> dict:
    return {
        "id": "chatcmpl-1",
        "model": "test-model",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


def anthropic_message(text: str, input_tokens: int = 12, output_tokens: int = 8, thinking: str | None = None) -> dict:
    content = []
    if thinking is not None:
        content.append({"type": "thinking", "thinking": thinking, "signature": "sig"})
    content.append({"type": "text", "text": text})
    return {
        "id": "msg_1",
        "type": "message",
        "role": "assistant",
        "content": content,
        "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
    }
