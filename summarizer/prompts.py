from __future__ import annotations

from common.schemas import TranscriptSegment

SUMMARY_PROMPT = """\
You are a video content analyst. Using the timestamped subtitles below,
write a well-structured Markdown summary of the video.

- Extract the core ideas and their logic, not a play-by-play.
- Use headings, lists and quotes.
- Start each key point with a time marker [[TIME: seconds]] so readers can
  jump to it.
"""

CHAT_SYSTEM_PROMPT = """\
You are a tutor answering questions about a video.
Answer from the [Context] below when it contains the answer; otherwise use
general knowledge and say so. End every answer with three short review
questions on the material.
"""


def format_transcript(segments: list[TranscriptSegment]) -> str:
    return "\n".join(f"[{seg.start_time:.2f}s] {seg.text}" for seg in segments)


def build_summary_prompt(content: str, custom_prompt: str = "") -> str:
    return f"{custom_prompt or SUMMARY_PROMPT}\n\nContent:\n{content}"


def build_chat_messages(
    message: str,
    context: str = "",
    history: list[dict[str, str]] | None = None,
) -> list[dict[str, str]]:
    system = CHAT_SYSTEM_PROMPT
    if context:
        system += f"\n[Context]:\n{context}"
    return [
        {"role": "system", "content": system},
        *(history or []),
        {"role": "user", "content": message},
    ]
