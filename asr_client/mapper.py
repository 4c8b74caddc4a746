from __future__ import annotations

import logging
from typing import Any

from common.schemas import TranscriptSegment

logger = logging.getLogger(__name__)

# Calibration against observed provider clock skew, in seconds. Empirical;
# not derived from anything.
TIME_OFFSET = 0.105


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def make_segments(result: Any) -> list[TranscriptSegment]:
    """Map provider utterances (millisecond timestamps) to transcript segments.

    A missing ``utterances`` list yields no segments; malformed entries
    are skipped and the rest are kept.
    """
    utterances = result.get("utterances") if isinstance(result, dict) else None
    if not isinstance(utterances, list):
        logger.warning("ASR result has no utterances list")
        return []

    segments: list[TranscriptSegment] = []
    for index, utt in enumerate(utterances):
        if not isinstance(utt, dict):
            logger.debug("Skipping utterance %d: not an object", index)
            continue
        text = utt.get("transcript")
        start, end = utt.get("start_time"), utt.get("end_time")
        if not isinstance(text, str) or not _is_number(start) or not _is_number(end):
            logger.debug("Skipping malformed utterance %d", index)
            continue
        segments.append(
            TranscriptSegment(
                text=text,
                start_time=start / 1000.0 + TIME_OFFSET,
                end_time=end / 1000.0 + TIME_OFFSET,
            )
        )

    if len(segments) < len(utterances):
        logger.warning("Skipped %d malformed utterances", len(utterances) - len(segments))
    return segments
