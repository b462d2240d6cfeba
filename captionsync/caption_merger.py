"""Groups word tokens into display captions."""

import logging
from typing import List, Sequence

from .exceptions import MergeError
from .models import Caption, Token, TranscriptArtifact, TranscriptionResult

logger = logging.getLogger(__name__)

DEFAULT_COMBINE_WITHIN_MS = 200

def _to_ms(seconds: float) -> int:
    return int(round(seconds * 1000))

class CaptionMerger:
    """
    Merges adjacent tokens into captions.

    A token joins the current caption while the silence between the previous
    token's end and its own start is shorter than ``combine_tokens_within_ms``.
    Gaps are compared in whole milliseconds.
    """

    def __init__(self, combine_tokens_within_ms: int = DEFAULT_COMBINE_WITHIN_MS):
        if combine_tokens_within_ms < 0:
            raise ValueError("combine_tokens_within_ms must not be negative")
        self.combine_tokens_within_ms = combine_tokens_within_ms

    def merge(self, tokens: Sequence[Token]) -> List[Caption]:
        """
        Args:
            tokens: Tokens in emission order.

        Returns:
            Captions with strictly increasing start times.

        Raises:
            MergeError: If a token starts before the one emitted before it.
        """
        captions: List[Caption] = []
        current: List[str] = []
        current_start = 0.0
        previous = None

        for token in tokens:
            if previous is not None and _to_ms(token.start_in_seconds) < _to_ms(previous.start_in_seconds):
                raise MergeError(
                    f"Token {token.text!r} at {token.start_in_seconds}s starts before "
                    f"{previous.text!r} at {previous.start_in_seconds}s"
                )

            if previous is None:
                current_start = token.start_in_seconds
            else:
                gap_ms = _to_ms(token.start_in_seconds) - _to_ms(previous.end_in_seconds)
                starts_later = _to_ms(token.start_in_seconds) > _to_ms(current_start)
                if gap_ms >= self.combine_tokens_within_ms and starts_later:
                    captions.append(Caption(text=' '.join(current), start_in_seconds=current_start))
                    current = []
                    current_start = token.start_in_seconds

            text = token.text.strip()
            if text:
                current.append(text)
            previous = token

        if previous is not None:
            captions.append(Caption(text=' '.join(current), start_in_seconds=current_start))

        logger.debug(f"Merged {len(tokens)} tokens into {len(captions)} captions")
        return captions

    @staticmethod
    def full_transcription(tokens: Sequence[Token]) -> str:
        """Every token's text in order, whitespace-joined, ignoring caption boundaries."""
        return ' '.join(text for text in (token.text.strip() for token in tokens) if text)

    def build_artifact(self, result: TranscriptionResult) -> TranscriptArtifact:
        extra = {}
        if result.language:
            extra['language'] = result.language
        if result.model:
            extra['model'] = result.model
        return TranscriptArtifact(
            transcription=self.merge(result.tokens),
            full_transcription=self.full_transcription(result.tokens),
            raw_tokens=list(result.tokens),
            extra=extra,
        )
