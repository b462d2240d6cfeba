"""Turns captions into a frame-quantized display schedule."""

import logging
import math
from typing import List, Sequence

from .models import Caption, TimelineEntry
from .utils import seconds_to_frames

logger = logging.getLogger(__name__)

class TimelineBuilder:
    """
    Schedules captions onto frames.

    Each caption starts at the first frame at or after its onset and stays up
    until the earliest of: the next caption's start frame, one second later,
    or the end of the audio. Captions left with no frames are dropped.
    """

    def __init__(self, fps: float = 30):
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.fps = fps
        self.max_caption_frames = int(math.ceil(fps))

    def total_frames(self, duration_in_seconds: float) -> int:
        return seconds_to_frames(duration_in_seconds, self.fps)

    def build(self, captions: Sequence[Caption], total_frames: int) -> List[TimelineEntry]:
        """
        Args:
            captions: Captions ordered by start time.
            total_frames: Length of the audio in frames.

        Returns:
            Frame-disjoint entries, none ending past ``total_frames``.
        """
        start_frames = [seconds_to_frames(caption.start_in_seconds, self.fps) for caption in captions]
        entries = []
        last_end = 0
        for index, caption in enumerate(captions):
            start_frame = start_frames[index]
            if start_frame < last_end:
                logger.warning(f"Caption {caption.text!r} at frame {start_frame} starts inside the previous caption, dropped")
                continue
            candidates = [start_frame + self.max_caption_frames, total_frames]
            if index + 1 < len(captions):
                candidates.append(start_frames[index + 1])
            duration = min(candidates) - start_frame
            if duration <= 0:
                logger.debug(f"Dropping caption {caption.text!r} at frame {start_frame}: no frames left")
                continue
            entries.append(TimelineEntry(caption=caption, start_frame=start_frame, duration_frames=duration))
            last_end = start_frame + duration
        return entries

    def build_for_duration(self, captions: Sequence[Caption], duration_in_seconds: float) -> List[TimelineEntry]:
        return self.build(captions, self.total_frames(duration_in_seconds))
