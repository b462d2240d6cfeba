"""Render-time resolution of captions into a timeline."""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .duration import DurationResolver
from .exceptions import ArtifactNotFoundError, RenderCancelledError
from .models import AUDIO_EXTENSIONS, TimelineEntry, TranscriptArtifact
from .notifier import ChangeNotifier, Subscription
from .scanner import AssetScanner
from .timeline import TimelineBuilder
from .transcript_store import TranscriptStore
from .utils import artifact_path_for

logger = logging.getLogger(__name__)

DEFAULT_FPS = 30
NO_CAPTIONS_MESSAGE = "No caption file found. Run the transcription pipeline for this audio first."

class RenderHandle:
    """
    Blocks a render until its inputs are resolved.

    Exactly one of ``continue_render`` or ``cancel_render`` must be called.
    ``wait`` returns after the former and raises RenderCancelledError after
    the latter.
    """

    def __init__(self, label: str = ''):
        self.label = label
        self._future = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self._future.done()

    def continue_render(self) -> None:
        if self._future.done():
            raise RuntimeError(f"Render handle {self.label!r} already resolved")
        self._future.set_result(None)

    def cancel_render(self, error: BaseException) -> None:
        if self._future.done():
            raise RuntimeError(f"Render handle {self.label!r} already resolved")
        cancelled = RenderCancelledError(error)
        cancelled.__cause__ = error
        self._future.set_exception(cancelled)

    async def wait(self) -> None:
        await self._future

@dataclass
class RenderResult:
    """What the renderer draws for one pass."""
    timeline: List[TimelineEntry] = field(default_factory=list)
    total_frames: int = 0
    fps: float = DEFAULT_FPS
    no_captions: bool = False
    artifact: Optional[TranscriptArtifact] = None

class RenderSession:
    """
    Keeps the timeline for one audio selection up to date.

    The session watches the caption artifact next to the selected audio and
    rebuilds the whole timeline whenever that file changes. It holds at most
    one live subscription; switching audio or closing the session tears it
    down.
    """

    def __init__(
        self,
        audio_src: str,
        store: Optional[TranscriptStore] = None,
        duration_resolver: Optional[DurationResolver] = None,
        notifier: Optional[ChangeNotifier] = None,
        fps: float = DEFAULT_FPS,
        artifact_suffix: str = '.json',
        on_update: Optional[Callable[[RenderResult], None]] = None,
        on_error: Optional[Callable[[RenderCancelledError], None]] = None,
    ):
        self.audio_src = audio_src
        self.store = store or TranscriptStore()
        self.duration_resolver = duration_resolver or DurationResolver()
        self.notifier = notifier
        self.builder = TimelineBuilder(fps)
        self.artifact_suffix = artifact_suffix
        self.on_update = on_update
        self.on_error = on_error
        self.current: Optional[RenderResult] = None
        self._subscription: Optional[Subscription] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.handle: Optional[RenderHandle] = None

    @classmethod
    def from_config(
        cls,
        audio_src: str,
        config: dict,
        notifier: Optional[ChangeNotifier] = None,
        **kwargs,
    ) -> "RenderSession":
        """Builds a session using the frame rate, ffprobe binary and artifact suffix from ``config``."""
        return cls(
            audio_src,
            duration_resolver=DurationResolver(ffprobe_path=config.get('ffprobe_path')),
            notifier=notifier,
            fps=config.get('fps', DEFAULT_FPS),
            artifact_suffix=config.get('artifact_suffix', '.json'),
            **kwargs,
        )

    @property
    def artifact_path(self) -> str:
        return artifact_path_for(self.audio_src, self.artifact_suffix)

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    async def _load_artifact(self) -> Optional[TranscriptArtifact]:
        try:
            return await asyncio.to_thread(self.store.read, self.artifact_path)
        except ArtifactNotFoundError:
            logger.info(f"No caption artifact for {self.audio_src} at {self.artifact_path}")
            return None

    async def resolve(self) -> RenderResult:
        """
        Runs one read-and-rebuild pass.

        Raises:
            RenderCancelledError: If the duration or the artifact could not be
                                  resolved. No partial timeline is produced.
        """
        handle = RenderHandle(f"captions for {self.audio_src}")
        self.handle = handle
        result = None
        try:
            duration, artifact = await asyncio.gather(
                self.duration_resolver.resolve(self.audio_src),
                self._load_artifact(),
            )
            total_frames = self.builder.total_frames(duration)
            if artifact is None:
                result = RenderResult(total_frames=total_frames, fps=self.builder.fps, no_captions=True)
            else:
                result = RenderResult(
                    timeline=self.builder.build(artifact.transcription, total_frames),
                    total_frames=total_frames,
                    fps=self.builder.fps,
                    artifact=artifact,
                )
            handle.continue_render()
        except Exception as e:
            logger.error(f"Render cancelled for {self.audio_src}: {e}")
            handle.cancel_render(e)

        await handle.wait()
        self.current = result
        return result

    def _subscribe(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self.notifier is None:
            return
        if '://' in self.audio_src or not os.path.isdir(os.path.dirname(os.path.abspath(self.artifact_path))):
            logger.info(f"Not watching {self.artifact_path}: not a local directory")
            return
        self._subscription = self.notifier.subscribe(self.artifact_path, self._on_artifact_changed)

    def _on_artifact_changed(self, path: str) -> None:
        # Runs on the observer thread
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self.refresh)

    def refresh(self) -> asyncio.Task:
        """Schedules a rebuild, replacing one that is still running."""
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = asyncio.get_running_loop().create_task(self._refresh())
        return self._refresh_task

    async def _refresh(self) -> None:
        logger.info(f"Caption artifact changed, rebuilding timeline: {self.artifact_path}")
        try:
            result = await self.resolve()
        except RenderCancelledError as e:
            if self.on_error is not None:
                self.on_error(e)
            return
        if self.on_update is not None:
            self.on_update(result)

    async def start(self) -> RenderResult:
        """Subscribes to the artifact and resolves the first timeline."""
        self._loop = asyncio.get_running_loop()
        self._subscribe()
        return await self.resolve()

    async def select_audio(self, audio_src: str) -> RenderResult:
        """Switches the session to another audio source."""
        self._cancel_refresh()
        self.audio_src = audio_src
        self.current = None
        self._subscribe()
        return await self.resolve()

    def _cancel_refresh(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = None

    async def close(self) -> None:
        self._cancel_refresh()
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._loop = None

    async def __aenter__(self) -> "RenderSession":
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

async def calculate_metadata(
    audio_src: str,
    duration_resolver: Optional[DurationResolver] = None,
    fps: float = DEFAULT_FPS,
) -> Dict[str, float]:
    """Composition size for an audio source: its frame rate and length in frames."""
    resolver = duration_resolver or DurationResolver()
    duration = await resolver.resolve(audio_src)
    return {'fps': fps, 'durationInFrames': TimelineBuilder(fps).total_frames(duration)}

def list_audio_sources(root: str) -> List[str]:
    """Audio files under ``root`` that a session can be pointed at."""
    scanner = AssetScanner(supported_extensions=AUDIO_EXTENSIONS)
    return [asset.path for asset in scanner.scan(root, skip_transcribed=False)]
