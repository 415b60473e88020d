"""
Discovery-to-playback orchestrator.

Asks the sampler for new content, feeds the playlist to the playback state
machine and asks again whenever a session runs out of episodes. Sampling
and the display step run in worker threads; only the most recent request is
ever displayed.

Emits (in addition to forwarding the state machine's events):
    content_changed(record, session)
    discovery_failed(error, retry_in)   retry_in is None when no retry follows
    discovery_gave_up(error)
"""

import asyncio
from typing import Awaitable, Callable, Optional

from discovery.models import RawContentRecord
from discovery.sampler import RandomSampler
from playback.constants import (
    EXHAUSTED_REFRESH_DELAY_SECONDS,
    MAX_DISCOVERY_RETRIES,
    RETRY_BACKOFF_FACTOR,
    RETRY_BASE_DELAY_SECONDS,
    RETRY_MAX_DELAY_SECONDS,
)
from playback.events import EventEmitter
from playback.models import PlaybackSession, PlayerSettings, PlayMode
from playback.session import PlaybackStateMachine
from util.errors import ContentExhausted, UnknownSourceError
from util.logging_util import setup_logger

logger = setup_logger(__name__)

FORWARDED_EVENTS = ("episodes_changed", "session_state_changed", "exhausted")


def retry_delay(retry_number: int,
                base: float = RETRY_BASE_DELAY_SECONDS,
                factor: float = RETRY_BACKOFF_FACTOR,
                maximum: float = RETRY_MAX_DELAY_SECONDS) -> float:
    """Delay before the n-th (1-based) retry of a failed discovery."""
    return min(maximum, base * factor ** (retry_number - 1))


class DiscoveryOrchestrator(EventEmitter):
    """
    Composes the sampler and the playback state machine.

    Args:
        sampler: Produces RawContentRecords for a source id.
        machine: The playback state machine owning the active session.
        settings_store: Optional object with load() and save(settings).
        max_retries: Retries after ContentExhausted before giving up.
        base_delay: Delay before the first retry, doubled per retry.
        exhausted_delay: Delay before new content once a session is exhausted.
        sleep: Awaitable sleep, replaceable in tests.
    """

    def __init__(
        self,
        sampler: RandomSampler,
        machine: PlaybackStateMachine,
        settings_store=None,
        max_retries: int = MAX_DISCOVERY_RETRIES,
        base_delay: float = RETRY_BASE_DELAY_SECONDS,
        exhausted_delay: float = EXHAUSTED_REFRESH_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        super().__init__()
        self.sampler = sampler
        self.machine = machine
        self.settings_store = settings_store
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.exhausted_delay = exhausted_delay
        self._sleep = sleep

        self.settings = self._load_settings()
        self.machine.set_play_mode(self.settings.play_mode)
        self.machine.auto_next = self.settings.auto_next
        self.machine.set_volume(self.settings.volume)

        self.current_record: Optional[RawContentRecord] = None
        self.source_id: Optional[int] = None
        self.category: Optional[str] = None
        self.gave_up = False

        self._request_token = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Optional[asyncio.Task] = None

        for event in FORWARDED_EVENTS:
            self.machine.on(event, self._forwarder(event))
        self.machine.on("exhausted", self._on_session_exhausted)

    def _forwarder(self, event: str):
        def forward(*args, **kwargs):
            self.emit(event, *args, **kwargs)
        return forward

    @property
    def session(self) -> Optional[PlaybackSession]:
        return self.machine.session

    # Discovery

    async def request_new_content(self, source_id: int, category: Optional[str] = None) -> Optional[PlaybackSession]:
        """
        Explicit "get new content" request. Supersedes any request in flight
        and any pending retry.

        Returns:
            The new session, or None if the request was superseded or failed.
        """
        self._cancel_pending()
        self.gave_up = False
        return await self._discover(source_id, category, retry_number=0)

    async def _discover(self, source_id: int, category: Optional[str], retry_number: int) -> Optional[PlaybackSession]:
        self._loop = asyncio.get_running_loop()
        self._request_token += 1
        token = self._request_token
        self.source_id = source_id
        self.category = category

        try:
            record = await asyncio.to_thread(self.sampler.sample_source_by_id, source_id, category)
        except ContentExhausted as e:
            if token != self._request_token:
                logger.info(f"Discarding stale failure of request {token}")
                return None
            self._handle_exhausted_discovery(e, source_id, category, retry_number)
            return None
        except UnknownSourceError as e:
            if token == self._request_token:
                logger.error(str(e))
                self.emit("discovery_failed", e, None)
            return None

        if token != self._request_token:
            logger.info(f"Discarding stale result '{record.title}' of request {token}")
            return None

        return await self._display(record, token)

    async def _display(self, record: RawContentRecord, token: int) -> Optional[PlaybackSession]:
        session = PlaybackSession(
            source_id=record.source_id if record.source_id is not None else self.source_id,
            content_id=record.content_id,
            title=record.title,
        )
        logger.info(f"Displaying '{record.title}' ({record.content_id}) from source {session.source_id}")
        # Proxy resolution happens while starting the first url. The token is
        # checked again under the machine lock so a newer request always wins.
        displayed = await asyncio.to_thread(
            self.machine.display_content, session, record.play_url,
            lambda: token == self._request_token,
        )
        if displayed is None:
            return None
        self.current_record = record
        self.emit("content_changed", record, session)
        return session

    def _handle_exhausted_discovery(self, error: ContentExhausted, source_id: int,
                                    category: Optional[str], retry_number: int):
        next_retry = retry_number + 1
        if next_retry > self.max_retries:
            logger.error(f"Giving up on source {source_id} after {retry_number} retries")
            self.gave_up = True
            self.emit("discovery_failed", error, None)
            self.emit("discovery_gave_up", error)
            return

        delay = retry_delay(next_retry, base=self.base_delay)
        logger.warning(f"{error}; retry {next_retry}/{self.max_retries} in {delay:.1f}s")
        self.emit("discovery_failed", error, delay)
        self._pending = asyncio.ensure_future(
            self._retry_later(source_id, category, next_retry, delay, self._request_token)
        )

    async def _retry_later(self, source_id: int, category: Optional[str], retry_number: int,
                           delay: float, token: int) -> Optional[PlaybackSession]:
        await self._sleep(delay)
        if token != self._request_token:
            return None
        return await self._discover(source_id, category, retry_number)

    def _cancel_pending(self):
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def wait_pending(self):
        """Wait for a scheduled retry or refresh to settle (used by callers that drive the loop)."""
        while self._pending is not None and not self._pending.done():
            try:
                await self._pending
            except asyncio.CancelledError:
                return

    def _on_session_exhausted(self, session: PlaybackSession):
        if self._loop is None or self.source_id is None:
            logger.warning("Session exhausted but no discovery loop to refresh from")
            return
        logger.info(f"Session exhausted, new content in {self.exhausted_delay:.1f}s")
        source_id, category = self.source_id, self.category

        def schedule():
            self._cancel_pending()
            self._pending = asyncio.ensure_future(self._refresh_after_exhausted(source_id, category))

        self._loop.call_soon_threadsafe(schedule)

    async def _refresh_after_exhausted(self, source_id: int, category: Optional[str]):
        token = self._request_token
        await self._sleep(self.exhausted_delay)
        if token != self._request_token:
            return None
        return await self._discover(source_id, category, retry_number=0)

    # Pass-through controls
    # Anything that starts a url may resolve it over the network, so it runs
    # in a worker thread.

    async def select_episode(self, index: int) -> bool:
        return await asyncio.to_thread(self.machine.select_episode, index)

    async def select_source(self, index: int) -> bool:
        return await asyncio.to_thread(self.machine.select_source, index)

    async def recover(self) -> bool:
        """Retry the current source of a failed session."""
        return await asyncio.to_thread(self.machine.recover)

    def pause(self) -> bool:
        return self.machine.pause()

    def resume(self) -> bool:
        return self.machine.resume()

    def seek(self, position: float):
        self.machine.seek(position)

    def set_volume(self, volume: float):
        self.settings.volume = self.machine.set_volume(volume)
        self._save_settings()

    def set_play_mode(self, mode: PlayMode):
        self.machine.set_play_mode(mode)
        self.settings.play_mode = mode
        self._save_settings()
        logger.info(f"Play mode set to {mode.value}")

    def set_auto_next(self, enabled: bool):
        self.machine.auto_next = enabled
        self.settings.auto_next = enabled
        self._save_settings()

    # Settings

    def _load_settings(self) -> PlayerSettings:
        if self.settings_store is None:
            return PlayerSettings()
        try:
            return self.settings_store.load()
        except Exception as e:
            logger.warning(f"Could not load player settings, using defaults: {e}")
            return PlayerSettings()

    def _save_settings(self):
        if self.settings_store is None:
            return
        try:
            self.settings_store.save(self.settings)
        except Exception as e:
            logger.warning(f"Could not save player settings: {e}")
