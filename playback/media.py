"""
Media sink and URL rewriting collaborators.

A MediaSink plays one url at a time and reports "ended", "error" and
"time_update" (position, duration) events. MediaRouter hands segmented
stream urls (m3u8) to a stream-assembling sink and everything else to a
direct-play sink, and forwards the events of both as its own.
"""

from abc import ABC, abstractmethod
from typing import Optional

import requests

from playback.constants import SEGMENTED_STREAM_TOKENS
from playback.events import EventEmitter
from playback.models import MediaType
from util.constants import HTTP_TIMEOUT_SECONDS, HTTP_USER_AGENT, PROXY_ENDPOINT
from util.errors import PlaybackMediaError
from util.logging_util import setup_logger

logger = setup_logger(__name__)

SINK_EVENTS = ("ended", "error", "time_update")


def is_segmented_stream(url: str) -> bool:
    """True for urls that need a stream-assembling (HLS) sink."""
    lowered = url.lower()
    return any(token in lowered for token in SEGMENTED_STREAM_TOKENS)


def media_type_for(url: str) -> MediaType:
    return MediaType.HLS if is_segmented_stream(url) else MediaType.DIRECT


class MediaSink(EventEmitter, ABC):
    """Something that can play a url. Implementations live with the UI."""

    @abstractmethod
    def load(self, url: str, media_type: MediaType):
        """Start playing a url. May raise PlaybackMediaError."""

    @abstractmethod
    def play(self):
        pass

    @abstractmethod
    def pause(self):
        pass

    @abstractmethod
    def seek(self, position: float):
        pass

    @abstractmethod
    def set_volume(self, volume: float):
        pass

    @abstractmethod
    def stop(self):
        pass


class MediaRouter(EventEmitter):
    """Routes urls to the stream or direct sink and keeps track of the active one."""

    def __init__(self, stream_sink: MediaSink, direct_sink: MediaSink):
        super().__init__()
        self.stream_sink = stream_sink
        self.direct_sink = direct_sink
        self.active: Optional[MediaSink] = None
        self._sinks = [stream_sink] if stream_sink is direct_sink else [stream_sink, direct_sink]
        for sink in self._sinks:
            for event in SINK_EVENTS:
                sink.on(event, self._forwarder(sink, event))

    def _forwarder(self, sink: MediaSink, event: str):
        def forward(*args, **kwargs):
            # Late events from a sink we already switched away from are stale
            if sink is not self.active:
                logger.debug(f"Ignoring '{event}' from inactive sink")
                return
            self.emit(event, *args, **kwargs)
        return forward

    def load(self, url: str) -> MediaType:
        """Stop whatever is playing and hand the url to the matching sink."""
        media_type = media_type_for(url)
        sink = self.stream_sink if media_type == MediaType.HLS else self.direct_sink
        if self.active is not None:
            self.active.stop()
        self.active = sink
        logger.info(f"Dispatching {media_type.value} url to sink: {url}")
        sink.load(url, media_type)
        return media_type

    def play(self):
        if self.active is not None:
            self.active.play()

    def pause(self):
        if self.active is not None:
            self.active.pause()

    def seek(self, position: float):
        if self.active is not None:
            self.active.seek(position)

    def set_volume(self, volume: float):
        for sink in self._sinks:
            sink.set_volume(volume)

    def stop(self):
        if self.active is not None:
            self.active.stop()
        self.active = None


class UrlResolver(ABC):
    """Rewrites a play url, e.g. through a proxy. Best effort."""

    @abstractmethod
    def resolve(self, url: str) -> str:
        pass


class HttpUrlResolver(UrlResolver):
    """Asks a proxy endpoint for a rewritten url ({"proxy_url": ...})."""

    def __init__(self, endpoint: str = PROXY_ENDPOINT, session: Optional[requests.Session] = None,
                 timeout: float = HTTP_TIMEOUT_SECONDS):
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": HTTP_USER_AGENT})
        self.timeout = timeout

    def resolve(self, url: str) -> str:
        if not self.endpoint:
            raise PlaybackMediaError("No proxy endpoint configured", url=url)
        try:
            resp = self.session.get(self.endpoint, params={"url": url}, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise PlaybackMediaError(f"Proxy resolution failed: {e}", url=url) from e

        proxy_url = data.get("proxy_url") if isinstance(data, dict) else None
        if not proxy_url:
            raise PlaybackMediaError("Proxy returned no url", url=url)
        return proxy_url
