import logging
import threading
import time
from collections import OrderedDict

import musicbrainzngs

from config.settings import MUSICBRAINZ_DEBUG, MUSICBRAINZ_SEARCH_LIMIT, MUSICBRAINZ_USER_AGENT


logger = logging.getLogger(__name__)

_DEFAULT_MAX_CACHE_ENTRIES = 512
_DEFAULT_CACHE_TTL_SECONDS = 6 * 60 * 60
_DEFAULT_MIN_INTERVAL_SECONDS = 1.0
_RECORDING_TTL_SECONDS = 7 * 24 * 60 * 60


class _TTLCache:
    def __init__(self, *, max_entries=_DEFAULT_MAX_CACHE_ENTRIES, ttl_seconds=_DEFAULT_CACHE_TTL_SECONDS):
        self.max_entries = int(max_entries)
        self.ttl_seconds = int(ttl_seconds)
        self._lock = threading.Lock()
        self._entries = OrderedDict()

    def get(self, key):
        now = time.time()
        with self._lock:
            value = self._entries.get(key)
            if not value:
                return None
            expires_at, payload = value
            if expires_at < now:
                self._entries.pop(key, None)
                return None
            self._entries.move_to_end(key)
            return payload

    def set(self, key, payload, *, ttl_seconds=None):
        ttl = self.ttl_seconds if ttl_seconds is None else max(1, int(ttl_seconds))
        expires_at = time.time() + ttl
        with self._lock:
            self._entries[key] = (expires_at, payload)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)


class MusicBrainzService:
    def __init__(self, *, debug=None, search_limit=None):
        self._init_lock = threading.Lock()
        self._initialized = False
        self._cache = _TTLCache()
        self._request_lock = threading.Lock()
        self._last_request_ts = 0.0
        self._debug = MUSICBRAINZ_DEBUG if debug is None else bool(debug)
        self.search_limit = int(search_limit or MUSICBRAINZ_SEARCH_LIMIT)
        self._metrics_lock = threading.Lock()
        self._metrics = {
            "total_requests": 0,
            "cache_hits": 0,
            "cache_misses": 0,
            "retries": 0,
        }

    def _debug_log(self, message, *args):
        if self._debug:
            logger.debug(message, *args)

    def _inc_metric(self, key, amount=1):
        with self._metrics_lock:
            self._metrics[key] = int(self._metrics.get(key, 0)) + int(amount)

    def _respect_rate_limit(self):
        with self._request_lock:
            now = time.monotonic()
            wait_for = _DEFAULT_MIN_INTERVAL_SECONDS - (now - self._last_request_ts)
            if wait_for > 0:
                self._debug_log("[MUSICBRAINZ] rate-limit sleep %.3fs", wait_for)
                time.sleep(wait_for)
            self._last_request_ts = time.monotonic()

    def _ensure_initialized(self):
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            logging.getLogger("musicbrainzngs").setLevel(logging.WARNING)
            app, _, rest = MUSICBRAINZ_USER_AGENT.partition("/")
            version, _, contact = rest.partition(" ")
            musicbrainzngs.set_useragent(app or "station-reports", version or "1.0", contact.strip("(+) ") or None)
            musicbrainzngs.set_rate_limit(1.0, 1)
            self._initialized = True

    def _call_with_retry(self, fn, *, attempts=3, base_delay=0.3):
        self._ensure_initialized()
        last_error = None
        for attempt in range(1, attempts + 1):
            try:
                self._respect_rate_limit()
                self._inc_metric("total_requests")
                return fn()
            except musicbrainzngs.ResponseError:
                # 4xx from the web service; retrying will not help.
                raise
            except Exception as exc:
                last_error = exc
                if attempt >= attempts:
                    break
                self._inc_metric("retries")
                delay = base_delay * (2 ** (attempt - 1))
                self._debug_log("[MUSICBRAINZ] retry attempt=%s delay=%.3fs error=%s", attempt, delay, exc)
                time.sleep(delay)
        if last_error:
            raise last_error
        return None

    def _cached(self, key):
        cached = self._cache.get(key)
        if cached is not None:
            self._inc_metric("cache_hits")
            self._debug_log("[MUSICBRAINZ] cache hit key=%s", key)
        else:
            self._inc_metric("cache_misses")
            self._debug_log("[MUSICBRAINZ] cache miss key=%s", key)
        return cached

    def get_metrics(self):
        with self._metrics_lock:
            return dict(self._metrics)

    def search_recordings(self, artist, title, *, album=None, limit=None):
        limit = int(limit or self.search_limit)
        key = f"search_recordings:{artist}|{title}|{album or ''}|{limit}"
        cached = self._cached(key)
        if cached is not None:
            return cached

        query = {"recording": title}
        if artist:
            query["artist"] = artist
        if album:
            query["release"] = album

        payload = self._call_with_retry(
            lambda: musicbrainzngs.search_recordings(limit=limit, **query)
        )
        self._cache.set(key, payload)
        return payload

    def get_recording(self, recording_id, *, includes=None):
        rid = str(recording_id or "").strip()
        if not rid:
            return None
        includes_tuple = tuple(includes or ())
        key = f"get_recording:{rid}|{','.join(includes_tuple)}"
        cached = self._cached(key)
        if cached is not None:
            return cached

        payload = self._call_with_retry(
            lambda: musicbrainzngs.get_recording_by_id(
                rid,
                includes=list(includes_tuple) if includes_tuple else [],
            )
        )
        self._cache.set(key, payload, ttl_seconds=_RECORDING_TTL_SECONDS)
        return payload

    def find_recordings_for_song(self, song, includes=("isrcs",)):
        """Yield candidate recordings for a song, best match first.

        Each candidate is a dict with ``id``, ``title``, ``score`` and, when
        ``isrcs`` is requested, an ``isrcs`` list. Recording lookups for ISRCs
        missing from search results only happen as the caller iterates.
        """
        title = str(getattr(song, "title", None) or "").strip()
        if not title:
            return
        artist = str(getattr(song, "artist", None) or "").strip() or None
        album = str(getattr(song, "album", None) or "").strip() or None
        includes = tuple(includes or ())

        payload = self.search_recordings(artist, title, album=album)
        recordings = payload.get("recording-list", []) if isinstance(payload, dict) else []
        logger.info(
            "[MUSICBRAINZ] recordings_found=%s artist=%s title=%s album=%s",
            len(recordings),
            artist,
            title,
            album,
        )
        for recording in recordings:
            if not isinstance(recording, dict):
                continue
            candidate = {
                "id": recording.get("id"),
                "title": recording.get("title"),
                "score": recording.get("ext:score"),
            }
            if "isrcs" in includes:
                isrcs = recording.get("isrc-list")
                if isrcs is None and candidate["id"]:
                    detail = self.get_recording(candidate["id"], includes=["isrcs"])
                    detail_recording = detail.get("recording", {}) if isinstance(detail, dict) else {}
                    isrcs = detail_recording.get("isrc-list") if isinstance(detail_recording, dict) else None
                candidate["isrcs"] = [str(code) for code in (isrcs or []) if code]
            yield candidate


_MUSICBRAINZ_SERVICE = None
_MUSICBRAINZ_SERVICE_LOCK = threading.Lock()


def get_musicbrainz_service():
    global _MUSICBRAINZ_SERVICE
    if _MUSICBRAINZ_SERVICE is not None:
        return _MUSICBRAINZ_SERVICE
    with _MUSICBRAINZ_SERVICE_LOCK:
        if _MUSICBRAINZ_SERVICE is None:
            _MUSICBRAINZ_SERVICE = MusicBrainzService()
    return _MUSICBRAINZ_SERVICE
