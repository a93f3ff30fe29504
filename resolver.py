import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from pydantic import ValidationError

from cache import AlbumCache
from errors import NoPhotosFoundError, NoValidDerivativesError, NoValidMediaUrlsError, UpstreamError
from icloud_client import SharedStreamsClient
from models import (
    AlbumResponse,
    AssetUrlEntry,
    AssetUrlsResponse,
    Derivative,
    DerivativeChoice,
    MediaItem,
    StreamAsset,
    StreamResponse,
)


logger = logging.getLogger(__name__)

DEFAULT_ALBUM_ID = "B2EJtdOXm2MG2Rb"
DEFAULT_PREFERRED_DERIVATIVES = ("PosterFrame",)
POSTER_FRAME_KEY = "PosterFrame"
VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".mkv", ".webm", ".m4v")

_HASH_ID = re.compile(r"#([^?/]+)")
_LAST_SEGMENT = re.compile(r"/([^/]+)/?$")
_NUMERIC_PREFIX = re.compile(r"\s*([+-]?[0-9]{1,18})")


def extract_album_id(album_url: Optional[str], default: str = DEFAULT_ALBUM_ID) -> str:
    """Pull the album id out of a share URL (icloud.com/sharedalbum/#ID), or the last path segment"""
    if not album_url:
        return default

    match = _HASH_ID.search(album_url)
    if match:
        return match.group(1)

    match = _LAST_SEGMENT.search(album_url)
    if match:
        return match.group(1)

    return default


def _checksum_of(record: Any) -> Optional[str]:
    if isinstance(record, Derivative):
        return record.checksum or None
    if isinstance(record, Mapping):
        checksum = record.get("checksum")
        return checksum if isinstance(checksum, str) and checksum else None
    return None


def select_best_derivative(
    derivatives: Optional[Mapping[str, Any]],
    preferred_names: Sequence[str] = DEFAULT_PREFERRED_DERIVATIVES,
) -> Optional[DerivativeChoice]:
    """Pick the best quality derivative of one asset.

    Keys starting with digits are pixel widths (e.g. '342', '2049', '720p') and
    the largest wins. Any numeric key beats any named one; named keys follow
    ``preferred_names`` order, and whatever is left is ordered alphabetically.
    """
    if not derivatives:
        return None

    def rank(key: str) -> tuple:
        numeric = _NUMERIC_PREFIX.match(key)
        if numeric:
            return (0, -int(numeric.group(1)), key)
        try:
            position = list(preferred_names).index(key)
        except ValueError:
            position = len(preferred_names)
        return (1, position, key)

    candidates = {}
    for key, record in derivatives.items():
        checksum = _checksum_of(record)
        if checksum:
            candidates[key] = checksum

    if not candidates:
        return None

    best_key = min(candidates, key=rank)
    return DerivativeChoice(key=best_key, checksum=candidates[best_key])


def is_video_url(url: str) -> bool:
    path = urlsplit(url).path.lower()
    return path.endswith(VIDEO_EXTENSIONS)


class AlbumResolver:
    """Resolves a shared album URL into direct media URLs, with caching"""

    def __init__(
        self,
        cache: AlbumCache,
        client: SharedStreamsClient,
        default_album_id: str = DEFAULT_ALBUM_ID,
        preferred_derivatives: Sequence[str] = DEFAULT_PREFERRED_DERIVATIVES,
        poster_frame_key: str = POSTER_FRAME_KEY,
    ):
        self.cache = cache
        self.client = client
        self.default_album_id = default_album_id
        self.preferred_derivatives = tuple(preferred_derivatives)
        self.poster_frame_key = poster_frame_key

    async def resolve(self, album_url: Optional[str]) -> AlbumResponse:
        """Run the two-call resolution for an album, serving from cache when possible"""
        album_id = extract_album_id(album_url, self.default_album_id)

        cached = self.cache.get(album_id)
        if cached is not None:
            logger.info("Serving album from cache: %s", album_id)
            return cached

        logger.info("Fetching album: %s", album_id)

        # 1. The stream: photo guids and their derivative checksums
        stream_data = await self.client.get_stream(album_id)
        assets = self._parse_stream(stream_data)
        logger.info("Stream data received, photos count: %d", len(assets))

        # 2. Best derivative per asset
        selected = self._select_derivatives(assets)
        if not selected:
            logger.warning("No valid photos found for album %s", album_id)
            raise NoValidDerivativesError()

        # 3. Download locations for the surviving guids, in one batch
        asset_data = await self.client.get_asset_urls(
            album_id, [asset.photo_guid for asset, _ in selected]
        )
        items = self._parse_asset_items(asset_data)
        logger.info("Asset data received, items count: %d", len(items))

        # 4. Checksum -> URL, video detection, thumbnails
        media_items = []
        for asset, choice in selected:
            media_item = self._build_media_item(asset, choice, items)
            if media_item is not None:
                media_items.append(media_item)

        if not media_items:
            logger.error("No valid media URLs found for album %s", album_id)
            raise NoValidMediaUrlsError()

        video_count = sum(1 for item in media_items if item.is_video)
        logger.info(
            "Media items built: %d (photos: %d, videos: %d)",
            len(media_items),
            len(media_items) - video_count,
            video_count,
        )

        response = AlbumResponse(photos=media_items)
        self.cache.set(album_id, response)
        return response

    def _parse_stream(self, stream_data: Dict[str, Any]) -> List[StreamAsset]:
        try:
            stream = StreamResponse.model_validate(stream_data)
        except ValidationError as e:
            logger.error("Malformed webstream response: %s", e)
            raise UpstreamError() from e

        if not stream.photos:
            logger.warning("No photos in stream data")
            raise NoPhotosFoundError()

        assets = []
        for raw in stream.photos:
            try:
                assets.append(StreamAsset.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping malformed stream photo: %r", raw)
        return assets

    def _select_derivatives(
        self, assets: List[StreamAsset]
    ) -> List[Tuple[StreamAsset, DerivativeChoice]]:
        """Pair each usable asset with its chosen derivative, in stream order"""
        selected: List[Tuple[StreamAsset, DerivativeChoice]] = []
        seen = set()
        for asset in assets:
            if not asset.photo_guid or not asset.derivatives or asset.photo_guid in seen:
                continue
            best = select_best_derivative(asset.derivatives, self.preferred_derivatives)
            if best is None:
                logger.warning(
                    "No suitable derivative found for guid %s, available: %s, type: %s",
                    asset.photo_guid,
                    list(asset.derivatives),
                    asset.media_type or "unknown",
                )
                continue
            seen.add(asset.photo_guid)
            selected.append((asset, best))
        return selected

    def _parse_asset_items(self, asset_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            asset_urls = AssetUrlsResponse.model_validate(asset_data)
        except ValidationError as e:
            logger.error("Malformed webasseturls response: %s", e)
            raise UpstreamError() from e
        return asset_urls.items or {}

    def _resolve_checksum(self, checksum: Optional[str], items: Dict[str, Any]) -> Optional[str]:
        if not checksum or checksum not in items:
            return None
        try:
            entry = AssetUrlEntry.model_validate(items[checksum])
        except ValidationError:
            return None
        return entry.build_url()

    def _thumbnail_strategies(
        self, asset: StreamAsset, items: Dict[str, Any], video_url: str
    ) -> List[Callable[[], Optional[str]]]:
        """Thumbnail sources for a video, in order of preference"""
        poster = asset.derivatives.get(self.poster_frame_key)
        return [
            lambda: self._resolve_checksum(_checksum_of(poster), items),
            lambda: video_url,
        ]

    def _build_media_item(
        self, asset: StreamAsset, choice: DerivativeChoice, items: Dict[str, Any]
    ) -> Optional[MediaItem]:
        url = self._resolve_checksum(choice.checksum, items)
        if url is None:
            logger.warning("No asset URL for guid %s (checksum %s)", asset.photo_guid, choice.checksum)
            return None

        try:
            is_video = is_video_url(url)
        except ValueError:
            logger.warning("Unparsable asset URL for guid %s: %s", asset.photo_guid, url)
            return None

        thumbnail = None
        if is_video:
            for strategy in self._thumbnail_strategies(asset, items, url):
                thumbnail = strategy()
                if thumbnail:
                    break

        return MediaItem(url=url, is_video=is_video, thumbnail=thumbnail)
