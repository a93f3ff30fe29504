from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any


class AlbumRequest(BaseModel):
    """Inbound body for POST /photo-album"""
    model_config = ConfigDict(populate_by_name=True)

    album_url: str = Field(alias="albumUrl", min_length=1, strict=True)


class MediaItem(BaseModel):
    """One resolved photo or video"""
    model_config = ConfigDict(populate_by_name=True)

    url: str
    is_video: bool = Field(alias="isVideo")
    thumbnail: Optional[str] = None  # Only set for videos


class AlbumResponse(BaseModel):
    """Response model for a resolved album, also what gets cached"""
    photos: List[MediaItem]

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class Derivative(BaseModel):
    """One quality variant of an asset in the webstream response"""
    model_config = ConfigDict(extra="ignore")

    checksum: Optional[str] = None


class StreamAsset(BaseModel):
    """One photo entry of the webstream response"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    photo_guid: Optional[str] = Field(default=None, alias="photoGuid")
    derivatives: Dict[str, Optional[Derivative]] = {}
    media_type: Optional[str] = Field(default=None, alias="mediaAssetType")


class DerivativeChoice(BaseModel):
    """The derivative picked for one asset"""
    key: str
    checksum: str


class AssetUrlEntry(BaseModel):
    """One entry of the webasseturls items map, keyed by checksum upstream"""
    model_config = ConfigDict(extra="ignore")

    url_scheme: Optional[str] = None
    url_location: Optional[str] = None
    url_path: Optional[str] = None

    def build_url(self) -> Optional[str]:
        """Join scheme, host and path, or None when host or path is missing"""
        if not self.url_location or not self.url_path:
            return None
        scheme = self.url_scheme or "https"
        return f"{scheme}://{self.url_location}{self.url_path}"


class StreamResponse(BaseModel):
    """Model for the webstream response; photos are validated one by one"""
    model_config = ConfigDict(extra="ignore")

    photos: Optional[List[Any]] = None


class AssetUrlsResponse(BaseModel):
    """Model for the webasseturls response; items are validated lazily per checksum"""
    model_config = ConfigDict(extra="ignore")

    items: Optional[Dict[str, Any]] = None
