"""Data models for extracted image assets."""

from pydantic import BaseModel


class AssetRecord(BaseModel):
    """One physical image file written for a volume."""

    asset_id: str
    manifest_id: str
    href: str
    filename: str
    local_path: str
    media_type: str
    is_cover: bool = False

    @property
    def uri(self) -> str:
        """File URI used when rewriting chapter markup."""
        return f"file://{self.local_path}"
