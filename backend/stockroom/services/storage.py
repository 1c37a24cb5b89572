# Overview: Filesystem blob storage for uploaded media, served under MEDIA_URL_PREFIX.

from __future__ import annotations

from pathlib import Path

from flask import current_app


EXTENSION_KEY = "stockroom.media"


class LocalBlobStorage:
    """
    Stores blobs as files under root. Keys are relative POSIX paths such as
    "avatars/7/3f2a....png"; the public URL is base_url + "/" + key.
    """

    def __init__(self, root, base_url: str = "/media"):
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        # Keys never escape the media root
        if path != self.root and self.root not in path.parents:
            raise ValueError(f"Invalid storage key: {key!r}")
        return path

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def put(self, key: str, data: bytes) -> str:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return self.url_for(key)

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


def get_storage() -> LocalBlobStorage:
    return current_app.extensions[EXTENSION_KEY]
