import logging
import mimetypes
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from .errors import ValidationError
from .utils import clean_filename

logger = logging.getLogger(__name__)


# ---- Buckets ----
class Buckets:
    COVERS = "project-covers"
    ASSETS = "ebook-assets"
    EXPORTS = "ebook-exports"

    ALL = (COVERS, ASSETS, EXPORTS)


@dataclass
class StoredFile:
    name: str
    path: str        # bucket-relative
    url: str
    size: int
    created_at: str


# ---- Store ----
class ObjectStorage:
    """
    Filesystem buckets under <root>/<bucket>/<folder>/<user_id>-<uuid>.<ext>,
    served at <public_url>/<bucket>/<path>.
    """

    def __init__(self, root: Path, public_url: str, max_upload_mb: int = 5):
        self.root = Path(root)
        self.public_url = public_url.rstrip("/")
        self.max_upload_bytes = max_upload_mb * 1024 * 1024
        for bucket in Buckets.ALL:
            (self.root / bucket).mkdir(parents=True, exist_ok=True)

    # helpers
    def _bucket_dir(self, bucket: str) -> Path:
        if bucket not in Buckets.ALL:
            raise ValidationError(f"Unknown storage bucket: {bucket}")
        return self.root / bucket

    def _resolve(self, bucket: str, rel_path: str) -> Path:
        base = self._bucket_dir(bucket).resolve()
        target = (base / rel_path).resolve()
        if base != target and base not in target.parents:
            raise ValidationError("Path escapes storage bucket")
        return target

    def public_url_for(self, bucket: str, rel_path: str) -> str:
        return f"{self.public_url}/{bucket}/{rel_path}"

    def validate_upload(self, filename: str, size: int, content_type: Optional[str], accept: str = "*") -> None:
        if not filename:
            raise ValidationError("File name is required")
        if size > self.max_upload_bytes:
            raise ValidationError(f"File size exceeds {self.max_upload_bytes // (1024 * 1024)}MB limit.")
        if accept != "*":
            prefix = accept.replace("*", "")
            ctype = content_type or mimetypes.guess_type(filename)[0] or ""
            if not ctype.startswith(prefix):
                raise ValidationError(f"Invalid file type. Please upload {prefix} files.")

    # operations
    def upload(self, bucket: str, user_id, filename: str, data: bytes, folder: str = "") -> str:
        ext = Path(clean_filename(filename)).suffix.lstrip(".") or "bin"
        name = f"{user_id}-{uuid.uuid4()}.{ext}"
        rel = f"{clean_filename(folder)}/{name}" if folder else name

        target = self._resolve(bucket, rel)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "xb") as f:  # never overwrite
            f.write(data)
        logger.info("Stored %s bytes in %s/%s", len(data), bucket, rel)
        return self.public_url_for(bucket, rel)

    def path_from_url(self, url: str, bucket: str) -> str:
        parts = urlparse(url).path.split("/")
        if bucket not in parts:
            raise ValidationError(f"Invalid URL: {bucket} not found in path")
        idx = parts.index(bucket)
        rel = "/".join(parts[idx + 1:])
        if not rel:
            raise ValidationError(f"Invalid URL: no file after {bucket}")
        if ".." in parts[idx + 1:]:
            raise ValidationError("Invalid URL: parent segments are not allowed")
        return rel

    def owns_url(self, url: str, bucket: str) -> bool:
        """True when url points into this store's bucket, as returned by upload()."""
        return url.startswith(self.public_url_for(bucket, ""))

    def in_folder(self, bucket: str, rel_path: str, folder: str) -> bool:
        folder_dir = self._resolve(bucket, clean_filename(folder))
        return folder_dir in self._resolve(bucket, rel_path).parents

    def read(self, url: str, bucket: str) -> bytes:
        return self._resolve(bucket, self.path_from_url(url, bucket)).read_bytes()

    def delete(self, url: str, bucket: str) -> bool:
        rel = self.path_from_url(url, bucket)
        target = self._resolve(bucket, rel)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.info("Nothing to delete at %s/%s", bucket, rel)
        return True

    def list(self, bucket: str, folder: str = "", limit: int = 100) -> list[StoredFile]:
        base = self._bucket_dir(bucket)
        folder_dir = self._resolve(bucket, clean_filename(folder)) if folder else base
        if not folder_dir.is_dir():
            return []

        files = [p for p in folder_dir.iterdir() if p.is_file()]
        files.sort(key=lambda p: p.stat().st_mtime, reverse=True)

        out = []
        for p in files[:limit]:
            st = p.stat()
            rel = p.relative_to(base).as_posix()
            out.append(StoredFile(
                name=p.name,
                path=rel,
                url=self.public_url_for(bucket, rel),
                size=st.st_size,
                created_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc).isoformat(),
            ))
        return out
