from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path

import aioboto3
from PIL import Image, ImageOps, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

AVATAR_SIZE = (400, 400)
MAX_AVATAR_BYTES = 2 * 1024 * 1024
AVATAR_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
}
_PILLOW_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
}


def prepare_avatar(content: bytes, content_type: str) -> tuple[bytes, str]:
    """Crop and resize an uploaded avatar to a 400x400 square.

    Args:
        content: Raw bytes of the uploaded image
        content_type: Declared MIME type of the upload

    Returns:
        The encoded image and the file extension to store it under

    Raises:
        ValueError: If the upload is not a readable JPEG or PNG image
    """
    if content_type not in AVATAR_EXTENSIONS:
        raise ValueError("Only JPEG and PNG files are allowed.")

    try:
        with Image.open(BytesIO(content)) as image:
            image = ImageOps.exif_transpose(image)
            resized = ImageOps.fit(image, AVATAR_SIZE, method=Image.Resampling.LANCZOS)
    except (UnidentifiedImageError, OSError):
        raise ValueError("Only JPEG and PNG files are allowed.")

    pillow_format = _PILLOW_FORMATS[content_type]
    if pillow_format == "JPEG" and resized.mode not in ("RGB", "L"):
        resized = resized.convert("RGB")

    output = BytesIO()
    resized.save(output, format=pillow_format)
    return output.getvalue(), AVATAR_EXTENSIONS[content_type]


class Storage(ABC):
    """Where uploaded files are kept."""

    @abstractmethod
    async def upload(self, key: str, content: bytes, content_type: str) -> str:
        """Store a file.

        Args:
            key: Path of the file relative to the storage root
            content: File contents
            content_type: MIME type of the file

        Returns:
            The public URL of the stored file
        """


class LocalStorage(Storage):
    """Storage on the local disk, served by the app under ``url_prefix``.

    Attributes:
        root: Directory files are written to
        url_prefix: URL path the directory is mounted at
    """

    def __init__(self, root: str | Path, url_prefix: str = "/uploads") -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    async def upload(self, key: str, content: bytes, content_type: str) -> str:
        path = self.root / key
        await run_in_threadpool(self._write, path, content)
        return f"{self.url_prefix}/{key}"

    @staticmethod
    def _write(path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write then rename so readers never see a partial file
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(content)
        tmp_path.replace(path)


class S3Storage(Storage):
    """Storage service for handling file operations with S3.

    It uses aioboto3 for async operations; credentials come from the usual
    AWS environment variables or instance profile.

    Attributes:
        bucket: Name of the S3 bucket
        public_base_url: Base URL objects are served from
    """

    def __init__(self, bucket: str, public_base_url: str = "") -> None:
        self.bucket = bucket
        self.public_base_url = (
            public_base_url or f"https://{bucket}.s3.amazonaws.com"
        ).rstrip("/")

    async def upload(self, key: str, content: bytes, content_type: str) -> str:
        """Upload a file to S3.

        Raises:
            botocore.exceptions.ClientError: If the upload fails
        """
        session = aioboto3.Session()
        async with session.client("s3") as s3:
            await s3.upload_fileobj(
                BytesIO(content),
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        return f"{self.public_base_url}/{key}"
