import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from urllib.parse import quote

import urllib3
from minio import Minio
from minio.error import S3Error

from sharelink.config import settings
from sharelink.exceptions import SharedFileNotFoundError, StorageUnavailableError

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = {"NoSuchKey", "NoSuchBucket", "NoSuchObject"}
FILENAME_METADATA_KEYS = ("x-amz-meta-filename", "x-amz-meta-original-name")


class FileKind(str, Enum):
    TEMP = "temp"
    LIBRARY = "library"


@dataclass(frozen=True)
class FileRef:
    file_id: str
    file_kind: FileKind


@dataclass(frozen=True)
class FileMeta:
    name: str
    size: int


minio_client = Minio(
    endpoint=settings.MINIO_ENDPOINT,
    access_key=settings.MINIO_ACCESS_KEY,
    secret_key=settings.MINIO_SECRET_KEY,
    secure=settings.MINIO_USE_SSL,
    region=settings.MINIO_REGION
)


def bucket_for(file_kind: FileKind) -> str:
    """Временные файлы и файлы библиотеки лежат в разных бакетах"""
    if FileKind(file_kind) is FileKind.TEMP:
        return settings.MINIO_BUCKET_TEMP
    return settings.MINIO_BUCKET_USER_FILES


def content_disposition(file_name: str) -> str:
    ascii_name = file_name.encode("ascii", "ignore").decode("ascii").replace('"', "") or "download.pdf"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(file_name, safe='')}"


def is_owned_by(file_ref: FileRef, owner_id: str) -> bool:
    """Файлы библиотеки лежат под префиксом владельца: {owner_id}/library/..."""
    segments = file_ref.file_id.split("/")
    if any(segment in ("", ".", "..") for segment in segments):
        return False
    if FileKind(file_ref.file_kind) is FileKind.LIBRARY:
        return len(segments) > 1 and segments[0] == owner_id
    return True


class ObjectStoreFiles:
    """Метаданные файлов и подписанные URL из объектного хранилища"""

    def __init__(self, client: Minio = minio_client, url_ttl: timedelta = None):
        self.client = client
        self.url_ttl = url_ttl or timedelta(minutes=settings.DOWNLOAD_URL_TTL_MINUTES)

    def get_file_meta(self, file_ref: FileRef, owner_id: str) -> FileMeta:
        # Чужой ключ неотличим от отсутствующего файла
        if not is_owned_by(file_ref, owner_id):
            raise SharedFileNotFoundError()

        bucket = bucket_for(file_ref.file_kind)
        try:
            stat = self.client.stat_object(bucket_name=bucket, object_name=file_ref.file_id)
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                raise SharedFileNotFoundError()
            logger.error("Ошибка хранилища при чтении метаданных: %s", e.code)
            raise StorageUnavailableError()
        except urllib3.exceptions.HTTPError as e:
            logger.error("Хранилище недоступно: %s", type(e).__name__)
            raise StorageUnavailableError()

        metadata = stat.metadata or {}
        name = None
        for key in FILENAME_METADATA_KEYS:
            name = metadata.get(key) or metadata.get(key.title())
            if name:
                break
        if not name:
            name = file_ref.file_id.rstrip("/").rsplit("/", 1)[-1]
        return FileMeta(name=name, size=int(stat.size or 0))

    def issue(self, file_ref: FileRef, file_name: str) -> str:
        """Подписанный URL на один объект, живет несколько минут"""
        try:
            return self.client.presigned_get_object(
                bucket_name=bucket_for(file_ref.file_kind),
                object_name=file_ref.file_id,
                expires=self.url_ttl,
                extra_query_params={"response-content-disposition": content_disposition(file_name)},
            )
        except (S3Error, ValueError, urllib3.exceptions.HTTPError) as e:
            logger.error("Не удалось подписать URL: %s", type(e).__name__)
            raise StorageUnavailableError()
