import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sharelink.access import AccessRecorder
from sharelink.cache import (
    REVOKED_MARKER, cache_link_info, get_cached_link_info, mark_link_revoked, owner_quota_lock,
    get_lockout_ttl, register_failed_attempt, reset_failed_attempts
)
from sharelink.config import settings
from sharelink.exceptions import (
    ForbiddenError, GenerationExhausted, InvalidPasswordError,
    LinkNotAvailableError, NotificationUnavailableError, PlanRestrictedError, RateLimitedError
)
from sharelink.json_utils import parse_datetime
from sharelink.models import ShareLink
from sharelink.monitoring import (
    code_collisions, code_generation_exhausted, failed_password_attempts,
    link_resolutions, links_created, links_revoked, lockouts_started
)
from sharelink.plans import can_create_public_link, has_link_quota
from sharelink.storage import FileKind, FileMeta, FileRef
from sharelink.store import ShareLinkStore
from sharelink.utils import (
    as_utc, build_share_url, generate_short_code, hash_link_password,
    is_resolvable, link_status, utcnow, validate_ttl, verify_link_password,
    visitor_fingerprint
)

logger = logging.getLogger(__name__)


class FileDirectory(Protocol):
    def get_file_meta(self, file_ref: FileRef, owner_id: str) -> FileMeta: ...


class DownloadURLIssuer(Protocol):
    def issue(self, file_ref: FileRef, file_name: str) -> str: ...


class PlanDirectory(Protocol):
    def get_plan(self, user_id: str) -> str: ...


class Notifier(Protocol):
    def notify_owner(self, owner_id: str, title: str, message: str) -> None: ...


@dataclass(frozen=True)
class CreatedLink:
    link: ShareLink
    url: str


@dataclass(frozen=True)
class ResolvedLink:
    download_url: str
    expires_in: int
    is_new_visitor: bool


class ShareLinkService:
    """Создание, открытие, список и отзыв публичных ссылок"""

    def __init__(self, db: Session, files: FileDirectory, url_issuer: DownloadURLIssuer,
                 plans: PlanDirectory, clock: Callable[[], datetime] = utcnow,
                 notifier: Optional[Notifier] = None):
        self.store = ShareLinkStore(db)
        self.recorder = AccessRecorder(self.store)
        self.files = files
        self.url_issuer = url_issuer
        self.plans = plans
        self.clock = clock
        self.notifier = notifier

    def create(self, owner_id: str, file_ref: FileRef, ttl_minutes: Optional[int] = None,
               password: Optional[str] = None) -> CreatedLink:
        if ttl_minutes is None:
            ttl_minutes = settings.DEFAULT_LINK_TTL_MINUTES
        ttl = validate_ttl(ttl_minutes)

        plan = self.plans.get_plan(owner_id)
        if not can_create_public_link(plan):
            raise PlanRestrictedError()

        now = self.clock()
        if not has_link_quota(plan, self.store.count_active(owner_id, now)):
            raise PlanRestrictedError("Достигнут лимит активных ссылок для текущего тарифа")

        meta = self.files.get_file_meta(file_ref, owner_id)
        password_hash = hash_link_password(password) if password else None

        def build(short_code: str) -> ShareLink:
            return ShareLink(
                short_code=short_code,
                file_id=file_ref.file_id,
                file_kind=FileKind(file_ref.file_kind).value,
                file_name=meta.name,
                file_size=meta.size,
                owner_id=owner_id,
                password_hash=password_hash,
                created_at=now,
                expires_at=now + ttl,
                revoked=False,
                total_clicks=0,
                unique_visitors=0,
            )

        # Повторная проверка квоты и вставка под блокировкой владельца
        with owner_quota_lock(owner_id):
            if not has_link_quota(plan, self.store.count_active(owner_id, now)):
                raise PlanRestrictedError("Достигнут лимит активных ссылок для текущего тарифа")
            link = self._insert_with_unique_code(build)

        links_created.inc()
        logger.info("Создана ссылка %s (файл %s, защищена паролем: %s)",
                    link.short_code, FileKind(file_ref.file_kind).value, password_hash is not None)
        return CreatedLink(link=link, url=build_share_url(link.short_code))

    def _insert_with_unique_code(self, build: Callable[[str], ShareLink]) -> ShareLink:
        for attempt in range(1, settings.SHORT_CODE_MAX_ATTEMPTS + 1):
            try:
                return self.store.insert(build(generate_short_code()))
            except IntegrityError:
                code_collisions.inc()
                logger.warning("Коллизия короткого кода, попытка %s из %s",
                               attempt, settings.SHORT_CODE_MAX_ATTEMPTS)

        code_generation_exhausted.inc()
        logger.error("Не удалось получить уникальный короткий код за %s попыток, "
                     "пространство кодов насыщено", settings.SHORT_CODE_MAX_ATTEMPTS)
        raise GenerationExhausted()

    def _get_resolvable(self, short_code: str, now: datetime) -> ShareLink:
        link = self.store.get_by_code(short_code)
        if link is None or not is_resolvable(link, now):
            raise LinkNotAvailableError()
        return link

    def get_info(self, short_code: str) -> Dict:
        now = self.clock()
        cached = get_cached_link_info(short_code)
        if cached == REVOKED_MARKER:
            raise LinkNotAvailableError()
        if cached:
            expires_at = parse_datetime(cached.get("expires_at"))
            if expires_at and now < expires_at:
                cached["expires_at"] = expires_at
                cached["created_at"] = parse_datetime(cached.get("created_at"))
                return cached

        link = self._get_resolvable(short_code, now)
        info = {
            "file_name": link.file_name,
            "file_size": link.file_size,
            "password_required": link.password_required,
            "expires_at": as_utc(link.expires_at),
            "created_at": as_utc(link.created_at),
        }
        cache_link_info(short_code, info, expire=int((info["expires_at"] - now).total_seconds()))
        return info

    def resolve(self, short_code: str, password: Optional[str], client_info: dict) -> ResolvedLink:
        now = self.clock()
        link = self._get_resolvable(short_code, now)

        if link.password_required:
            retry_after = get_lockout_ttl(short_code)
            if retry_after:
                raise RateLimitedError(retry_after)
            if not verify_link_password(password, link.password_hash):
                failed_password_attempts.inc()
                if register_failed_attempt(short_code):
                    lockouts_started.inc()
                raise InvalidPasswordError()
            reset_failed_attempts(short_code)

        file_ref = FileRef(file_id=link.file_id, file_kind=FileKind(link.file_kind))
        file_name = link.file_name
        owner_id = link.owner_id

        result = self.recorder.record_access(link, visitor_fingerprint(short_code, client_info), now)
        link_resolutions.labels(visitor="new" if result.is_new_visitor else "returning").inc()
        self._notify_owner(owner_id, file_name)

        download_url = self.url_issuer.issue(file_ref, file_name)
        return ResolvedLink(
            download_url=download_url,
            expires_in=settings.DOWNLOAD_URL_TTL_MINUTES * 60,
            is_new_visitor=result.is_new_visitor,
        )

    def _notify_owner(self, owner_id: str, file_name: str) -> None:
        """Сообщает владельцу об открытии файла; данные посетителя не передаются"""
        if self.notifier is None:
            return
        try:
            self.notifier.notify_owner(
                owner_id,
                "Файл открыт по ссылке",
                f"Ваш файл '{file_name}' открыли по публичной ссылке.",
            )
        except NotificationUnavailableError:
            logger.warning("Не удалось отправить уведомление владельцу ссылки")

    def list_mine(self, owner_id: str) -> List[Dict]:
        now = self.clock()
        summaries = []
        for link in self.store.list_by_owner(owner_id):
            status = link_status(link, now)
            summaries.append({
                "id": link.id,
                "short_code": link.short_code,
                "share_link": build_share_url(link.short_code),
                "file_id": link.file_id,
                "file_type": link.file_kind,
                "file_name": link.file_name,
                "file_size": link.file_size,
                "has_password": link.password_required,
                "status": status,
                "is_expired": status == "expired",
                "is_revoked": link.revoked,
                "created_at": as_utc(link.created_at),
                "expires_at": as_utc(link.expires_at),
                "total_clicks": link.total_clicks,
                "unique_visitors": link.unique_visitors,
                "first_opened_at": as_utc(link.first_opened_at),
                "last_opened_at": as_utc(link.last_opened_at),
            })
        return summaries

    def revoke(self, short_code: str, owner_id: str) -> None:
        link = self.store.get_by_code(short_code)
        if link is None:
            raise LinkNotAvailableError()
        if link.owner_id != owner_id:
            raise ForbiddenError()

        if not link.revoked:
            self.store.mark_revoked(link.id)
            links_revoked.inc()
            logger.info("Ссылка %s отозвана владельцем", short_code)
        mark_link_revoked(short_code)
