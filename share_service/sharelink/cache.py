import logging
import redis
from sharelink.config import settings
from sharelink.json_utils import dumps, loads
from typing import Optional, Union

logger = logging.getLogger(__name__)

redis_client = redis.Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=settings.REDIS_DB,
    decode_responses=True
)

INFO_CACHE_PREFIX = "share_info:"  # short_code -> публичные метаданные ссылки
VISITOR_PREFIX = "visitor:"
FAILED_ATTEMPTS_PREFIX = "fail:"
LOCKOUT_PREFIX = "lock:"
LOCKOUT_COUNT_PREFIX = "lockouts:"
LOCKOUT_MEMORY_SECONDS = 86400
QUOTA_LOCK_PREFIX = "quota_lock:"
QUOTA_LOCK_TIMEOUT_SECONDS = 10
REVOKED_MARKER = "revoked"  # надгробие отозванной ссылки в кеше метаданных

def get_info_cache_key(short_code: str) -> str:
    """Формирует ключ кеша публичных метаданных"""
    return f"{INFO_CACHE_PREFIX}{short_code}"

def cache_link_info(short_code: str, payload: dict, expire: Optional[int] = None) -> None:
    """Кеширует публичные метаданные ссылки, TTL не дольше жизни ссылки"""
    ttl = settings.CACHE_EXPIRY
    if expire is not None:
        ttl = min(ttl, expire)
    if ttl <= 0:
        return
    # NX: запись не должна затереть надгробие отозванной ссылки
    redis_client.set(get_info_cache_key(short_code), dumps(payload), ex=ttl, nx=True)

def get_cached_link_info(short_code: str) -> Union[dict, str, None]:
    """Получает публичные метаданные ссылки из кеша; REVOKED_MARKER для отозванной"""
    raw = redis_client.get(get_info_cache_key(short_code))
    if not raw:
        return None
    if raw == REVOKED_MARKER:
        return REVOKED_MARKER
    try:
        return loads(raw)
    except ValueError:
        logger.warning("Поврежденная запись кеша для ссылки, удаляем")
        invalidate_link_cache(short_code)
        return None

def invalidate_link_cache(short_code: str) -> None:
    """Удаляет запись кеша метаданных"""
    redis_client.delete(get_info_cache_key(short_code))

def mark_link_revoked(short_code: str) -> None:
    """Заменяет метаданные надгробием, чтобы отозванная ссылка не вернулась в кеш"""
    redis_client.set(get_info_cache_key(short_code), REVOKED_MARKER, ex=settings.CACHE_EXPIRY)

def owner_quota_lock(owner_id: str):
    """Блокировка владельца на время пересчета квоты и вставки ссылки"""
    return redis_client.lock(
        f"{QUOTA_LOCK_PREFIX}{owner_id}",
        timeout=QUOTA_LOCK_TIMEOUT_SECONDS,
        blocking_timeout=QUOTA_LOCK_TIMEOUT_SECONDS
    )

def register_visitor(short_code: str, fingerprint: str, window: int = settings.DEDUP_WINDOW_SECONDS) -> bool:
    """Атомарно отмечает отпечаток; True, если в текущем окне он новый"""
    key = f"{VISITOR_PREFIX}{short_code}:{fingerprint}"
    return bool(redis_client.set(key, "1", nx=True, ex=window))

def get_lockout_ttl(short_code: str) -> int:
    """Возвращает оставшееся время блокировки в секундах (0, если ее нет)"""
    ttl = redis_client.ttl(f"{LOCKOUT_PREFIX}{short_code}")
    return ttl if ttl and ttl > 0 else 0

def register_failed_attempt(short_code: str) -> int:
    """Учитывает неудачный ввод пароля; возвращает длительность блокировки, если она началась"""
    counter_key = f"{FAILED_ATTEMPTS_PREFIX}{short_code}"
    attempts = redis_client.incr(counter_key)
    if attempts == 1:
        redis_client.expire(counter_key, settings.FAILED_ATTEMPT_WINDOW_SECONDS)

    if attempts < settings.MAX_FAILED_PASSWORD_ATTEMPTS:
        return 0

    # Одновременные неудачи за порогом дают одну блокировку и одну ступень эскалации
    lock_key = f"{LOCKOUT_PREFIX}{short_code}"
    if not redis_client.set(lock_key, "1", nx=True, ex=settings.LOCKOUT_MAX_SECONDS):
        redis_client.delete(counter_key)
        return 0

    lockouts_key = f"{LOCKOUT_COUNT_PREFIX}{short_code}"
    lockouts = redis_client.incr(lockouts_key)
    redis_client.expire(lockouts_key, LOCKOUT_MEMORY_SECONDS)

    duration = min(
        settings.LOCKOUT_BASE_SECONDS * 2 ** (lockouts - 1),
        settings.LOCKOUT_MAX_SECONDS
    )
    redis_client.expire(lock_key, duration)
    redis_client.delete(counter_key)
    logger.warning("Ссылка %s заблокирована на %s с после неудачных попыток", short_code, duration)
    return duration

def reset_failed_attempts(short_code: str) -> None:
    """Сбрасывает счетчик неудачных попыток после верного пароля"""
    redis_client.delete(f"{FAILED_ATTEMPTS_PREFIX}{short_code}")
