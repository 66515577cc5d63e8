import hashlib
import hmac
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt
from passlib.context import CryptContext
from sharelink.config import settings
from sharelink.exceptions import InvalidExpiryError

SHORT_CODE_ALPHABET = string.ascii_letters + string.digits
VISITOR_COOKIE_NAME = "share_vid"

link_pwd_context = CryptContext(
    schemes=["scrypt"],
    deprecated="auto",
    scrypt__rounds=settings.PASSWORD_HASH_ROUNDS,
)

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite возвращает naive datetime, считаем его UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def generate_short_code(length: int = settings.SHORT_CODE_LENGTH) -> str:
    """Генерирует криптостойкий короткий код в алфавите base62"""
    return ''.join(secrets.choice(SHORT_CODE_ALPHABET) for _ in range(length))

def hash_link_password(password: str) -> str:
    """Хеширует пароль ссылки (scrypt, соль на каждую запись)"""
    return link_pwd_context.hash(password)

def verify_link_password(password: Optional[str], password_hash: Optional[str]) -> bool:
    """Проверяет пароль ссылки; ссылка без пароля открыта всем"""
    if password_hash is None:
        return True
    if not password:
        return False
    try:
        return link_pwd_context.verify(password, password_hash)
    except ValueError:
        return False

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Создает JWT токен доступа"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def build_share_url(short_code: str) -> str:
    """Создает публичный URL страницы ссылки"""
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/share/{short_code}"

def validate_ttl(ttl_minutes: int) -> timedelta:
    """Проверяет срок жизни ссылки в минутах"""
    if ttl_minutes <= 0 or ttl_minutes > settings.MAX_LINK_TTL_MINUTES:
        raise InvalidExpiryError(
            f"Срок действия должен быть от 1 до {settings.MAX_LINK_TTL_MINUTES} минут"
        )
    return timedelta(minutes=ttl_minutes)

def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """Проверяет, истек ли срок действия ссылки"""
    if not expires_at:
        return False
    now = as_utc(now) if now else utcnow()
    return now >= as_utc(expires_at)

def is_resolvable(link, now: Optional[datetime] = None) -> bool:
    """Ссылка доступна, пока не отозвана и не истекла"""
    return not link.revoked and not is_expired(link.expires_at, now)

def link_status(link, now: Optional[datetime] = None) -> str:
    if link.revoked:
        return "revoked"
    if is_expired(link.expires_at, now):
        return "expired"
    return "active"

def extract_client_info(request) -> dict:
    """Извлекает информацию о клиенте из запроса"""
    ip_address = request.client.host if request.client else None
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            ip_address = forwarded.split(",")[0].strip()

    cookies = getattr(request, "cookies", None) or {}
    return {
        "ip_address": ip_address,
        "user_agent": request.headers.get("user-agent"),
        "visitor_cookie": cookies.get(VISITOR_COOKIE_NAME),
    }

def visitor_fingerprint(short_code: str, client_info: dict) -> str:
    """Односторонний отпечаток посетителя, привязанный к коду ссылки"""
    material = "|".join([
        short_code,
        client_info.get("ip_address") or "",
        client_info.get("user_agent") or "",
        client_info.get("visitor_cookie") or "",
    ])
    return hmac.new(
        settings.SECRET_KEY.encode("utf-8"),
        material.encode("utf-8"),
        hashlib.sha256
    ).hexdigest()
