from dataclasses import dataclass
from datetime import datetime

from sharelink.cache import register_visitor
from sharelink.config import settings
from sharelink.models import ShareLink
from sharelink.store import ShareLinkStore


@dataclass(frozen=True)
class AccessResult:
    is_new_visitor: bool


class AccessRecorder:
    """Учитывает открытия ссылки без хранения данных о посетителе"""

    def __init__(self, store: ShareLinkStore, dedup_window: int = settings.DEDUP_WINDOW_SECONDS):
        self.store = store
        self.dedup_window = dedup_window

    def record_access(self, link: ShareLink, fingerprint: str, now: datetime) -> AccessResult:
        is_new_visitor = register_visitor(link.short_code, fingerprint, self.dedup_window)
        self.store.record_access(link.id, is_new_visitor, now)
        return AccessResult(is_new_visitor=is_new_visitor)
