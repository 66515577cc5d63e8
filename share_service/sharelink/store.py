from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from sharelink.models import ShareLink


class ShareLinkStore:
    """Доступ к таблице share_links; счетчики меняются только атомарными UPDATE"""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, link: ShareLink) -> ShareLink:
        """Вставляет ссылку; при конфликте short_code пробрасывает IntegrityError"""
        self.db.add(link)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(link)
        return link

    def get_by_code(self, short_code: str) -> Optional[ShareLink]:
        return self.db.execute(
            select(ShareLink).where(ShareLink.short_code == short_code)
        ).scalars().first()

    def list_by_owner(self, owner_id: str) -> List[ShareLink]:
        return list(self.db.execute(
            select(ShareLink)
            .where(ShareLink.owner_id == owner_id)
            .order_by(ShareLink.created_at.desc())
        ).scalars().all())

    def count_active(self, owner_id: str, now: datetime) -> int:
        return self.db.execute(
            select(func.count(ShareLink.id)).where(
                ShareLink.owner_id == owner_id,
                ShareLink.revoked.is_(False),
                ShareLink.expires_at > now,
            )
        ).scalar_one()

    def mark_revoked(self, link_id: str) -> None:
        self.db.execute(
            update(ShareLink)
            .where(ShareLink.id == link_id)
            .values(revoked=True)
        )
        self.db.commit()

    def record_access(self, link_id: str, is_new_visitor: bool, now: datetime) -> None:
        """Один UPDATE: клики, уникальные посетители и отметки времени"""
        self.db.execute(
            update(ShareLink)
            .where(ShareLink.id == link_id)
            .values(
                total_clicks=ShareLink.total_clicks + 1,
                unique_visitors=ShareLink.unique_visitors + (1 if is_new_visitor else 0),
                first_opened_at=func.coalesce(ShareLink.first_opened_at, now),
                last_opened_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def refresh(self, link: ShareLink) -> ShareLink:
        self.db.refresh(link)
        return link
