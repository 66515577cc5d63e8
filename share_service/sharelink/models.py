import uuid
from sqlalchemy import Column, Integer, String, DateTime, Boolean, BigInteger, CheckConstraint
from datetime import datetime, timezone

from sharelink.database import Base


def new_link_id() -> str:
    return uuid.uuid4().hex


class ShareLink(Base):
    __tablename__ = "share_links"
    __table_args__ = (
        CheckConstraint("expires_at > created_at", name="ck_share_links_expiry_after_creation"),
        CheckConstraint("unique_visitors <= total_clicks", name="ck_share_links_visitors_le_clicks"),
    )

    id = Column(String(32), primary_key=True, default=new_link_id)
    short_code = Column(String(20), unique=True, index=True, nullable=False)

    file_id = Column(String(255), nullable=False)
    file_kind = Column(String(16), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size = Column(BigInteger, nullable=False, default=0)

    owner_id = Column(String(64), index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked = Column(Boolean, nullable=False, default=False)

    total_clicks = Column(Integer, nullable=False, default=0)
    unique_visitors = Column(Integer, nullable=False, default=0)
    first_opened_at = Column(DateTime(timezone=True), nullable=True)
    last_opened_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def password_required(self) -> bool:
        return self.password_hash is not None
