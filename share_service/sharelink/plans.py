from typing import Optional

FREE_PLAN = "free"
UNLIMITED = None

# Максимум одновременно активных публичных ссылок для тарифа
ACTIVE_LINK_LIMITS = {
    FREE_PLAN: 0,
    "student": 5,
    "pro": 50,
    "plus": UNLIMITED,
    "business": UNLIMITED,
}

def normalize_plan(plan: Optional[str]) -> str:
    """Неизвестный тариф считается бесплатным"""
    if not plan:
        return FREE_PLAN
    plan = plan.strip().lower()
    return plan if plan in ACTIVE_LINK_LIMITS else FREE_PLAN

def can_create_public_link(plan: Optional[str]) -> bool:
    """Публичные ссылки доступны только на платных тарифах"""
    return normalize_plan(plan) != FREE_PLAN

def active_link_limit(plan: Optional[str]) -> Optional[int]:
    """Лимит активных ссылок; None означает отсутствие ограничения"""
    return ACTIVE_LINK_LIMITS[normalize_plan(plan)]

def has_link_quota(plan: Optional[str], active_links: int) -> bool:
    limit = active_link_limit(plan)
    return limit is None or active_links < limit
