from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from sharelink.billing import BillingPlanDirectory
from sharelink.database import get_db
from sharelink.notifications import HttpNotifier
from sharelink.schemas import TokenData
from sharelink.config import settings
from sharelink.service import ShareLinkService
from sharelink.storage import ObjectStoreFiles
from sharelink.utils import extract_client_info, utcnow

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token", auto_error=False)

object_store_files = ObjectStoreFiles()
billing_plans = BillingPlanDirectory()
owner_notifier = HttpNotifier()

async def get_current_user_id(token: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    """Получает идентификатор владельца из JWT токена"""
    if token is None:
        return None

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Недействительные учетные данные",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        user_id = payload.get("sub")

        if user_id is None:
            raise credentials_exception

        token_data = TokenData(user_id=str(user_id))
    except JWTError:
        raise credentials_exception

    return token_data.user_id

async def require_user_id(user_id: Optional[str] = Depends(get_current_user_id)) -> str:
    """Требует аутентифицированного владельца"""
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Требуется аутентификация",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id

def get_file_directory():
    return object_store_files

def get_url_issuer():
    return object_store_files

def get_plan_directory():
    return billing_plans

def get_notifier():
    return owner_notifier

def get_clock() -> Callable[[], datetime]:
    return utcnow

def get_share_service(
    db: Session = Depends(get_db),
    files=Depends(get_file_directory),
    url_issuer=Depends(get_url_issuer),
    plans=Depends(get_plan_directory),
    clock: Callable[[], datetime] = Depends(get_clock),
    notifier=Depends(get_notifier)
) -> ShareLinkService:
    return ShareLinkService(db, files=files, url_issuer=url_issuer, plans=plans, clock=clock, notifier=notifier)

async def get_client_info(request: Request):
    """Получает информацию о клиенте из запроса"""
    return extract_client_info(request)
