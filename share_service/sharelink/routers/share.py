from fastapi import APIRouter, Depends, Query, Response, status
from starlette.concurrency import run_in_threadpool
from typing import List, Optional

from sharelink.dependencies import get_client_info, get_share_service, require_user_id
from sharelink.schemas import (
    DownloadURL, ErrorResponse, ShareCreate, ShareCreated, ShareInfo, ShareLinkSummary
)
from sharelink.service import ShareLinkService
from sharelink.storage import FileRef
from sharelink.utils import as_utc

router = APIRouter(prefix="/share", tags=["share"])

# Создание публичной ссылки
@router.post(
    "",
    response_model=ShareCreated,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_share_link(
    share_data: ShareCreate,
    owner_id: str = Depends(require_user_id),
    service: ShareLinkService = Depends(get_share_service)
):
    """Создает короткую публичную ссылку на файл"""
    created = await run_in_threadpool(
        service.create,
        owner_id,
        FileRef(file_id=share_data.file_id, file_kind=share_data.file_type),
        share_data.expires_in_minutes,
        share_data.password,
    )
    return ShareCreated(code=created.link.short_code, url=created.url, expires_at=as_utc(created.link.expires_at))

# Ссылки текущего пользователя с аналитикой
@router.get("/my", response_model=List[ShareLinkSummary])
async def list_my_share_links(
    owner_id: str = Depends(require_user_id),
    service: ShareLinkService = Depends(get_share_service)
):
    """Возвращает все ссылки владельца, включая истекшие и отозванные"""
    return service.list_mine(owner_id)

# Публичные метаданные ссылки
@router.get("/{code}/info", response_model=ShareInfo, responses={404: {"model": ErrorResponse}})
async def get_share_info(
    code: str,
    service: ShareLinkService = Depends(get_share_service)
):
    """Возвращает метаданные файла без проверки пароля"""
    return service.get_info(code)

# Получение подписанного URL для скачивания
@router.get(
    "/{code}/url",
    response_model=DownloadURL,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def get_download_url(
    code: str,
    response: Response,
    password: Optional[str] = Query(None, description="Пароль защищенной ссылки"),
    client_info: dict = Depends(get_client_info),
    service: ShareLinkService = Depends(get_share_service)
):
    """Проверяет ссылку и пароль, учитывает открытие и выдает URL"""
    resolved = await run_in_threadpool(service.resolve, code, password, client_info)
    response.headers["Cache-Control"] = "no-store"
    return DownloadURL(download_url=resolved.download_url, expires_in=resolved.expires_in)

# Отзыв ссылки
@router.delete("/{code}", status_code=status.HTTP_204_NO_CONTENT,
               responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def revoke_share_link(
    code: str,
    owner_id: str = Depends(require_user_id),
    service: ShareLinkService = Depends(get_share_service)
):
    """Отзывает ссылку; повторный отзыв ничего не меняет"""
    service.revoke(code, owner_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
