import os

os.environ["TESTING"] = "True"

import pytest
import fakeredis
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient

from sharelink.database import Base, get_db, SessionLocal, engine
from sharelink.main import app as fastapi_app
from sharelink.dependencies import get_clock, get_file_directory, get_url_issuer, get_plan_directory, get_notifier
from sharelink.exceptions import NotificationUnavailableError, SharedFileNotFoundError
from sharelink.service import ShareLinkService
from sharelink.storage import FileKind, FileMeta, FileRef, bucket_for, is_owned_by
from sharelink.utils import create_access_token
import sharelink.cache

OWNER_ID = "user-1"
OTHER_USER_ID = "user-2"
FREE_USER_ID = "user-free"
OWNER_FILE_ID = "user-1/library/doc-1"
OTHER_USER_FILE_ID = "user-2/library/notes.pdf"


class FakeClock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, minutes=0, seconds=0):
        self.now = self.now + timedelta(minutes=minutes, seconds=seconds)


class FakeFiles:
    """Подменяет объектное хранилище: метаданные файлов и подписанные URL"""

    def __init__(self):
        self.files = {
            (FileKind.LIBRARY, OWNER_FILE_ID): FileMeta(name="report.pdf", size=2048),
            (FileKind.LIBRARY, OTHER_USER_FILE_ID): FileMeta(name="notes.pdf", size=1024),
            (FileKind.TEMP, "tmp-1"): FileMeta(name="merged.pdf", size=512),
        }
        self.issued = []

    def get_file_meta(self, file_ref, owner_id):
        if not is_owned_by(file_ref, owner_id):
            raise SharedFileNotFoundError()
        meta = self.files.get((FileKind(file_ref.file_kind), file_ref.file_id))
        if meta is None:
            raise SharedFileNotFoundError()
        return meta

    def issue(self, file_ref, file_name):
        self.issued.append((file_ref, file_name))
        return (f"https://storage.test/{bucket_for(file_ref.file_kind)}/{file_ref.file_id}"
                f"?X-Amz-Expires=300&X-Amz-Signature=sig{len(self.issued)}")


class FakeNotifier:
    def __init__(self):
        self.sent = []
        self.fail = False

    def notify_owner(self, owner_id, title, message):
        if self.fail:
            raise NotificationUnavailableError()
        self.sent.append((owner_id, title, message))


class FakePlans:
    def __init__(self):
        self.plans = {OWNER_ID: "pro", OTHER_USER_ID: "student", FREE_USER_ID: "free"}

    def get_plan(self, user_id):
        return self.plans.get(user_id, "free")


# Mock Redis client
@pytest.fixture(scope="function")
def redis_mock():
    original_redis = sharelink.cache.redis_client

    fake_redis = fakeredis.FakeStrictRedis(decode_responses=True)

    sharelink.cache.redis_client = fake_redis

    yield fake_redis

    sharelink.cache.redis_client = original_redis

@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def files():
    return FakeFiles()

@pytest.fixture
def plans():
    return FakePlans()

@pytest.fixture
def notifier():
    return FakeNotifier()

@pytest.fixture
def service(db, redis_mock, files, plans, clock, notifier):
    return ShareLinkService(db, files=files, url_issuer=files, plans=plans, clock=clock, notifier=notifier)

@pytest.fixture
def library_file():
    return FileRef(file_id=OWNER_FILE_ID, file_kind=FileKind.LIBRARY)

@pytest.fixture
def client(db, redis_mock, files, plans, clock, notifier):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_file_directory] = lambda: files
    fastapi_app.dependency_overrides[get_url_issuer] = lambda: files
    fastapi_app.dependency_overrides[get_plan_directory] = lambda: plans
    fastapi_app.dependency_overrides[get_clock] = lambda: clock
    fastapi_app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(fastapi_app) as client:
        yield client

    fastapi_app.dependency_overrides = {}

def auth_headers(user_id):
    token = create_access_token({"sub": user_id})
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def owner_headers():
    return auth_headers(OWNER_ID)

@pytest.fixture
def other_headers():
    return auth_headers(OTHER_USER_ID)

@pytest.fixture
def free_headers():
    return auth_headers(FREE_USER_ID)
