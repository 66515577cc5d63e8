import json
import httpx
import pytest
from sharelink.exceptions import NotificationUnavailableError
from sharelink.notifications import HttpNotifier

def notifier_with(handler):
    return HttpNotifier(base_url="http://notifications.test", transport=httpx.MockTransport(handler))

def test_notify_owner():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(201)

    notifier_with(handler).notify_owner("user-1", "Файл открыт по ссылке", "Ваш файл 'report.pdf' открыли")

    assert requests[0].method == "POST"
    assert requests[0].url.path == "/notifications"
    body = json.loads(requests[0].content)
    assert body["userId"] == "user-1"
    assert body["type"] == "info"
    assert "report.pdf" in body["message"]

def test_notify_owner_server_error():
    with pytest.raises(NotificationUnavailableError):
        notifier_with(lambda request: httpx.Response(502)).notify_owner("user-1", "t", "m")

def test_notify_owner_transport_error():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(NotificationUnavailableError):
        notifier_with(handler).notify_owner("user-1", "t", "m")
