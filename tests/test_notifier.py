import requests

from autoconvert.notifier import NullNotifier, TelegramNotifier, build_notifier


class FakeResponse:
    def __init__(self, status_code=200, text="ok"):
        self.status_code = status_code
        self.text = text


class FakeSession:
    def __init__(self, response=None, error=None):
        self.posts = []
        self.response = response or FakeResponse()
        self.error = error

    def post(self, url, data=None, timeout=None):
        self.posts.append((url, data))
        if self.error:
            raise self.error
        return self.response


def test_send_posts_to_chat():
    session = FakeSession()
    notifier = TelegramNotifier("TOKEN", 42, session=session)

    assert notifier.send("executed ETHUSDT SELL 10") is True
    assert session.posts == [
        ("https://api.telegram.org/botTOKEN/sendMessage", {"chat_id": 42, "text": "executed ETHUSDT SELL 10"}),
    ]


def test_send_failures_are_swallowed():
    notifier = TelegramNotifier("TOKEN", 42, session=FakeSession(error=requests.ConnectionError("down")))
    assert notifier.send("hello") is False

    notifier = TelegramNotifier("TOKEN", 42, session=FakeSession(response=FakeResponse(403, "forbidden")))
    assert notifier.send("hello") is False


def test_background_delivery():
    session = FakeSession()
    notifier = TelegramNotifier("TOKEN", 42, session=session).start()
    notifier.notify("one")
    notifier.notify("two")
    notifier.close()

    assert [data["text"] for _, data in session.posts] == ["one", "two"]


def test_build_notifier_without_chat_is_silent():
    assert isinstance(build_notifier("", None), NullNotifier)
    assert isinstance(build_notifier("TOKEN", None), NullNotifier)
