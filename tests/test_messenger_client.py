"""Tests for the Graph API client."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from messengerflow.messenger.client import GraphAPIClient, build_message


def _mock_response(status: int = 200, text: str = "", json_data=None) -> AsyncMock:
    resp = AsyncMock()
    resp.status = status
    resp.text = AsyncMock(return_value=text)
    resp.json = AsyncMock(return_value=json_data)
    resp.raise_for_status = MagicMock()
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=False)
    return resp


def _mock_session(**methods) -> MagicMock:
    session = MagicMock()
    session.closed = False
    for name, value in methods.items():
        setattr(session, name, value)
    return session


@pytest.fixture()
def client() -> GraphAPIClient:
    return GraphAPIClient(
        "test-token",
        api_url="https://graph.example.com",
        api_version="v17.0",
        profile_fields=["first_name", "last_name"],
    )


# -- build_message -------------------------------------------------------------


def test_build_message_from_text() -> None:
    assert build_message("hello") == {"text": "hello"}


def test_build_message_adds_quick_replies() -> None:
    replies = [{"content_type": "text", "title": "A", "payload": "A"}]
    assert build_message("pick", replies) == {"text": "pick", "quick_replies": replies}


def test_build_message_copies_dict() -> None:
    original = {"attachment": {"type": "image"}}
    msg = build_message(original, [{"content_type": "text", "title": "A", "payload": "A"}])

    assert "quick_replies" in msg
    assert "quick_replies" not in original


# -- send ----------------------------------------------------------------------


async def test_send_success(client: GraphAPIClient) -> None:
    session = _mock_session(post=MagicMock(return_value=_mock_response(200)))

    with patch.object(client, "_get_session", return_value=session):
        result = await client.send("123", "Hello!")

    assert result is True
    session.post.assert_called_once()
    call = session.post.call_args
    assert call.args[0] == "https://graph.example.com/v17.0/me/messages"
    assert call.kwargs["params"] == {"access_token": "test-token"}
    assert call.kwargs["json"] == {"recipient": {"id": "123"}, "message": {"text": "Hello!"}}


async def test_send_with_quick_replies(client: GraphAPIClient) -> None:
    session = _mock_session(post=MagicMock(return_value=_mock_response(200)))
    replies = [{"content_type": "text", "title": "Yes", "payload": "YES"}]

    with patch.object(client, "_get_session", return_value=session):
        await client.send("123", "Sure?", quick_replies=replies)

    payload = session.post.call_args.kwargs["json"]
    assert payload["message"]["quick_replies"] == replies


async def test_send_failure_status_returns_false(client: GraphAPIClient) -> None:
    session = _mock_session(post=MagicMock(return_value=_mock_response(400, "bad")))

    with patch.object(client, "_get_session", return_value=session):
        assert await client.send("123", "Hello!") is False


async def test_send_network_error_returns_false(client: GraphAPIClient) -> None:
    session = _mock_session(post=MagicMock(side_effect=aiohttp.ClientError("refused")))

    with patch.object(client, "_get_session", return_value=session):
        assert await client.send("123", "Hello!") is False


async def test_send_without_token_returns_false() -> None:
    client = GraphAPIClient("")
    with patch.object(client, "_get_session") as get_session:
        assert await client.send("123", "Hello!") is False
    get_session.assert_not_called()


# -- get_user_profile ----------------------------------------------------------


async def test_get_user_profile(client: GraphAPIClient) -> None:
    profile = {"first_name": "Alice", "last_name": "Smith", "id": "123"}
    session = _mock_session(get=MagicMock(return_value=_mock_response(json_data=profile)))

    with patch.object(client, "_get_session", return_value=session):
        result = await client.get_user_profile("123")

    assert result == profile
    call = session.get.call_args
    assert call.args[0] == "https://graph.example.com/123"
    assert call.kwargs["params"] == {
        "fields": "first_name,last_name",
        "access_token": "test-token",
    }


async def test_get_user_profile_propagates_errors(client: GraphAPIClient) -> None:
    resp = _mock_response(404)
    resp.raise_for_status = MagicMock(
        side_effect=aiohttp.ClientResponseError(MagicMock(), (), status=404)
    )
    session = _mock_session(get=MagicMock(return_value=resp))

    with patch.object(client, "_get_session", return_value=session):
        with pytest.raises(aiohttp.ClientResponseError):
            await client.get_user_profile("123")


# -- Session lifecycle ---------------------------------------------------------


async def test_session_is_created_lazily_and_reused(client: GraphAPIClient) -> None:
    with patch("messengerflow.messenger.client.aiohttp.ClientSession") as session_cls:
        instance = MagicMock()
        instance.closed = False
        session_cls.return_value = instance

        assert client._get_session() is instance
        assert client._get_session() is instance
        session_cls.assert_called_once()


async def test_close(client: GraphAPIClient) -> None:
    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    client._session = session

    await client.close()

    session.close.assert_awaited_once()
    assert client._session is None
