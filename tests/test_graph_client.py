"""
Tests for GraphAPIClient retries and error mapping.
"""

import pytest
import requests
from unittest.mock import Mock, patch

from mail_sorter.core.exceptions import GraphAPIError, GraphAPIRateLimitError, ItemNotFoundError
from mail_sorter.graph.client import GraphAPIClient
from tests.factories import GraphAPITestFactory


def make_response(status_code=200, body=None, headers=None):
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body if body is not None else {}
    response.text = str(body)
    return response


@pytest.fixture
def token_provider():
    return Mock(return_value="token-123")


@pytest.fixture
def client(token_provider):
    graph = GraphAPIClient(token_provider=token_provider)
    graph._session = Mock()
    return graph


class TestRequest:
    def test_get_sends_bearer_token(self, client, token_provider):
        client._session.request.return_value = make_response(200, {"value": []})

        assert client.get("/me/mailFolders") == {"value": []}

        kwargs = client._session.request.call_args[1]
        assert kwargs["url"] == "https://graph.microsoft.com/v1.0/me/mailFolders"
        assert kwargs["headers"]["Authorization"] == "Bearer token-123"
        token_provider.assert_called_once_with(False)

    def test_post_with_empty_body(self, client):
        client._session.request.return_value = make_response(202)

        assert client.post("/me/messages/1/move", json={"destinationId": "x"}) == {}

    def test_404_maps_to_item_not_found(self, client):
        client._session.request.return_value = make_response(404, GraphAPITestFactory.create_error())

        with pytest.raises(ItemNotFoundError) as exc_info:
            client.get("/me/messages/gone")

        assert exc_info.value.status_code == 404
        assert exc_info.value.error_code == "ErrorItemNotFound"

    def test_item_not_found_code_on_400(self, client):
        client._session.request.return_value = make_response(400, GraphAPITestFactory.create_error())

        with pytest.raises(ItemNotFoundError):
            client.post("/me/messages/gone/move", json={"destinationId": "x"})

    def test_other_4xx_maps_to_graph_error(self, client):
        client._session.request.return_value = make_response(
            403, GraphAPITestFactory.create_error("ErrorAccessDenied", "Access is denied.")
        )

        with pytest.raises(GraphAPIError) as exc_info:
            client.get("/me/mailFolders")

        assert not isinstance(exc_info.value, ItemNotFoundError)
        assert exc_info.value.status_code == 403
        assert exc_info.value.error_code == "ErrorAccessDenied"
        assert "Access is denied." in str(exc_info.value)

    def test_connection_error_is_wrapped(self, client):
        client._session.request.side_effect = requests.ConnectionError("Connection reset")

        with pytest.raises(GraphAPIError, match="Connection reset"):
            client.get("/me/mailFolders")


class TestRetries:
    @patch("mail_sorter.graph.client.time.sleep")
    def test_429_honors_retry_after(self, mock_sleep, client):
        client._session.request.side_effect = [
            make_response(429, headers={"Retry-After": "7"}),
            make_response(200, {"id": "inbox"}),
        ]

        assert client.get("/me/mailFolders/inbox") == {"id": "inbox"}
        mock_sleep.assert_called_once_with(7)

    @patch("mail_sorter.graph.client.time.sleep")
    def test_429_exhausted(self, mock_sleep, client):
        client._session.request.return_value = make_response(429, headers={"Retry-After": "1"})

        with pytest.raises(GraphAPIRateLimitError):
            client.get("/me/mailFolders")

        assert client._session.request.call_count == 4

    @patch("mail_sorter.graph.client.time.sleep")
    def test_5xx_backoff(self, mock_sleep, client):
        client._session.request.side_effect = [
            make_response(503, {}),
            make_response(502, {}),
            make_response(200, {"value": []}),
        ]

        assert client.get("/me/mailFolders") == {"value": []}
        assert [c[0][0] for c in mock_sleep.call_args_list] == [1, 2]

    def test_401_forces_token_refresh(self, client, token_provider):
        client._session.request.side_effect = [
            make_response(401, GraphAPITestFactory.create_error("InvalidAuthenticationToken", "expired")),
            make_response(200, {"value": []}),
        ]

        client.get("/me/mailFolders")

        assert [c[0][0] for c in token_provider.call_args_list] == [False, True]
