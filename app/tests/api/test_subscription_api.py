import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

def test_subscribe_requires_valid_token(client: TestClient):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/subscriptions/project?token=garbage") as websocket:
            websocket.receive_json()

def test_project_update_is_pushed_to_subscriber(client: TestClient, make_team, make_project, token_headers):
    make_team("t1", ["a", "b"], lead="a")
    make_project("t1::p1", "a")
    token = token_headers("b")["Authorization"].split(" ")[1]

    with client.websocket_connect(f"/subscriptions/project?token={token}&socketId=sock-b") as websocket:
        assert websocket.receive_json() == {"type": "subscribed", "topic": "project", "socketId": "sock-b"}

        response = client.patch(
            "/projects/t1::p1",
            json={"status": "done"},
            headers={**token_headers("a"), "X-Socket-Id": "sock-a"},
        )
        assert response.status_code == 200, response.text

        message = websocket.receive_json()
        assert message["type"] == "UpdateProjectPayload"
        assert message["data"]["projectId"] == "t1::p1"
        assert message["operationId"]
