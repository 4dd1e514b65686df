import asyncio

from app.services.fanout import FanoutPublisher, SubOptions

class Inbox:
    def __init__(self):
        self.messages = []

    async def send(self, message):
        self.messages.append(message)

async def failing_send(message):
    raise ConnectionError("socket closed")

def test_publish_reaches_every_connection_of_user():
    async def scenario():
        fanout = FanoutPublisher()
        phone, laptop, other = Inbox(), Inbox(), Inbox()
        fanout.subscribe("project", "a", "s1", phone.send)
        fanout.subscribe("project", "a", "s2", laptop.send)
        fanout.subscribe("project", "b", "s3", other.send)
        scheduled = fanout.publish("project", "a", "UpdateProjectPayload", {"projectId": "t1::p1"})
        await fanout.drain()
        return scheduled, phone, laptop, other

    scheduled, phone, laptop, other = asyncio.run(scenario())
    assert scheduled == 2
    assert len(phone.messages) == 1
    assert laptop.messages[0]["data"] == {"projectId": "t1::p1"}
    assert other.messages == []

def test_mutator_connection_gets_no_echo():
    async def scenario():
        fanout = FanoutPublisher()
        origin, elsewhere = Inbox(), Inbox()
        fanout.subscribe("project", "a", "s1", origin.send)
        fanout.subscribe("project", "a", "s2", elsewhere.send)
        fanout.publish("project", "a", "UpdateProjectPayload", {}, SubOptions(mutator_id="s1", operation_id="op1"))
        await fanout.drain()
        return origin, elsewhere

    origin, elsewhere = asyncio.run(scenario())
    assert origin.messages == []
    assert elsewhere.messages[0]["operationId"] == "op1"

def test_fanout_respects_allow_and_dedupes():
    async def scenario():
        fanout = FanoutPublisher()
        inboxes = {user_id: Inbox() for user_id in ("a", "b", "c")}
        for user_id, inbox in inboxes.items():
            fanout.subscribe("project", user_id, f"s-{user_id}", inbox.send)
        scheduled = fanout.fanout(
            "project", "UpdateProjectPayload", {"projectId": "t1::p1"},
            [("a", True), ("b", False), ("a", True), ("c", True)],
        )
        await fanout.drain()
        return scheduled, inboxes

    scheduled, inboxes = asyncio.run(scenario())
    assert scheduled == 2
    assert len(inboxes["a"].messages) == 1
    assert inboxes["b"].messages == []
    assert len(inboxes["c"].messages) == 1

def test_failed_recipient_does_not_block_others():
    async def scenario():
        fanout = FanoutPublisher()
        healthy = Inbox()
        fanout.subscribe("project", "a", "broken", failing_send)
        fanout.subscribe("project", "b", "ok", healthy.send)
        fanout.fanout("project", "UpdateProjectPayload", {}, [("a", True), ("b", True)])
        await fanout.drain()
        return healthy

    assert len(asyncio.run(scenario()).messages) == 1

def test_unsubscribe():
    async def scenario():
        fanout = FanoutPublisher()
        inbox = Inbox()
        subscription = fanout.subscribe("project", "a", "s1", inbox.send)
        fanout.unsubscribe(subscription)
        scheduled = fanout.publish("project", "a", "UpdateProjectPayload", {})
        await fanout.drain()
        return scheduled, fanout.subscriptions("project", "a")

    scheduled, remaining = asyncio.run(scenario())
    assert scheduled == 0
    assert remaining == []

def test_topics_are_separate():
    async def scenario():
        fanout = FanoutPublisher()
        inbox = Inbox()
        fanout.subscribe("teamMember", "a", "s1", inbox.send)
        fanout.publish("project", "a", "UpdateProjectPayload", {})
        await fanout.drain()
        return inbox

    assert asyncio.run(scenario()).messages == []
