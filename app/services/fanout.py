#app/services/fanout.py
"""
Fanout: доставка payload-а подписанным участникам.

Канал = (topic, user_id). Подписка = живое соединение (socket id) пользователя.
Отправка fire-and-forget: на каждую подписку своя asyncio-задача, ошибка одного
получателя не мешает остальным. Соединение-инициатор (mutator_id) эхо не получает.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set, Tuple

logger = logging.getLogger("Teamwork.Fanout")

Sender = Callable[[Dict[str, Any]], Awaitable[None]]

@dataclass(frozen=True)
class SubOptions:
    mutator_id: Optional[str] = None
    operation_id: Optional[str] = None

@dataclass(frozen=True)
class Subscription:
    topic: str
    user_id: str
    connection_id: str
    send: Sender

class FanoutPublisher:
    def __init__(self):
        self._channels: Dict[Tuple[str, str], Dict[str, Subscription]] = {}
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, topic: str, user_id: str, connection_id: str, send: Sender) -> Subscription:
        subscription = Subscription(topic=topic, user_id=user_id, connection_id=connection_id, send=send)
        self._channels.setdefault((topic, user_id), {})[connection_id] = subscription
        logger.debug(f"Subscribed {connection_id} to {topic}.{user_id}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        key = (subscription.topic, subscription.user_id)
        channel = self._channels.get(key)
        if not channel:
            return
        channel.pop(subscription.connection_id, None)
        if not channel:
            del self._channels[key]

    def subscriptions(self, topic: str, user_id: str):
        return list(self._channels.get((topic, user_id), {}).values())

    def publish(
        self,
        topic: str,
        user_id: str,
        payload_type: str,
        payload: Dict[str, Any],
        sub_options: Optional[SubOptions] = None,
    ) -> int:
        """
        Планирует доставку всем живым подпискам пользователя на topic.
        Возвращает число запланированных доставок. Нужен запущенный event loop.
        """
        sub_options = sub_options or SubOptions()
        message = {
            "topic": topic,
            "type": payload_type,
            "data": payload,
            "operationId": sub_options.operation_id,
        }
        scheduled = 0
        for subscription in self.subscriptions(topic, user_id):
            if sub_options.mutator_id and subscription.connection_id == sub_options.mutator_id:
                continue
            task = asyncio.get_running_loop().create_task(self._deliver(subscription, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            scheduled += 1
        return scheduled

    def fanout(
        self,
        topic: str,
        payload_type: str,
        payload: Dict[str, Any],
        recipients: Iterable[Tuple[str, bool]],
        sub_options: Optional[SubOptions] = None,
    ) -> int:
        """
        recipients: пары (user_id, allow). allow=False никогда не получает payload,
        повторный user_id получает его один раз.
        """
        seen: Set[str] = set()
        scheduled = 0
        for user_id, allow in recipients:
            if not allow or user_id in seen:
                continue
            seen.add(user_id)
            scheduled += self.publish(topic, user_id, payload_type, payload, sub_options)
        return scheduled

    async def _deliver(self, subscription: Subscription, message: Dict[str, Any]) -> None:
        try:
            await subscription.send(message)
        except Exception as e:
            logger.warning(
                f"Delivery of {message['type']} to {subscription.user_id} "
                f"({subscription.connection_id}) failed: {e}"
            )

    async def drain(self) -> None:
        """Дождаться уже запланированных доставок (shutdown, тесты)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
