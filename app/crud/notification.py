#app/crud/notification.py
from sqlalchemy.orm import Session
from app.models.notification import Notification, KICKED_OUT, PROJECT_INVOLVES
from datetime import datetime
from typing import List, Dict, Any, Iterable
import logging
import uuid

logger = logging.getLogger("Teamwork.Notifications")

def get_user_notifications_for_team(db: Session, user_id: str, team_id: str) -> List[Notification]:
    """
    Уведомления команды, адресованные пользователю.
    """
    candidates = (
        db.query(Notification)
        .filter(Notification.team_id == team_id)
        .with_for_update()
        .all()
    )
    # user_ids хранится как JSON с экранированием не-ASCII, поэтому сравнение только в Python
    return [n for n in candidates if user_id in (n.user_ids or [])]

def delete_notifications(db: Session, notifications: Iterable[Notification]) -> List[Dict[str, Any]]:
    """
    Удаляет уведомления и возвращает их снимки (old values).
    """
    removed = []
    for notification in notifications:
        removed.append(notification.to_dict())
        db.delete(notification)
    return removed

def create_kickout_notification(db: Session, user_id: str, team_id: str, now: datetime) -> Notification:
    notification = Notification(
        id=uuid.uuid4().hex,
        team_id=team_id,
        user_ids=[user_id],
        type=KICKED_OUT,
        start_at=now,
    )
    db.add(notification)
    return notification

def get_project_notifications(db: Session, project_id: str, user_ids: Iterable[str]) -> List[Notification]:
    wanted = set(user_ids)
    if not wanted:
        return []
    notifications = (
        db.query(Notification)
        .filter(Notification.project_id == project_id, Notification.type == PROJECT_INVOLVES)
        .with_for_update()
        .all()
    )
    return [n for n in notifications if wanted.intersection(n.user_ids or [])]

def apply_notification_diff(db: Session, diff, now: datetime) -> Dict[str, List[Dict[str, Any]]]:
    """
    Применяет NotificationDiff внутри текущей транзакции:
    создаёт уведомления для to_add и удаляет совпадающие для to_remove.
    """
    # сначала удаление: смена вовлечённости = remove старого + add нового
    removed = []
    by_project: Dict[str, List[str]] = {}
    for directive in diff.notifications_to_remove:
        by_project.setdefault(directive.project_id, []).append(directive.user_id)
    for project_id, user_ids in by_project.items():
        removed.extend(delete_notifications(db, get_project_notifications(db, project_id, user_ids)))

    added = []
    for directive in diff.notifications_to_add:
        notification = Notification(
            id=uuid.uuid4().hex,
            team_id=directive.team_id,
            user_ids=[directive.user_id],
            type=directive.type,
            start_at=now,
            project_id=directive.project_id,
            involvement=directive.involvement,
        )
        db.add(notification)
        added.append(notification.to_dict())

    if added or removed:
        logger.info(f"Notification diff applied: +{len(added)} -{len(removed)}")
    return {"added": added, "removed": removed}
