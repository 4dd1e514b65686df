#app/services/notification_diff.py
"""
Чистый расчёт изменений уведомлений при правке проекта.

Кто «вовлечён» в проект:
  * владелец (ASSIGNEE) - всегда;
  * упомянутые в контенте (MENTIONEE) - только если проект не private.

Diff = разница вовлечённых до и после, без автора правки и без ignore-набора.
Если передан состав команды, вовлечены только её активные участники.
Функция детерминирована: одинаковый вход даёт одинаковый diff (ретраи безопасны).
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from app.core.draft import PRIVATE_TAG, get_mentioned_user_ids, parse_content
from app.core.exceptions import ProjectValidationError
from app.models.notification import ASSIGNEE, MENTIONEE, PROJECT_INVOLVES

@dataclass(frozen=True, order=True)
class NotificationDirective:
    user_id: str
    team_id: str
    project_id: str
    involvement: str
    type: str = PROJECT_INVOLVES

    def to_dict(self) -> Dict[str, str]:
        return {
            "userId": self.user_id,
            "teamId": self.team_id,
            "projectId": self.project_id,
            "involvement": self.involvement,
            "type": self.type,
        }

@dataclass(frozen=True)
class NotificationDiff:
    notifications_to_add: Tuple[NotificationDirective, ...] = field(default_factory=tuple)
    notifications_to_remove: Tuple[NotificationDirective, ...] = field(default_factory=tuple)

    def is_empty(self) -> bool:
        return not self.notifications_to_add and not self.notifications_to_remove

    def to_dict(self) -> Dict[str, Any]:
        return {
            "notificationsToAdd": [d.to_dict() for d in self.notifications_to_add],
            "notificationsToRemove": [d.to_dict() for d in self.notifications_to_remove],
        }

def _mentions(project: Mapping[str, Any]):
    raw = project.get("content")
    if not raw:
        return []
    try:
        return get_mentioned_user_ids(parse_content(raw))
    except ProjectValidationError:
        # старый контент мог быть сохранён до валидации: упоминаний в нём нет
        return []

def get_involved_users(project: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """user_id -> involvement."""
    if not project:
        return {}
    involved: Dict[str, str] = {}
    if PRIVATE_TAG not in (project.get("tags") or []):
        for user_id in _mentions(project):
            involved[user_id] = MENTIONEE
    owner = project.get("user_id")
    if owner:
        involved[owner] = ASSIGNEE
    return involved

def compute_notification_diff(
    new_project: Mapping[str, Any],
    old_project: Optional[Mapping[str, Any]],
    viewer_id: str,
    users_to_ignore: Iterable[str] = (),
    team_user_ids: Optional[Iterable[str]] = None,
) -> NotificationDiff:
    excluded = set(users_to_ignore)
    excluded.add(viewer_id)

    new_involved = get_involved_users(new_project)
    old_involved = get_involved_users(old_project)
    if team_user_ids is not None:
        members = set(team_user_ids)
        new_involved = {u: i for u, i in new_involved.items() if u in members}
        old_involved = {u: i for u, i in old_involved.items() if u in members}
    project_id = new_project["id"]
    team_id = new_project["team_id"]

    to_add = [
        NotificationDirective(user_id, team_id, project_id, involvement)
        for user_id, involvement in new_involved.items()
        if user_id not in excluded and old_involved.get(user_id) != involvement
    ]
    to_remove = [
        NotificationDirective(user_id, team_id, project_id, involvement)
        for user_id, involvement in old_involved.items()
        if user_id not in excluded and new_involved.get(user_id) != involvement
    ]
    return NotificationDiff(
        notifications_to_add=tuple(sorted(to_add)),
        notifications_to_remove=tuple(sorted(to_remove)),
    )
