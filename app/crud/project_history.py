#app/crud/project_history.py
"""
История изменений проекта с debounce-схлопыванием.

Решение merge/append зависит только от (время последней записи, now, окно),
поэтому часы и окно передаются явно.
"""
import uuid
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from app.core.clock import EPOCH, as_utc
from app.core.settings import settings
from app.models.project import ProjectHistory

logger = logging.getLogger("Teamwork.History")

SNAPSHOT_FIELDS = ("content", "status", "team_member_id", "tags")

def default_debounce_window() -> timedelta:
    return timedelta(seconds=settings.PROJECT_HISTORY_DEBOUNCE_SECONDS)

def is_within_debounce(last_updated_at: Optional[datetime], now: datetime, window: timedelta) -> bool:
    last = as_utc(last_updated_at) or EPOCH
    return last > as_utc(now) - window

def is_history_worthy(changed_fields: Iterable[str]) -> bool:
    """Чистая пересортировка (только sort_order) в историю не пишется."""
    return set(changed_fields) != {"sort_order"}

def get_last_entry(db: Session, project_id: str) -> Optional[ProjectHistory]:
    return (
        db.query(ProjectHistory)
        .filter(ProjectHistory.project_id == project_id)
        .order_by(ProjectHistory.updated_at.desc(), ProjectHistory.id.desc())
        .with_for_update()
        .first()
    )

def log_project_history(
    db: Session,
    project_id: str,
    snapshot: Dict[str, Any],
    now: datetime,
    window: Optional[timedelta] = None,
) -> ProjectHistory:
    """
    Merge в последнюю запись, если она моложе окна (id и updated_at не меняются),
    иначе новая запись: копия предыдущей + новый снимок.
    """
    window = window if window is not None else default_debounce_window()
    values = {k: snapshot[k] for k in SNAPSHOT_FIELDS if k in snapshot}
    if "tags" in values:
        values["tags"] = list(values["tags"] or [])

    last = get_last_entry(db, project_id)
    if last is not None and is_within_debounce(last.updated_at, now, window):
        for key, value in values.items():
            setattr(last, key, value)
        logger.debug(f"Merged history entry {last.id} for project {project_id}")
        return last

    base = {k: getattr(last, k) for k in SNAPSHOT_FIELDS} if last is not None else {}
    base.update(values)
    entry = ProjectHistory(
        id=uuid.uuid4().hex,
        project_id=project_id,
        updated_at=now,
        **base,
    )
    db.add(entry)
    db.flush()
    logger.debug(f"Appended history entry {entry.id} for project {project_id}")
    return entry
