#app/crud/user.py
from sqlalchemy.orm import Session
from app.models.user import User
from app.core.exceptions import UserNotFound

def get_user(db: Session, user_id: str, for_update: bool = False) -> User:
    query = db.query(User).filter(User.id == user_id)
    if for_update:
        query = query.with_for_update()
    user = query.first()
    if not user:
        raise UserNotFound(f"User {user_id} not found.")
    return user

def remove_team_from_user(db: Session, user_id: str, team_id: str) -> User:
    """
    tms = tms \\ {team_id}. Список присваивается заново, чтобы JSON-колонка попала в UPDATE.
    """
    user = get_user(db, user_id, for_update=True)
    user.tms = [tm for tm in (user.tms or []) if tm != team_id]
    return user
