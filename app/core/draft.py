#app/core/draft.py
"""
Хелперы для rich-text контента проекта (raw draft-js JSON):

    {"blocks": [{"text": "..."}], "entityMap": {"0": {"type": "TAG", "data": {"value": "private"}}}}
"""
import json
from typing import Any, Dict, List

from app.core.exceptions import ProjectValidationError

TAG_ENTITY = "TAG"
MENTION_ENTITY = "MENTION"

PRIVATE_TAG = "private"
ARCHIVED_TAG = "archived"

def parse_content(raw: str) -> Dict[str, Any]:
    try:
        content = json.loads(raw)
    except (TypeError, ValueError):
        raise ProjectValidationError("Project content must be a JSON document.")
    if not isinstance(content, dict) or not isinstance(content.get("blocks", []), list):
        raise ProjectValidationError("Project content must contain a list of blocks.")
    return content

def _entities(content: Dict[str, Any]) -> List[Dict[str, Any]]:
    entity_map = content.get("entityMap") or {}
    # порядок ключей entityMap ("0", "1", ...) определяет порядок тегов
    return [entity_map[key] for key in sorted(entity_map, key=lambda k: (len(str(k)), str(k)))]

def get_tags_from_entity_map(content: Dict[str, Any]) -> List[str]:
    tags: List[str] = []
    for entity in _entities(content):
        if entity.get("type") != TAG_ENTITY:
            continue
        value = (entity.get("data") or {}).get("value")
        if value and value not in tags:
            tags.append(value)
    return tags

def get_mentioned_user_ids(content: Dict[str, Any]) -> List[str]:
    user_ids: List[str] = []
    for entity in _entities(content):
        if entity.get("type") != MENTION_ENTITY:
            continue
        user_id = (entity.get("data") or {}).get("userId")
        if user_id and user_id not in user_ids:
            user_ids.append(user_id)
    return user_ids

def get_block_texts(content: Dict[str, Any]) -> List[str]:
    return [block.get("text", "") for block in content.get("blocks", [])]

def blocks_to_markdown(texts: List[str]) -> str:
    """Упрощённый экспорт: каждый блок - отдельный абзац."""
    return "\n\n".join(text for text in texts if text.strip())
