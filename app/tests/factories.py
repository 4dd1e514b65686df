import json
from typing import Any, Dict, Iterable

def build_content(*texts: str, tags: Iterable[str] = (), mentions: Iterable[str] = ()) -> str:
    """raw draft JSON: блоки текста + TAG/MENTION сущности."""
    entity_map: Dict[str, Any] = {}
    for tag in tags:
        entity_map[str(len(entity_map))] = {"type": "TAG", "data": {"value": tag}}
    for user_id in mentions:
        entity_map[str(len(entity_map))] = {"type": "MENTION", "data": {"userId": user_id}}
    return json.dumps({"blocks": [{"text": text} for text in texts], "entityMap": entity_map})
