import orjson
from datetime import datetime
from typing import Any, Optional, Union

def dumps(obj: Any, indent: bool = False) -> str:
    """Сериализует объект в JSON-строку (datetime -> ISO 8601)."""
    options = orjson.OPT_UTC_Z | orjson.OPT_NON_STR_KEYS
    if indent:
        options |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, option=options).decode('utf-8')

def loads(s: Union[str, bytes]) -> Any:
    """Десериализует JSON-строку в объект Python."""
    if isinstance(s, str):
        s = s.encode('utf-8')
    return orjson.loads(s)

def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Разбирает ISO 8601 строку, записанную dumps."""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)
