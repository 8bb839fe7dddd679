from typing import Iterable, List, Optional, Tuple

from mycroft.core.exceptions import InvalidDateError, ValidationError
from mycroft.utils.datetime_utils import parse_date

MAX_TAG_LENGTH = 30


def is_valid_date(date_str: str) -> bool:
    try:
        parse_date(date_str)
        return True
    except InvalidDateError:
        return False


def validate_text(text: str, min_length: int = 0, max_length: int = 1000, field_name: str = "text") -> str:
    if not isinstance(text, str):
        raise ValidationError(f"{field_name} must be a string")

    text = text.strip()
    if len(text) < min_length:
        raise ValidationError(f"{field_name} must have at least {min_length} characters")
    if len(text) > max_length:
        raise ValidationError(f"{field_name} must have at most {max_length} characters")
    return text


def validate_enum_value(value, enum_class: type, field_name: str = "value") -> str:
    """Accepts an enum member or its value, returns the value"""
    if isinstance(value, enum_class):
        return value.value
    try:
        return enum_class(value).value
    except ValueError:
        valid_values = [e.value for e in enum_class]
        raise ValidationError(f"{field_name} must be one of: {valid_values}")


def validate_optional_int(value: Optional[int], field_name: str, minimum: int = 0,
                          maximum: Optional[int] = None) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer")
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f"{minimum}..{maximum}" if maximum is not None else f">= {minimum}"
        raise ValidationError(f"{field_name} must be {bounds}, got {value}")
    return value


def normalize_tags(tags: Iterable[str]) -> Tuple[str, ...]:
    """Strip, drop empties and overlong tags, keep first occurrence order"""
    seen: List[str] = []
    for tag in tags or ():
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        if 0 < len(tag) <= MAX_TAG_LENGTH and tag not in seen:
            seen.append(tag)
    return tuple(seen)
