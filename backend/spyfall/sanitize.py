import re
import string

from spyfall.errors import InvalidName, InvalidRoomCode

ROOM_CODE_LENGTH = 4
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits

_MARKUP_CHARS = re.compile(r'[<>&"\'`]')
_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b-\x1f\x7f]')
_ROOM_CODE_RE = re.compile(rf'^[A-Z0-9]{{{ROOM_CODE_LENGTH}}}$')


def strip_markup(text: str) -> str:
    """Remove characters that are significant to HTML and control bytes."""
    return _CONTROL_CHARS.sub('', _MARKUP_CHARS.sub('', text or ''))


def sanitize_name(raw, max_length: int = 20) -> str:
    """Normalize a display name: no markup, single spaces, truncated."""
    cleaned = ' '.join(strip_markup(str(raw or '')).split())
    return cleaned[:max_length].strip()


def validate_name(raw, min_length: int = 2, max_length: int = 20) -> str:
    name = sanitize_name(raw, max_length=max_length)
    if len(name) < min_length:
        raise InvalidName(f'Please enter a name (at least {min_length} characters)')
    return name


def normalize_room_code(raw) -> str:
    code = str(raw or '').strip().upper()
    if not _ROOM_CODE_RE.match(code):
        raise InvalidRoomCode()
    return code


def sanitize_chat(raw, max_length: int = 200) -> str:
    """Trim, drop markup characters and cap the length. May return ''."""
    return strip_markup(str(raw or '')).strip()[:max_length].rstrip()
