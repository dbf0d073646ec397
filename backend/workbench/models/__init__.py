from .base import CamelModel, utcnow
from .user import User
from .prompt import SystemPrompt, DEFAULT_PROMPTS
from .message import ChatMessage, Role
from .api_config import ApiConfiguration, Namespace
from .note import Note, derive_title, resolve_title
from .usage import UsageEntry, usage_key
