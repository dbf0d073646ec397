from typing import Optional

from workbench.core.storage import Storage
from workbench.models import Namespace, Note
from workbench.providers import ProviderError, ProviderRequest
from workbench.utils.logger import get_logger

from .chat_service import ChatService, ConfigurationMissingError, extract_reply_text

logger = get_logger("note_service")

SUMMARY_PROMPT = (
    "Summarize the note in one or two short sentences. "
    "Keep the original language. Return only the summary."
)


class NoteService:
    def __init__(self, storage: Storage, chat_service: ChatService):
        self.storage = storage
        self.chat_service = chat_service

    def summary_namespace(self) -> Optional[Namespace]:
        for namespace in (Namespace.GOOGLE, Namespace.GENERIC):
            if self.storage.get_active_config(namespace):
                return namespace
        return None

    async def summarize(self, note_id: int) -> Optional[Note]:
        """Attach an LLM summary to the note; a no-op if it changed meanwhile."""
        note = self.storage.get_note(note_id)
        if not note or not note.content.strip():
            return None

        namespace = self.summary_namespace()
        if namespace is None:
            logger.info(f"Note {note_id}: no active configuration, summary skipped")
            return None

        request = ProviderRequest(
            messages=[{"role": "user", "content": note.content}],
            system_prompt=SUMMARY_PROMPT,
            temperature=self.chat_service.settings.CHAT_TEMPERATURE,
            max_tokens=self.chat_service.settings.CHAT_MAX_TOKENS,
        )
        try:
            response = await self.chat_service.complete(namespace, request)
        except (ProviderError, ConfigurationMissingError) as e:
            logger.warning(f"Note {note_id}: summary failed: {e}")
            return None

        summary = extract_reply_text(response.body)
        if not summary:
            return None

        current = self.storage.get_note(note_id)
        if current is None or current.content != note.content:
            logger.info(f"Note {note_id}: content changed during summary, discarded")
            return None
        return self.storage.set_note_summary(note_id, summary)

    async def summarize_in_background(self, note_id: int) -> None:
        try:
            await self.summarize(note_id)
        except Exception as e:
            logger.error(f"Note {note_id}: unexpected summary error: {type(e).__name__}: {e}")
