"""
QnA service provider: knowledge base operations for the FAQ bot.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

from ..storage.configuration_provider import ConfigurationDataProvider
from ..storage.models import (
    CONFIGURATION_INFO_PARTITION_KEY,
    ConfigurationEntity,
    ConfigurationEntityTypes,
)
from .client import QnAMakerClientBase, QnAMakerRuntimeClientBase
from .models import (
    EDITORIAL_SOURCE,
    METADATA_ACTIVITY_REFERENCE_ID,
    METADATA_CONVERSATION_ID,
    METADATA_CREATED_AT,
    METADATA_CREATED_BY,
    METADATA_UPDATED_AT,
    METADATA_UPDATED_BY,
    Environment,
    MetadataEntry,
    Operation,
    QnaEntry,
    QnaSearchResultList,
    utc_ticks,
)
from .settings import QnAMakerSettings

logger = logging.getLogger(__name__)

_FRACTION = re.compile(r"\.(\d+)")


def _strip(text: Optional[str]) -> Optional[str]:
    return text.strip() if text is not None else None


def conversation_id_suffix(conversation_id: Optional[str]) -> str:
    """Trailing segment after the last colon of a conversation id."""
    if not conversation_id:
        return ""
    return conversation_id.split(":")[-1]


def parse_timestamp(value: str) -> datetime:
    """Parse a service timestamp; naive values are taken as UTC."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    # fromisoformat accepts at most six fractional digits
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class QnaServiceProvider:
    """Knowledge base operations against QnA Maker.

    The active knowledge base id is read from the configuration store on
    every call, so a changed id takes effect on the next operation.
    """

    def __init__(
        self,
        configuration_provider: ConfigurationDataProvider,
        settings: QnAMakerSettings,
        qna_maker_client: QnAMakerClientBase,
        qna_maker_runtime_client: Optional[QnAMakerRuntimeClientBase] = None,
    ):
        self.configuration_provider = configuration_provider
        self.qna_maker_client = qna_maker_client
        self.qna_maker_runtime_client = qna_maker_runtime_client
        self.score_threshold = settings.score_threshold

    async def _active_knowledge_base_id(self) -> Optional[str]:
        knowledge_base = await self.get_knowledge_base(ConfigurationEntityTypes.KNOWLEDGE_BASE_ID)
        return knowledge_base.data if knowledge_base else None

    async def add_qna(
        self,
        question: str,
        combined_description: str,
        created_by: str,
        conversation_id: Optional[str],
        activity_reference_id: str,
    ) -> Operation:
        """
        Add a QnA pair to the knowledge base.

        Args:
            question: Question text
            combined_description: Answer text
            created_by: User who created the entry
            conversation_id: Conversation the entry originated from
            activity_reference_id: Reference to the originating activity

        Returns:
            Operation handle the caller can poll
        """
        knowledge_base_id = await self._active_knowledge_base_id()

        entry = QnaEntry(
            questions=[_strip(question)],
            answer=_strip(combined_description),
            metadata=[
                MetadataEntry(METADATA_CREATED_AT, utc_ticks()),
                MetadataEntry(METADATA_CREATED_BY, created_by),
                MetadataEntry(METADATA_CONVERSATION_ID, conversation_id_suffix(conversation_id)),
                MetadataEntry(METADATA_ACTIVITY_REFERENCE_ID, activity_reference_id),
            ],
        )

        logger.info(f"Adding QnA pair to knowledge base {knowledge_base_id}")
        return await self.qna_maker_client.update(knowledge_base_id, {
            "add": {"qnaList": [entry.to_dict()]},
        })

    async def update_qna(
        self,
        question_id: int,
        answer: str,
        updated_by: str,
        updated_question: Optional[str],
        question: Optional[str],
    ) -> None:
        """
        Update a QnA pair in the knowledge base.

        The question text is only replaced when updated_question is non-empty
        and differs from question ignoring case and surrounding whitespace.
        """
        knowledge_base_id = await self._active_knowledge_base_id()

        questions = None
        new_question = _strip(updated_question)
        if new_question:
            original_question = _strip(question)
            if new_question.upper() != (original_question or "").upper():
                questions = {
                    "add": [new_question],
                    "delete": [original_question],
                }

        qna: Dict[str, Any] = {
            "id": question_id,
            "source": EDITORIAL_SOURCE,
            "answer": _strip(answer),
            "metadata": {
                "add": [
                    MetadataEntry(METADATA_UPDATED_AT, utc_ticks()).to_dict(),
                    MetadataEntry(METADATA_UPDATED_BY, updated_by).to_dict(),
                ],
            },
        }
        if questions is not None:
            qna["questions"] = questions

        logger.info(f"Updating QnA pair {question_id} in knowledge base {knowledge_base_id}")
        await self.qna_maker_client.update(knowledge_base_id, {
            "update": {"qnaList": [qna]},
        })

    async def delete_qna(self, question_id: int) -> None:
        """Delete a QnA pair from the knowledge base by id."""
        knowledge_base_id = await self._active_knowledge_base_id()

        logger.info(f"Deleting QnA pair {question_id} from knowledge base {knowledge_base_id}")
        await self.qna_maker_client.update(knowledge_base_id, {
            "delete": {"ids": [question_id]},
        })

    async def generate_answer(self, question: str, is_test_knowledge_base: bool) -> QnaSearchResultList:
        """
        Get answers from the knowledge base for a question.

        Args:
            question: Question text
            is_test_knowledge_base: Query the test slot instead of production

        Returns:
            Ranked answers above the configured score threshold
        """
        if self.qna_maker_runtime_client is None:
            raise ValueError("QnA Maker runtime client not configured")

        knowledge_base_id = await self._active_knowledge_base_id()

        logger.debug(f"Generating answer from knowledge base {knowledge_base_id} (test={is_test_knowledge_base})")
        return await self.qna_maker_runtime_client.generate_answer(knowledge_base_id, {
            "isTest": is_test_knowledge_base,
            "question": _strip(question),
            "scoreThreshold": self.score_threshold,
        })

    async def download_knowledgebase(
        self,
        knowledge_base_id: str,
        environment: Environment = Environment.PROD,
    ) -> List[QnaEntry]:
        """Download every QnA document of a knowledge base environment."""
        documents = await self.qna_maker_client.download(knowledge_base_id, environment)
        logger.info(f"Downloaded {len(documents)} QnA documents from {knowledge_base_id}")
        return list(documents)

    async def get_knowledge_base(self, entity_type: str) -> Optional[ConfigurationEntity]:
        """Get a configuration entity from the configuration info partition."""
        return await self.configuration_provider.get_configuration_data(
            CONFIGURATION_INFO_PARTITION_KEY, entity_type
        )

    async def get_publish_status(self, knowledge_base_id: str) -> bool:
        """
        Check whether the knowledge base needs to be published.

        Returns True when it changed after the last publish, or when either
        timestamp is unknown.
        """
        details = await self.qna_maker_client.get_details(knowledge_base_id)
        if details and details.last_changed_timestamp and details.last_published_timestamp:
            changed = parse_timestamp(details.last_changed_timestamp)
            published = parse_timestamp(details.last_published_timestamp)
            return changed > published

        return True

    async def publish_knowledgebase(self, knowledge_base_id: str) -> None:
        """Publish the knowledge base."""
        logger.info(f"Publishing knowledge base {knowledge_base_id}")
        await self.qna_maker_client.publish(knowledge_base_id)

    async def get_initial_published_status(self, knowledge_base_id: str) -> bool:
        """Check whether the knowledge base has been published at least once."""
        details = await self.qna_maker_client.get_details(knowledge_base_id)
        return bool(details.last_published_timestamp)
