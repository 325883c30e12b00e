"""
QnA Maker REST clients for the authoring and runtime endpoints.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

import httpx

from .models import (
    Environment,
    KnowledgebaseDetails,
    Operation,
    QnaEntry,
    QnaSearchResultList,
)
from .settings import QnAMakerSettings

logger = logging.getLogger(__name__)

API_VERSION_PATH = "/qnamaker/v4.0"


class QnAMakerClientBase(ABC):
    """Knowledge base management surface."""

    @abstractmethod
    async def update(self, knowledge_base_id: str, payload: Dict[str, Any]) -> Operation:
        """Submit an add/update/delete change set."""
        pass

    @abstractmethod
    async def get_details(self, knowledge_base_id: str) -> KnowledgebaseDetails:
        """Get knowledge base details."""
        pass

    @abstractmethod
    async def download(self, knowledge_base_id: str, environment: Environment) -> List[QnaEntry]:
        """Download every QnA document of one environment."""
        pass

    @abstractmethod
    async def publish(self, knowledge_base_id: str) -> None:
        """Publish the test knowledge base to production."""
        pass

    @abstractmethod
    async def get_operation(self, operation_id: str) -> Operation:
        """Get the state of a long-running operation."""
        pass


class QnAMakerRuntimeClientBase(ABC):
    """Answer generation surface."""

    @abstractmethod
    async def generate_answer(self, knowledge_base_id: str, query: Dict[str, Any]) -> QnaSearchResultList:
        """Get ranked answers for a question."""
        pass


class QnAMakerClient(QnAMakerClientBase):
    """QnA Maker v4.0 authoring client."""

    def __init__(self, settings: QnAMakerSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not settings.endpoint:
            raise ValueError("QnA Maker endpoint not configured")
        if not settings.subscription_key:
            raise ValueError("QnA Maker subscription key not found")

        self.settings = settings
        self.base_url = settings.endpoint.rstrip("/") + API_VERSION_PATH
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Ocp-Apim-Subscription-Key": self.settings.subscription_key},
            timeout=self.settings.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        async with self._client() as client:
            try:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response
            except httpx.HTTPError as e:
                logger.error(f"QnA Maker {method} {path} failed: {e}")
                raise

    async def update(self, knowledge_base_id: str, payload: Dict[str, Any]) -> Operation:
        response = await self._request("PATCH", f"/knowledgebases/{knowledge_base_id}", json=payload)
        operation = Operation.from_dict(response.json())
        logger.debug(f"Update operation {operation.operation_id} is {operation.operation_state}")
        return operation

    async def get_details(self, knowledge_base_id: str) -> KnowledgebaseDetails:
        response = await self._request("GET", f"/knowledgebases/{knowledge_base_id}")
        return KnowledgebaseDetails.from_dict(response.json())

    async def download(self, knowledge_base_id: str, environment: Environment) -> List[QnaEntry]:
        environment = Environment(environment)
        response = await self._request("GET", f"/knowledgebases/{knowledge_base_id}/{environment.value}/qna")
        documents = response.json().get("qnaDocuments") or []
        return [QnaEntry.from_dict(doc) for doc in documents]

    async def publish(self, knowledge_base_id: str) -> None:
        await self._request("POST", f"/knowledgebases/{knowledge_base_id}")

    async def get_operation(self, operation_id: str) -> Operation:
        response = await self._request("GET", f"/operations/{operation_id}")
        return Operation.from_dict(response.json())


class QnAMakerRuntimeClient(QnAMakerRuntimeClientBase):
    """QnA Maker runtime client for generateAnswer."""

    def __init__(self, settings: QnAMakerSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not settings.runtime_endpoint:
            raise ValueError("QnA Maker runtime endpoint not configured")
        if not settings.endpoint_key:
            raise ValueError("QnA Maker endpoint key not found")

        self.settings = settings
        self.base_url = settings.runtime_endpoint.rstrip("/") + "/qnamaker"
        self._transport = transport

    async def generate_answer(self, knowledge_base_id: str, query: Dict[str, Any]) -> QnaSearchResultList:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"EndpointKey {self.settings.endpoint_key}"},
            timeout=self.settings.timeout,
            transport=self._transport,
        ) as client:
            path = f"/knowledgebases/{knowledge_base_id}/generateAnswer"
            body = dict(query)
            # Unset top leaves the service default of one answer
            if self.settings.top is not None:
                body.setdefault("top", self.settings.top)
            try:
                response = await client.post(path, json=body)
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error(f"QnA Maker generateAnswer failed: {e}")
                raise

        return QnaSearchResultList.from_dict(response.json())
