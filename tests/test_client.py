"""
Tests for the QnA Maker REST clients.
"""

import json
import pytest
from pathlib import Path

# Add project root to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from faqplus.qna.client import QnAMakerClient, QnAMakerRuntimeClient
from faqplus.qna.models import Environment
from faqplus.qna.settings import QnAMakerSettings


class RecordingTransport:
    """Builds an httpx mock transport that records requests."""

    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.body = body
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.body is None:
            return httpx.Response(self.status_code)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def settings():
    return QnAMakerSettings(
        endpoint="https://faqbot.cognitiveservices.azure.com/",
        subscription_key="sub-key",
        runtime_endpoint="https://faqbot.azurewebsites.net",
        endpoint_key="endpoint-key",
        score_threshold=0.3,
        top=5,
    )


class TestQnAMakerClient:
    """Test the authoring client."""

    @pytest.mark.asyncio
    async def test_update(self, settings):
        recorder = RecordingTransport(202, {
            "operationState": "NotStarted",
            "operationId": "op-1",
            "createdTimestamp": "2019-05-01T10:00:00Z",
        })
        client = QnAMakerClient(settings, transport=recorder.transport)

        operation = await client.update("kb-1", {"delete": {"ids": [3]}})

        request = recorder.requests[0]
        assert request.method == "PATCH"
        assert str(request.url) == "https://faqbot.cognitiveservices.azure.com/qnamaker/v4.0/knowledgebases/kb-1"
        assert request.headers["Ocp-Apim-Subscription-Key"] == "sub-key"
        assert json.loads(request.content) == {"delete": {"ids": [3]}}
        assert operation.operation_id == "op-1"
        assert operation.operation_state == "NotStarted"
        assert not operation.is_finished

    @pytest.mark.asyncio
    async def test_get_details(self, settings):
        recorder = RecordingTransport(200, {
            "id": "kb-1",
            "name": "FAQ",
            "lastChangedTimestamp": "2019-05-02T10:00:00Z",
            "lastPublishedTimestamp": "2019-05-01T10:00:00Z",
        })
        client = QnAMakerClient(settings, transport=recorder.transport)

        details = await client.get_details("kb-1")

        assert recorder.requests[0].method == "GET"
        assert details.name == "FAQ"
        assert details.last_changed_timestamp == "2019-05-02T10:00:00Z"
        assert details.last_published_timestamp == "2019-05-01T10:00:00Z"

    @pytest.mark.asyncio
    async def test_download(self, settings):
        recorder = RecordingTransport(200, {"qnaDocuments": [{
            "id": 1,
            "answer": "It is a bot.",
            "source": "Editorial",
            "questions": ["What is FAQ++?"],
            "metadata": [{"name": "createdby", "value": "user1"}],
        }]})
        client = QnAMakerClient(settings, transport=recorder.transport)

        entries = await client.download("kb-1", Environment.TEST)

        assert recorder.requests[0].url.path == "/qnamaker/v4.0/knowledgebases/kb-1/Test/qna"
        assert len(entries) == 1
        assert entries[0].questions == ["What is FAQ++?"]
        assert entries[0].metadata_value("createdby") == "user1"

    @pytest.mark.asyncio
    async def test_publish(self, settings):
        recorder = RecordingTransport(204)
        client = QnAMakerClient(settings, transport=recorder.transport)

        await client.publish("kb-1")

        assert recorder.requests[0].method == "POST"
        assert recorder.requests[0].url.path == "/qnamaker/v4.0/knowledgebases/kb-1"

    @pytest.mark.asyncio
    async def test_get_operation(self, settings):
        recorder = RecordingTransport(200, {"operationState": "Succeeded", "operationId": "op-1"})
        client = QnAMakerClient(settings, transport=recorder.transport)

        operation = await client.get_operation("op-1")

        assert recorder.requests[0].url.path == "/qnamaker/v4.0/operations/op-1"
        assert operation.is_finished

    @pytest.mark.asyncio
    async def test_error_is_raised(self, settings):
        recorder = RecordingTransport(404, {"error": {"code": "KbNotFound"}})
        client = QnAMakerClient(settings, transport=recorder.transport)

        with pytest.raises(httpx.HTTPStatusError):
            await client.get_details("missing")

    def test_missing_subscription_key(self, settings):
        settings.subscription_key = None
        with pytest.raises(ValueError):
            QnAMakerClient(settings)


class TestQnAMakerRuntimeClient:
    """Test the runtime client."""

    @pytest.mark.asyncio
    async def test_generate_answer(self, settings):
        recorder = RecordingTransport(200, {"answers": [
            {"questions": ["refund policy"], "answer": "30 days", "score": 87.5, "id": 3, "metadata": []},
        ]})
        client = QnAMakerRuntimeClient(settings, transport=recorder.transport)

        results = await client.generate_answer("kb-1", {
            "isTest": True,
            "question": "refund policy",
            "scoreThreshold": 0.3,
        })

        request = recorder.requests[0]
        assert str(request.url) == "https://faqbot.azurewebsites.net/qnamaker/knowledgebases/kb-1/generateAnswer"
        assert request.headers["Authorization"] == "EndpointKey endpoint-key"
        assert json.loads(request.content) == {
            "top": 5,
            "isTest": True,
            "question": "refund policy",
            "scoreThreshold": 0.3,
        }
        assert len(results) == 1
        assert results.answers[0].score == 87.5

    @pytest.mark.asyncio
    async def test_generate_answer_without_top(self, settings):
        settings.top = None
        recorder = RecordingTransport(200, {"answers": []})
        client = QnAMakerRuntimeClient(settings, transport=recorder.transport)

        await client.generate_answer("kb-1", {"isTest": False, "question": "q", "scoreThreshold": 0.3})

        assert json.loads(recorder.requests[0].content) == {
            "isTest": False,
            "question": "q",
            "scoreThreshold": 0.3,
        }

    @pytest.mark.asyncio
    async def test_no_answers(self, settings):
        recorder = RecordingTransport(200, {"answers": []})
        client = QnAMakerRuntimeClient(settings, transport=recorder.transport)

        results = await client.generate_answer("kb-1", {"question": "unknown"})

        assert len(results) == 0

    def test_missing_runtime_endpoint(self, settings):
        settings.runtime_endpoint = None
        with pytest.raises(ValueError):
            QnAMakerRuntimeClient(settings)
