"""
QnA Maker integration: service provider, REST clients and data models.
"""

from .client import QnAMakerClient, QnAMakerRuntimeClient, QnAMakerClientBase, QnAMakerRuntimeClientBase
from .models import Environment, QnaEntry, QnaSearchResult, QnaSearchResultList, Operation
from .service_provider import QnaServiceProvider
from .settings import QnAMakerSettings

__all__ = [
    "QnaServiceProvider",
    "QnAMakerClient",
    "QnAMakerRuntimeClient",
    "QnAMakerClientBase",
    "QnAMakerRuntimeClientBase",
    "QnAMakerSettings",
    "Environment",
    "QnaEntry",
    "QnaSearchResult",
    "QnaSearchResultList",
    "Operation",
]
