"""
FAQ Plus QnA Service

Adapter between the bot's configuration storage and the QnA Maker
question-answering service: add, update, delete and query knowledge base entries.
"""

__version__ = "1.0.0"
__author__ = "FAQ Plus Team"
