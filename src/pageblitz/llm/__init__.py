"""
Pageblitz - LLM Client.

Structured copy generation via Instructor.
"""

from pageblitz.llm.client import call_llm, get_client, is_configured

__all__ = [
    "call_llm",
    "get_client",
    "is_configured",
]
