# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""LLM client module using LiteLLM.

Example:
    >>> from cs_alerts.core.intelligence.llm import LLMClient
    >>> client = LLMClient()
    >>> response = await client.complete("What is 2+2?")
"""

from cs_alerts.core.intelligence.llm.client import LLMClient, LLMError, LLMResponse

__all__ = [
    "LLMClient",
    "LLMError",
    "LLMResponse",
]
