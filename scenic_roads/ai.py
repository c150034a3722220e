"""
ai.py – optional LLM helpers on an OpenAI-compatible chat endpoint

Two jobs: turn a raw GIS label ("SUNCOAST SCENIC PKWY") into the road's
official name before we search Wikipedia, and write a short description
when Wikipedia has none.  Responses go through the cached HttpClient, so
re-running a target costs no tokens.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from .http import ApiError, HttpClient
from .models import RoadRecord

logger = logging.getLogger("scenic.ai")

_THINK_RE = re.compile(r"<think>.*?</think>|<think>.*$", re.IGNORECASE | re.DOTALL)

CLEAN_NAME_PROMPT = """\
Identify the official, primary human-readable name for the following geographic entity.

INPUT DATA:
- Raw GIS Name: "{name}"
- State: "{state}"
- Country ISO: "{country}"

TASK:
Normalize the "Raw GIS Name" into its full, official title used by Wikipedia and official maps.

CONSTRAINTS:
1. Expand all abbreviations (e.g., "PKWY" to "Parkway", "CR" to "County Road").
2. Do not include specific county names unless they are part of the official road title.
3. If it is a State Road or Route, use the format "[State] State Road [Number]" or the most common local naming convention.
4. Return ONLY the plain text string. No quotes, no markdown, and no internal reasoning.
"""

DESCRIPTION_PROMPT = """\
Act as a travel writer for a high-end automotive magazine.
Write a vivid, 2-3 sentence description for the '{name}' scenic route in {state}, {country}.

STYLE GUIDELINES:
1. FOCUS: Highlight specific driving appeal: winding curves, elevation changes, or iconic roadside vistas.
2. TONE: Engaging, aspirational, and adventurous.
3. LANDMARKS: If the road is known for a specific bridge, mountain pass, or coastal view, include it.
4. CONSTRAINT: Do not start with "The [Road Name] is..." or "Located in...". Jump straight into the experience.
5. LENGTH: Strictly 2 to 3 sentences. No more than 60 words.

Output only the description text. No quotes or introductory filler.
"""


def strip_reasoning(text: Optional[str]) -> str:
    """Drop `<think>…</think>` blocks (closed or not) some models emit."""
    return _THINK_RE.sub("", text or "").strip()


class AIService:
    def __init__(self, client: HttpClient, model: str, max_tokens: int = 300, temperature: float = 0.7,
                 api_key: Optional[str] = None):
        self.client = client
        if api_key:
            client.session.headers["Authorization"] = f"Bearer {api_key}"
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def ask(self, prompt: str, temperature: Optional[float] = None) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature if temperature is None else temperature,
            "stream": False,
            "stop": ["<|im_start|>", "<|im_end|>"],
        }
        response = self.client.post("", payload) or {}
        try:
            content = response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ApiError(f"Unexpected chat completion response: {exc!r}") from exc
        return strip_reasoning(content)

    def clean_name(self, raw_name: str, state_name: Optional[str], country_iso2: str) -> str:
        """Official road name for a raw GIS label; the raw name if the model returns nothing."""
        prompt = CLEAN_NAME_PROMPT.format(name=raw_name, state=state_name or "", country=country_iso2)
        name = self.ask(prompt, temperature=0).strip().strip('"')
        if not name:
            logger.debug("AI returned no name for %r", raw_name)
            return raw_name
        return name

    def create_description(self, road: RoadRecord) -> str:
        prompt = DESCRIPTION_PROMPT.format(name=road.name, state=road.state_iso2 or "", country=road.country_iso2)
        return self.ask(prompt)
