"""
AI Writing Assistance

Bio generation, link labelling and bio polishing through an
OpenAI-compatible chat completions API.

Flow:
- Unsafe prompts are refused before anything is sent upstream
- Without an API key the deterministic fallback is returned (configured=False)
- Model output must contain a JSON object matching the action's result
  schema; empty or invalid output falls back instead of failing
"""

import json
import logging
import re
from typing import Any, Optional, Tuple

import httpx
from pydantic import ValidationError

from linkbio.api.schemas import (
    AIBioGenerateRequest,
    AILinkLabelRequest,
    AIRequest,
    AIResult,
    BioGenerateResult,
    BioPolishResult,
    LinkLabelResult,
)
from linkbio.core.exceptions import InvalidInputError, LinkBioException, UpstreamServiceError
from linkbio.services.link_icons import website_from_url

logger = logging.getLogger(__name__)

AI_REFUSAL_MESSAGE = "I can only help with safe, public-profile writing requests."

UNSAFE_PATTERNS = [
    re.compile(r'\b(dox|doxx|personal address|phone number leak)\b', re.IGNORECASE),
    re.compile(r'\b(harass|abuse|bully|threaten)\b', re.IGNORECASE),
    re.compile(r'\b(hate speech|racial slur|ethnic cleansing)\b', re.IGNORECASE),
    re.compile(r'\b(kill|murder|assault|bomb)\b', re.IGNORECASE),
    re.compile(r'\b(hack|malware|phishing|fraud|scam)\b', re.IGNORECASE),
]

AI_SYSTEM_PROMPT = """You are a writing assistant for a premium public bio and link platform.
- Keep outputs concise, polished, and safe for public profiles.
- Refuse harassment, doxxing, hate, violence, wrongdoing, or harmful instructions.
- Do not include profanity or explicit content.
- Respect the requested tone.
- Return JSON only, with no markdown."""

BIO_LENGTHS = {"short": 1, "medium": 2, "long": 3}


def is_unsafe_prompt(text: str) -> bool:
    return any(pattern.search(text) for pattern in UNSAFE_PATTERNS)


def get_safety_input(payload: AIRequest) -> str:
    if isinstance(payload, AIBioGenerateRequest):
        return f"{payload.vibe} {payload.interests}"
    if isinstance(payload, AILinkLabelRequest):
        return f"{payload.vibe} {payload.url}"
    return f"{payload.vibe} {payload.bio}"


def build_user_prompt(payload: AIRequest) -> str:
    if isinstance(payload, AIBioGenerateRequest):
        return (
            "Task: Generate 3 distinct profile bio options.\n"
            f"Tone: {payload.vibe}\nInterests: {payload.interests}\nLength: {payload.length}\n"
            'Output schema: {"options":["string","string","string"]}'
        )
    if isinstance(payload, AILinkLabelRequest):
        return (
            "Task: Suggest a clean link title and one-line description for this URL.\n"
            f"Tone: {payload.vibe}\nURL: {payload.url}\n"
            'Output schema: {"title":"string","description":"string"}'
        )
    return (
        "Task: Polish this bio while preserving tone and meaning.\n"
        f"Tone: {payload.vibe}\nBio: {payload.bio}\n"
        'Output schema: {"minimal":"string","expressive":"string"}'
    )


def _bio_lines(vibe: str, interests: str, count: int) -> str:
    interest_text = interests.strip() or "creative work and meaningful projects"
    base = f"I share {interest_text} with a {vibe} lens."
    if count == 1:
        return base
    base = f"{base} Tap in for concise updates, selected links, and work you can use."
    if count == 2:
        return base
    return f"{base} Building in public with focus, consistency, and calm execution."


def create_fallback_result(payload: AIRequest) -> AIResult:
    """Deterministic result used when the model is unavailable or misbehaves."""
    if isinstance(payload, AIBioGenerateRequest):
        count = BIO_LENGTHS[payload.length]
        return BioGenerateResult(options=[
            _bio_lines(payload.vibe, payload.interests, count),
            _bio_lines(payload.vibe, f"{payload.interests} and thoughtful storytelling", count),
            _bio_lines(payload.vibe, f"{payload.interests} for curious people", count),
        ])

    if isinstance(payload, AILinkLabelRequest):
        website = website_from_url(payload.url)
        return LinkLabelResult(
            title=f"Visit {website}"[:80],
            description=f"A {payload.vibe} pick from {website}."[:120],
        )

    compact = re.sub(r'\s+', ' ', payload.bio)
    compact = re.sub(r'\s*([,.!?])\s*', r'\1 ', compact).strip()
    return BioPolishResult(
        minimal=compact[:320],
        expressive=f"{compact} Sharing progress, perspective, and useful resources along the way."[:320],
    )


def extract_json_object(content: str) -> Optional[Any]:
    """
    Pull the first JSON object out of a model reply.

    Handles bare JSON, fenced ```json blocks and prose around the object.
    """
    text = content.strip()
    fenced = re.search(r'```(?:json)?\s*(.*?)```', text, re.DOTALL)
    if fenced:
        text = fenced.group(1).strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None

    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None


def validate_ai_result(payload: AIRequest, value: Any) -> Optional[AIResult]:
    if isinstance(payload, AIBioGenerateRequest):
        model = BioGenerateResult
    elif isinstance(payload, AILinkLabelRequest):
        model = LinkLabelResult
    else:
        model = BioPolishResult

    try:
        return model.model_validate(value)
    except ValidationError:
        return None


class AIAssistService:
    """
    Calls the chat completions API for AI-assisted profile writing.

    Args:
        api_key: Provider key; None means "not configured"
        model: Model name sent upstream
        api_url: Chat completions endpoint
        client: Optional shared httpx.AsyncClient (tests pass a mocked one)
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        api_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout = timeout
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def assist(self, payload: AIRequest) -> Tuple[bool, AIResult]:
        """
        Run one AI request.

        Returns:
            (configured, result)

        Raises:
            InvalidInputError: Prompt failed the safety screen
            UpstreamServiceError: Provider answered with a non-2xx status
            LinkBioException: Transport failure talking to the provider
        """
        if is_unsafe_prompt(get_safety_input(payload)):
            raise InvalidInputError(AI_REFUSAL_MESSAGE)

        fallback = create_fallback_result(payload)

        if not self.configured:
            return False, fallback

        try:
            completion = await self._complete(payload)
        except httpx.HTTPStatusError as e:
            logger.warning(f"AI provider returned {e.response.status_code}")
            raise UpstreamServiceError("ai", "AI is currently unavailable. Try again shortly.")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"AI request failed: {e}", exc_info=True)
            raise LinkBioException("AI request failed. Please try again.")

        content = self._message_content(completion)
        if not content:
            return True, fallback

        result = validate_ai_result(payload, extract_json_object(content))
        if result is None:
            logger.info(f"AI output for {payload.action} did not match schema, using fallback")
            return True, fallback

        return True, result

    async def _complete(self, payload: AIRequest) -> Any:
        body = {
            "model": self.model,
            "temperature": 0.45,
            "max_tokens": 420,
            "messages": [
                {"role": "system", "content": AI_SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(payload)},
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        if self._client is not None:
            response = await self._client.post(self.api_url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.api_url, json=body, headers=headers)

        response.raise_for_status()
        return response.json()

    @staticmethod
    def _message_content(completion: Any) -> Optional[str]:
        try:
            return completion["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None
