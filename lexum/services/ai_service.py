import os
import re
import json
import httpx
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from lexum.models.ai_models import GenerationRequest, GeneratedWord, DeepSeekRequest
from lexum.logging_config import setup_logger

logger = setup_logger(__name__, "ai.log")


FORMAT_HINTS = {
    "words": "single words only",
    "phrases": "multi-word expressions and phrases only",
}
DEFAULT_FORMAT_HINT = "70% single words, 30% phrases and expressions"

INTENT_HINTS = {
    "focus": "Focus on core, high-utility vocabulary the learner is likely to encounter daily.",
    "explore": "Include more advanced, less common words to push the learner beyond their comfort zone.",
}
DEFAULT_INTENT_HINT = "Balance between familiar territory and slightly new vocabulary."

MAX_EXCLUDE_IN_PROMPT = 50

_FENCE_RE = re.compile(r"^json\s*", re.IGNORECASE)


def extract_json(raw_text: Optional[str]) -> Any:
    """
    Parse JSON out of a model reply.

    Strips a ``` fence, tries the whole text, then the widest [...] span,
    then the widest {...} span. Returns None when nothing parses.
    """
    if not raw_text or not isinstance(raw_text, str):
        return None

    text = raw_text.strip()
    if "```" in text:
        start = text.find("```")
        end = text.find("```", start + 3)
        if end > start:
            text = _FENCE_RE.sub("", text[start + 3:end].strip()).strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    for opening, closing in (("[", "]"), ("{", "}")):
        start = text.find(opening)
        end = text.rfind(closing)
        if start != -1 and end > start:
            try:
                return json.loads(text[start:end + 1])
            except json.JSONDecodeError:
                continue

    return None


class AIService:
    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.api_key = os.getenv("DEEPSEEK_API_KEY")
        self.api_url = os.getenv("DEEPSEEK_API_URL", "https://api.deepseek.com/v1/chat/completions")
        self.model = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")
        self.client = client or httpx.AsyncClient(timeout=60.0)

    async def close(self):
        await self.client.aclose()

    async def generate_words(self, request: GenerationRequest) -> List[GeneratedWord]:
        """Generate vocabulary items. Any failure yields an empty list."""
        if request.count <= 0:
            return []

        try:
            prompt = self._build_generation_prompt(request)
            content = await self._make_deepseek_request(prompt)
            if content is None:
                return []

            parsed = extract_json(content)
            if not isinstance(parsed, list):
                logger.warning(f"⚠️ Generation reply is not a JSON array ({type(parsed).__name__})")
                return []

            words = self._parse_words(parsed, request)
            logger.info(f"✅ Generated {len(words)}/{request.count} words "
                        f"for {request.source_lang}->{request.target_lang}")
            return words

        except Exception as e:
            logger.error(f"❌ Word generation failed: {str(e)}", exc_info=True)
            return []

    def _build_generation_prompt(self, request: GenerationRequest) -> str:
        src, tgt, count = request.source_lang, request.target_lang, request.count

        format_hint = FORMAT_HINTS.get(request.format, DEFAULT_FORMAT_HINT)
        intent_hint = INTENT_HINTS.get(request.intent, DEFAULT_INTENT_HINT)
        topic_hint = f'\nFocus on the topic: "{request.topic}".' if request.topic else ""
        seed_hint = (f"\nUser's current vocabulary sample (avoid suggesting already-known words): "
                     f"{', '.join(request.seed_words)}") if request.seed_words else ""
        exclude_hint = (f"\nDO NOT include any of these words: "
                        f"{', '.join(request.exclude_originals[:MAX_EXCLUDE_IN_PROMPT])}") \
            if request.exclude_originals else ""

        return f"""You are an expert {src} language teacher recommending vocabulary to a learner.

Task: Generate exactly {count} vocabulary items for a learner of {src} whose native/study language is {tgt}.
CEFR target level(s): {', '.join(request.cefr_levels)}
Format preference: {format_hint}{topic_hint}
Intent: {intent_hint}{seed_hint}{exclude_hint}

Rules:
- Each item must be a realistic, useful vocabulary item a learner at this level would want to know
- Provide translation in {tgt}
- Include a short example sentence IN {src} (the language being learned)
- reason_code must be one of: cefr_fit, topic_match, high_frequency, phrase_needed, gap_fill, explore, llm_curated
- phrase_flag: true if multi-word expression or idiom, false if single word

Respond ONLY with a valid JSON array of exactly {count} items:
[
  {{
    "original": "word or phrase in {src}",
    "translation": "translation in {tgt}",
    "transcription": "phonetic transcription (optional, null if not needed)",
    "cefr_level": "A1|A2|B1|B2|C1|C2",
    "part_of_speech": "noun|verb|adjective|adverb|phrase|idiom|other",
    "phrase_flag": false,
    "example_sentence_target": "example sentence in {src}",
    "definition": "short English definition (1 sentence)",
    "definition_uk": "short Ukrainian definition (1 sentence)",
    "reason_code": "cefr_fit"
  }}
]"""

    def _parse_words(self, items: List[Any], request: GenerationRequest) -> List[GeneratedWord]:
        default_level = request.cefr_levels[0] if request.cefr_levels else "B1"
        words = []
        for item in items:
            if not isinstance(item, dict):
                continue
            if not isinstance(item.get("original"), str) or not isinstance(item.get("translation"), str):
                continue
            fields = {key: value for key, value in item.items() if value is not None}
            fields.setdefault("cefr_level", default_level)
            try:
                words.append(GeneratedWord.model_validate(fields))
            except PydanticValidationError as e:
                logger.warning(f"⚠️ Dropping malformed generated item {item.get('original')!r}: "
                               f"{e.error_count()} errors")
        return words

    async def _make_deepseek_request(self, prompt: str) -> Optional[str]:
        """Send one chat completion and return the message text, or None."""
        try:
            if not self.api_key:
                logger.error("❌ DeepSeek API key not configured")
                return None

            headers = {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
                "Accept": "application/json"
            }

            data = DeepSeekRequest(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            ).model_dump()

            response = await self.client.post(self.api_url, json=data, headers=headers)

            if response.status_code != 200:
                logger.error(f"❌ API Error {response.status_code}: {response.text[:500]}")
                return None

            result = response.json()
            choices = result.get("choices") or []
            if not choices:
                logger.error("❌ No choices in API response")
                return None

            return choices[0].get("message", {}).get("content")

        except httpx.HTTPError as e:
            logger.error(f"❌ HTTP error calling DeepSeek API: {str(e)}")
            return None
        except json.JSONDecodeError as e:
            logger.error(f"❌ JSON decode error in API response: {str(e)}")
            return None
